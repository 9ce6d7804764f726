"""Deletion ordering over the foreign-key graph.

Turns an unordered set of tables and foreign keys into a linear order in which
every child table is emptied before the parent it references. Cycles
(self-referencing tables, mutual references) are broken by forcing one table
into the order and reporting the foreign keys that order cannot honor.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from respawn.core.types import Relationship, Table

logger = logging.getLogger(__name__)


@dataclass
class GraphNode:
    """A table with the foreign keys it participates in.

    ``outgoing`` holds relationships where this table is the child (it depends on
    a parent); ``incoming`` holds relationships where it is the parent.
    """

    table: Table
    outgoing: set[Relationship] = field(default_factory=set)
    incoming: set[Relationship] = field(default_factory=set)

    @property
    def parents(self) -> set[Table]:
        return {rel.parent for rel in self.outgoing}

    @property
    def children(self) -> set[Table]:
        return {rel.child for rel in self.incoming}


class GraphBuilder:
    """Computes the order in which tables can be deleted.

    Example:
        >>> customers = Table("dbo", "Customers")
        >>> orders = Table("dbo", "Orders")
        >>> fk = Relationship(parent=customers, child=orders, name="FK_Orders_Customers")
        >>> GraphBuilder({customers, orders}, {fk}).to_delete
        (Table(schema='dbo', name='Orders'), Table(schema='dbo', name='Customers'))
    """

    def __init__(self, tables: Iterable[Table], relationships: Iterable[Relationship]) -> None:
        """Build the graph and compute the deletion order.

        Args:
            tables: Tables in scope
            relationships: Foreign keys between them; any relationship with an end
                outside ``tables`` is ignored
        """
        table_set = frozenset(tables)
        self._relationships = frozenset(
            rel
            for rel in relationships
            if rel.parent in table_set and rel.child in table_set
        )

        self._nodes: dict[Table, GraphNode] = {
            table: GraphNode(table) for table in sorted(table_set, key=lambda t: t.sort_key)
        }
        for rel in self._relationships:
            self._nodes[rel.child].outgoing.add(rel)
            self._nodes[rel.parent].incoming.add(rel)

        self._to_delete, self._cyclic_relationships = self._order()

    @property
    def nodes(self) -> dict[Table, GraphNode]:
        return dict(self._nodes)

    @property
    def relationships(self) -> frozenset[Relationship]:
        """Relationships the graph was built from, after scope filtering."""
        return self._relationships

    @property
    def to_delete(self) -> tuple[Table, ...]:
        """Every table exactly once, children before the parents they reference."""
        return self._to_delete

    @property
    def cyclic_relationships(self) -> frozenset[Relationship]:
        """Foreign keys the deletion order violates because they sit on a cycle.

        Adapters disable these constraints around the delete statements.
        """
        return self._cyclic_relationships

    @property
    def cyclic_tables(self) -> tuple[Table, ...]:
        """Parent tables of the cycle-broken relationships.

        These are deleted while rows that reference them still exist, so engines
        that check foreign keys on the referenced side must relax checks here.
        """
        return tuple(
            sorted({rel.parent for rel in self._cyclic_relationships}, key=lambda t: t.sort_key)
        )

    @property
    def has_cycles(self) -> bool:
        return bool(self._cyclic_relationships)

    def _order(self) -> tuple[tuple[Table, ...], frozenset[Relationship]]:
        # Live incoming relationships per unplaced table
        live: dict[Table, set[Relationship]] = {
            table: set(node.incoming) for table, node in self._nodes.items()
        }
        ordered: list[Table] = []
        broken: set[Relationship] = set()

        while live:
            ready = [table for table, incoming in live.items() if not incoming]
            if not ready:
                # Only a table whose remaining blockers all sit on its own cycle
                # may be forced, so no acyclic foreign key is ever broken
                candidates = [
                    table for component in self._closed_components(live) for table in component
                ]
                forced = min(candidates, key=lambda t: self._blocking_key(t, live[t]))
                broken.update(live[forced])
                logger.debug(
                    f"Breaking cycle at {forced}: "
                    f"{', '.join(sorted(rel.name for rel in live[forced]))}"
                )
                ready = [forced]

            for table in sorted(ready, key=lambda t: t.sort_key):
                ordered.append(table)
                del live[table]
                # A placed table no longer blocks its parents
                for rel in self._nodes[table].outgoing:
                    if rel.parent in live:
                        live[rel.parent].discard(rel)

        return tuple(ordered), frozenset(broken)

    @staticmethod
    def _closed_components(live: dict[Table, set[Relationship]]) -> list[set[Table]]:
        """Strongly connected components no unplaced table outside them blocks.

        Edges run from each unplaced table to the children still blocking it.
        Components come from an iterative Kosaraju pass.
        """
        tables = sorted(live, key=lambda t: t.sort_key)
        blockers = {
            table: sorted({rel.child for rel in live[table]}, key=lambda t: t.sort_key)
            for table in tables
        }

        visited: set[Table] = set()
        finished: list[Table] = []
        for start in tables:
            if start in visited:
                continue
            visited.add(start)
            stack = [(start, iter(blockers[start]))]
            while stack:
                table, pending = stack[-1]
                for child in pending:
                    if child not in visited:
                        visited.add(child)
                        stack.append((child, iter(blockers[child])))
                        break
                else:
                    stack.pop()
                    finished.append(table)

        blocked: dict[Table, list[Table]] = {table: [] for table in tables}
        for table in tables:
            for child in blockers[table]:
                blocked[child].append(table)

        root_of: dict[Table, Table] = {}
        for root in reversed(finished):
            if root in root_of:
                continue
            root_of[root] = root
            queue = [root]
            while queue:
                for parent in blocked[queue.pop()]:
                    if parent not in root_of:
                        root_of[parent] = root
                        queue.append(parent)

        components: dict[Table, set[Table]] = {}
        for table, root in root_of.items():
            components.setdefault(root, set()).add(table)
        return [
            members
            for root, members in components.items()
            if all(root_of[child] == root for table in members for child in blockers[table])
        ]

    @staticmethod
    def _blocking_key(table: Table, incoming: set[Relationship]) -> tuple[int, tuple[str, str]]:
        """Prefer tables blocked only by themselves, then by the fewest other tables."""
        others = sum(1 for rel in incoming if not rel.is_self_referencing)
        return (others, table.sort_key)
