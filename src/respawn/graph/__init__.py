"""Foreign-key graph and deletion ordering."""

from respawn.graph.builder import GraphBuilder, GraphNode

__all__ = ["GraphBuilder", "GraphNode"]
