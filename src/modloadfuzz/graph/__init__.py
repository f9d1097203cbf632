"""Graph model and its string encoding.

Exports:
    Node, Edge, Graph: The test-case data model
    depth_first_search: Post-order traversal with a shared visited set
    NODE_FLAGS, EDGE_FLAGS, GRAPH_FLAGS: Letter tables of each entity
    serialize_graph, parse_graph: Functional forms of Graph.to_string/from_string

Python 3.13+.
"""

from .model import EDGE_FLAGS, GRAPH_FLAGS, NODE_FLAGS, Edge, Graph, Node, depth_first_search
from .serializer import edge_to_string, node_to_string, parse_graph, serialize_graph

__all__ = [
    "EDGE_FLAGS",
    "GRAPH_FLAGS",
    "NODE_FLAGS",
    "Edge",
    "Graph",
    "Node",
    "depth_first_search",
    "edge_to_string",
    "node_to_string",
    "parse_graph",
    "serialize_graph",
]
