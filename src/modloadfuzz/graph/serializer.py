"""Serialize graphs to their identity string and back.

Grammar (``;`` separates fields, ``,`` separates tokens inside a node field)::

    graph  := header (";" node)*
    header := graph-flags size
    node   := node-flags edge-count ("," edge)*
    edge   := edge-flags target-index

Flag runs are lowercase letters (see modloadfuzz.core.flags); counts and
indices are decimal numbers without leading zeros. Example, a document
with a static import map that loads module 1, which imports module 2
through a bare specifier::

    s3;1,1;m1,b2;m0

The string is the durable identity of a test case and doubles as its
permalink, so parsing is strict: anything that does not re-serialize to
exactly the same text is rejected.

Python 3.13+.
"""

from __future__ import annotations

import re

from modloadfuzz.constants import (
    FIELD_SEPARATOR,
    MAX_GRAPH_SIZE,
    MAX_INDEX_DIGITS,
    MIN_GRAPH_SIZE,
    NODE_SEPARATOR,
)
from modloadfuzz.core.flags import FlagTable
from modloadfuzz.diagnostics import (
    ErrorTemplate,
    FlagError,
    GraphConstructionError,
    GraphParseError,
)
from modloadfuzz.enums import ImportMapKind

from .model import EDGE_FLAGS, GRAPH_FLAGS, NODE_FLAGS, Edge, Graph, Node

__all__ = [
    "edge_to_string",
    "node_to_string",
    "parse_graph",
    "serialize_graph",
]

_NUMBER = re.compile(r"0|[1-9][0-9]*")


def edge_to_string(edge: Edge) -> str:
    """Encode one edge: flag letters followed by the target index."""
    return f"{edge.flag_token}{edge.target.index}"


def node_to_string(node: Node) -> str:
    """Encode one node: flag letters, edge count, then one token per edge."""
    parts = [f"{node.flag_token}{len(node.out_edges)}"]
    parts.extend(edge_to_string(edge) for edge in node.out_edges)
    return FIELD_SEPARATOR.join(parts)


def serialize_graph(graph: Graph) -> str:
    """Encode a whole graph. Prefer ``Graph.to_string()``, which caches."""
    parts = [f"{graph.flag_token}{graph.size}"]
    parts.extend(node_to_string(node) for node in graph.nodes)
    return NODE_SEPARATOR.join(parts)


class _Token:
    """Flag letters plus a number, with the offset of the token in the input."""

    __slots__ = ("flags", "number", "position")

    def __init__(self, flags: dict[str, bool], number: int, position: int) -> None:
        self.flags = flags
        self.number = number
        self.position = position


def _read_token(text: str, position: int, table: FlagTable) -> _Token:
    try:
        flags, rest = table.decode(text, offset=position)
    except FlagError as e:
        diagnostic = e.diagnostic
        detail = diagnostic.message if diagnostic is not None else str(e)
        raise GraphParseError(ErrorTemplate.flags_invalid(detail, position)) from e

    if len(rest) > MAX_INDEX_DIGITS or _NUMBER.fullmatch(rest) is None:
        raise GraphParseError(ErrorTemplate.number_invalid(rest, position + len(text) - len(rest)))
    return _Token(flags, int(rest), position)


def _split(text: str, separator: str, start: int) -> list[tuple[str, int]]:
    """Split ``text`` keeping the absolute offset of every piece."""
    pieces: list[tuple[str, int]] = []
    offset = start
    for piece in text.split(separator):
        pieces.append((piece, offset))
        offset += len(piece) + len(separator)
    return pieces


def parse_graph(text: str) -> Graph:
    """Decode a graph string. Prefer ``Graph.from_string()``.

    Nodes are created first (so edges may point forward or backward), then
    each node field binds its edges in declared order.

    Raises:
        GraphParseError: Malformed, out-of-range, non-canonical, or the
            decoded graph violates a structural invariant.
    """
    if not text:
        raise GraphParseError(ErrorTemplate.empty_graph_string())

    fields = _split(text, NODE_SEPARATOR, 0)
    header_text, header_pos = fields[0]
    header = _read_token(header_text, header_pos, GRAPH_FLAGS)
    size = header.number
    if not MIN_GRAPH_SIZE <= size <= MAX_GRAPH_SIZE:
        raise GraphParseError(
            ErrorTemplate.graph_size_invalid(size, MIN_GRAPH_SIZE, MAX_GRAPH_SIZE)
        )
    if len(fields) - 1 != size:
        raise GraphParseError(ErrorTemplate.field_count_mismatch("graph", size, len(fields) - 1, 0))

    if header.flags.get("has_static_import_map") and header.flags.get("has_dynamic_import_map"):
        raise GraphParseError(
            ErrorTemplate.invariant_violated("static and dynamic import maps are mutually exclusive")
        )
    if header.flags.get("has_static_import_map"):
        import_map = ImportMapKind.STATIC
    elif header.flags.get("has_dynamic_import_map"):
        import_map = ImportMapKind.DYNAMIC
    else:
        import_map = ImportMapKind.NONE

    # Tokenize every node field before building anything.
    node_tokens: list[_Token] = []
    edge_tokens: list[list[_Token]] = []
    for index, (field_text, field_pos) in enumerate(fields[1:]):
        tokens = _split(field_text, FIELD_SEPARATOR, field_pos)
        node_token = _read_token(tokens[0][0], tokens[0][1], NODE_FLAGS)
        if len(tokens) - 1 != node_token.number:
            raise GraphParseError(
                ErrorTemplate.field_count_mismatch(
                    f"node {index}", node_token.number, len(tokens) - 1, field_pos
                )
            )
        edges = [_read_token(piece, pos, EDGE_FLAGS) for piece, pos in tokens[1:]]
        for edge in edges:
            if edge.number >= size:
                raise GraphParseError(
                    ErrorTemplate.index_out_of_range(edge.number, size, edge.position)
                )
        node_tokens.append(node_token)
        edge_tokens.append(edges)

    graph = Graph(import_map)
    try:
        for index, token in enumerate(node_tokens):
            graph.add_node(Node(index, **token.flags))
        for node, edges in zip(graph.nodes, edge_tokens, strict=True):
            for edge in edges:
                graph.add_import(node, graph.get_node(edge.number), **edge.flags)
        graph.validate()
    except GraphConstructionError as e:
        raise GraphParseError(e.diagnostic or str(e)) from e

    canonical = graph.to_string()
    if canonical != text:
        raise GraphParseError(ErrorTemplate.not_canonical(text, canonical))
    return graph
