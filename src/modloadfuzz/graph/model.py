"""Script/module dependency graph: Node, Edge, Graph and traversal.

A Graph is one test case: node 0 is the HTML document (the root), every
other node is a classic script or a module. Edges are imports in declared
order. Node indices are assigned in creation order and every regular edge
points from an older node to a newer one, so an edge whose target index is
not greater than its source index is exactly a back-edge closing a cycle.

Graphs are built once (by the generator or by Graph.from_string) and are
treated as immutable afterwards. The only later mutation is caching: the
serialized string on the Graph and rendered source text on each Node. Both
caches freeze the structure they were computed from.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TypeAlias

from modloadfuzz.constants import CLASSIC_EXTENSION, MODULE_EXTENSION, ROOT_EXTENSION
from modloadfuzz.core.flags import FlagTable
from modloadfuzz.diagnostics import ErrorTemplate, GraphConstructionError
from modloadfuzz.enums import ImportMapKind

__all__ = [
    "EDGE_FLAGS",
    "GRAPH_FLAGS",
    "NODE_FLAGS",
    "Edge",
    "Graph",
    "Node",
    "depth_first_search",
]

# Letter tables, checked when this module is imported.
NODE_FLAGS = FlagTable(
    (
        "is_module",
        "is_error",
        "is_not_found",
        "has_top_level_await",
        "has_preload",
        "is_slow",
    )
)
EDGE_FLAGS = FlagTable(("is_dynamic", "is_bare"))
GRAPH_FLAGS = FlagTable(("has_static_import_map", "has_dynamic_import_map"))

GraphStructure: TypeAlias = tuple[str, tuple[tuple[str, tuple[tuple[str, int], ...]], ...]]


@dataclass(eq=False, slots=True)
class Edge:
    """Directed import from ``source`` to ``target``.

    Attributes:
        source: Importing node
        target: Imported node
        is_dynamic: ``await import()`` rather than a static import
        is_bare: Specifier is a bare name resolved through the import map
    """

    source: Node
    target: Node
    is_dynamic: bool = False
    is_bare: bool = False

    def __repr__(self) -> str:
        return f"Edge({self.source.index} -> {self.target.index}, flags={self.flag_token!r})"

    @property
    def flag_token(self) -> str:
        return EDGE_FLAGS.encode(self)

    @property
    def is_back_edge(self) -> bool:
        return self.target.index <= self.source.index


@dataclass(eq=False, slots=True)
class Node:
    """One script in the graph.

    Nodes compare and hash by identity, so they can be used directly in
    visited sets.

    Attributes:
        index: Position in the graph; 0 is the document root
        is_module: Module script rather than classic script
        is_error: Evaluation throws right after it starts
        is_not_found: Resource does not exist; fetching it fails
        has_top_level_await: Module suspends at top level before continuing
        has_preload: Document carries a preload hint for this resource
        is_slow: Serving this resource is artificially delayed
        in_edges: Incoming imports, in the order they were added
        out_edges: Outgoing imports, in declared import order
        cached_source: Rendered source text; once set, out_edges are frozen
    """

    index: int
    is_module: bool = False
    is_error: bool = False
    is_not_found: bool = False
    has_top_level_await: bool = False
    has_preload: bool = False
    is_slow: bool = False
    in_edges: list[Edge] = field(default_factory=list, repr=False)
    out_edges: list[Edge] = field(default_factory=list, repr=False)
    cached_source: str | None = field(default=None, repr=False)

    @property
    def is_root(self) -> bool:
        return self.index == 0

    @property
    def is_classic(self) -> bool:
        return not self.is_root and not self.is_module

    @property
    def can_import(self) -> bool:
        """Whether this node may have outgoing edges.

        The root and existing modules import; classic scripts and missing
        resources do not.
        """
        return self.is_root or (self.is_module and not self.is_not_found)

    @property
    def extension(self) -> str:
        if self.is_root:
            return ROOT_EXTENSION
        return MODULE_EXTENSION if self.is_module else CLASSIC_EXTENSION

    @property
    def filename(self) -> str:
        """Canonical served file name: ``<index>.<extension>``."""
        return f"{self.index}.{self.extension}"

    @property
    def first_parent(self) -> Node | None:
        return self.in_edges[0].source if self.in_edges else None

    @property
    def flag_token(self) -> str:
        return NODE_FLAGS.encode(self)

    def add_import(self, target: Node, *, is_dynamic: bool = False, is_bare: bool = False) -> Edge:
        """Append an import of ``target`` to this node.

        A dynamic import makes a non-root node suspend at top level.

        Raises:
            GraphConstructionError: Source text for this node was already generated.
        """
        if self.cached_source is not None:
            raise GraphConstructionError(ErrorTemplate.source_already_cached(self.index))

        edge = Edge(self, target, is_dynamic=is_dynamic, is_bare=is_bare)
        self.out_edges.append(edge)
        target.in_edges.append(edge)

        if is_dynamic and not self.is_root:
            self.has_top_level_await = True

        return edge


def depth_first_search(
    start: Node,
    visit: Callable[[Node], None],
    edge_filter: Callable[[Edge], bool] | None = None,
    *,
    visited: set[Node] | None = None,
) -> None:
    """Walk outgoing edges from ``start`` and call ``visit`` in post-order.

    Each node is visited at most once: a node reached again through a
    second parent or through a back-edge is already in ``visited`` and is
    not re-entered, so the walk terminates on cyclic graphs.

    Uses an explicit stack so deep chains cannot hit the recursion limit.

    Args:
        start: Node to start from
        visit: Called for each node after all of its descendants
        edge_filter: Only edges for which this returns True are followed
        visited: Shared visited set; pass the same set to several calls to
            skip nodes already handled by an earlier walk

    Example:
        >>> order = []
        >>> depth_first_search(graph.root, lambda n: order.append(n.index))
    """
    seen: set[Node] = set() if visited is None else visited
    if start in seen:
        return

    seen.add(start)
    stack: list[tuple[Node, Iterator[Edge]]] = [(start, iter(start.out_edges))]

    while stack:
        node, edges = stack[-1]
        for edge in edges:
            if edge_filter is not None and not edge_filter(edge):
                continue
            if edge.target in seen:
                continue
            seen.add(edge.target)
            stack.append((edge.target, iter(edge.target.out_edges)))
            break
        else:
            stack.pop()
            visit(node)


class Graph:
    """A whole test case: the document root plus its scripts.

    Example:
        >>> graph = Graph()
        >>> root = graph.add_node(Node(0))
        >>> one = graph.add_node(Node(1, is_module=True))
        >>> graph.add_import(root, one)
        Edge(0 -> 1, flags='')
        >>> graph.to_string()
        '2;1,1;m0'
    """

    __slots__ = ("_cached_string", "has_dynamic_import_map", "has_static_import_map", "nodes")

    def __init__(self, import_map: ImportMapKind = ImportMapKind.NONE) -> None:
        self.nodes: list[Node] = []
        self.has_static_import_map = import_map is ImportMapKind.STATIC
        self.has_dynamic_import_map = import_map is ImportMapKind.DYNAMIC
        self._cached_string: str | None = None

    def __repr__(self) -> str:
        return f"Graph(size={self.size}, import_map={self.import_map_kind.value!r})"

    def __str__(self) -> str:
        return self.to_string()

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> Node:
        return self.get_node(0)

    @property
    def import_map_kind(self) -> ImportMapKind:
        if self.has_static_import_map:
            return ImportMapKind.STATIC
        if self.has_dynamic_import_map:
            return ImportMapKind.DYNAMIC
        return ImportMapKind.NONE

    @property
    def has_import_map(self) -> bool:
        return self.has_static_import_map or self.has_dynamic_import_map

    @property
    def flag_token(self) -> str:
        return GRAPH_FLAGS.encode(self)

    def get_node(self, index: int) -> Node:
        if not 0 <= index < len(self.nodes):
            msg = f"Node index {index} out of range for graph of {len(self.nodes)} nodes"
            raise IndexError(msg)
        return self.nodes[index]

    def edges(self) -> Iterator[Edge]:
        """Yield every edge, grouped by source node in index order."""
        for node in self.nodes:
            yield from node.out_edges

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _check_mutable(self) -> None:
        if self._cached_string is not None:
            raise GraphConstructionError(ErrorTemplate.graph_already_serialized())

    def add_node(self, node: Node) -> Node:
        """Append ``node``; its index must equal its position."""
        self._check_mutable()
        if node.index != len(self.nodes):
            raise GraphConstructionError(
                ErrorTemplate.node_index_mismatch(node.index, len(self.nodes))
            )
        self.nodes.append(node)
        return node

    def add_import(
        self,
        source: Node,
        target: Node,
        *,
        is_dynamic: bool = False,
        is_bare: bool = False,
    ) -> Edge:
        """Add an import edge after checking the graph-level invariants.

        Raises:
            GraphConstructionError: The edge would break an invariant, or the
                graph (or the source node) has already been serialized.
        """
        self._check_mutable()
        reason = self._import_violation(source, target, is_dynamic=is_dynamic, is_bare=is_bare)
        if reason is not None:
            raise GraphConstructionError(
                ErrorTemplate.import_not_allowed(source.index, target.index, reason)
            )
        return source.add_import(target, is_dynamic=is_dynamic, is_bare=is_bare)

    def _import_violation(
        self, source: Node, target: Node, *, is_dynamic: bool, is_bare: bool
    ) -> str | None:
        for node in (source, target):
            if node.index >= len(self.nodes) or self.nodes[node.index] is not node:
                return f"node {node.index} does not belong to this graph"
        if target.is_root:
            return "the document root cannot be imported"
        if not source.can_import:
            return "only the root and existing modules can import"
        if target.is_classic:
            if not source.is_root:
                return "classic scripts can only be attached to the root"
            if target.in_edges:
                return "a classic script is attached to the root exactly once"
            if is_dynamic or is_bare:
                return "a classic script attachment is neither dynamic nor bare"
        if is_bare and not self.has_import_map:
            return "bare specifiers need an import map"
        return None

    def validate(self) -> None:
        """Check the invariants that involve node flags.

        Edge invariants are enforced by add_import; this covers what flag
        assignment after construction could break.

        Raises:
            GraphConstructionError: An invariant does not hold.
        """
        problem = self._first_violation()
        if problem is not None:
            raise GraphConstructionError(ErrorTemplate.invariant_violated(problem))

    def _first_violation(self) -> str | None:
        if self.has_static_import_map and self.has_dynamic_import_map:
            return "static and dynamic import maps are mutually exclusive"
        if not self.nodes:
            return "graph has no root"
        if self.root.flag_token:
            return "the document root carries no node flags"
        for node in self.nodes[1:]:
            if node.is_classic and node.has_top_level_await:
                return f"classic script {node.index} cannot suspend at top level"
            if node.is_classic and len(node.in_edges) != 1:
                return f"classic script {node.index} must be attached to the root once"
            if node.is_not_found and node.out_edges:
                return f"missing resource {node.index} cannot import"
            if any(edge.is_dynamic for edge in node.out_edges) and not node.has_top_level_await:
                return f"node {node.index} imports dynamically but does not suspend"

        reachable: set[Node] = set()
        depth_first_search(self.root, reachable.add)
        for node in self.nodes:
            if node not in reachable:
                return f"node {node.index} is not reachable from the document root"
        return None

    # ------------------------------------------------------------------
    # Derived predicates
    # ------------------------------------------------------------------

    def has_async_evaluation(self) -> bool:
        """Any node suspends at top level or any import is dynamic."""
        return any(node.has_top_level_await for node in self.nodes) or self.has_dynamic_import()

    def has_dynamic_import(self) -> bool:
        return any(edge.is_dynamic for edge in self.edges())

    def has_error(self) -> bool:
        """Any node throws when evaluated."""
        return any(node.is_error for node in self.nodes)

    def has_not_found(self) -> bool:
        return any(node.is_not_found for node in self.nodes)

    def has_cycle(self) -> bool:
        """Any edge points at a node created no later than its source."""
        return any(edge.is_back_edge for edge in self.edges())

    def is_exactly_predictable(self) -> bool:
        """Whether the oracle can compute the exact observation trace."""
        return not self.has_async_evaluation() and not self.has_cycle()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def structure(self) -> GraphStructure:
        """Hashable description of flags and edges, for structural equality."""
        return (
            self.flag_token,
            tuple(
                (
                    node.flag_token,
                    tuple((edge.flag_token, edge.target.index) for edge in node.out_edges),
                )
                for node in self.nodes
            ),
        )

    def to_string(self) -> str:
        """Serialize to the URL-safe identity string (cached after the first call)."""
        if self._cached_string is None:
            from .serializer import serialize_graph  # noqa: PLC0415 - circular

            self._cached_string = serialize_graph(self)
        return self._cached_string

    @classmethod
    def from_string(cls, text: str) -> Graph:
        """Reconstruct the graph encoded by ``text``.

        Raises:
            GraphParseError: ``text`` is not a valid, canonical graph string.
        """
        from .serializer import parse_graph  # noqa: PLC0415 - circular

        return parse_graph(text)
