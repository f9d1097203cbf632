"""Tests for graph.model: Node, Edge, Graph and depth_first_search."""

import pytest

from modloadfuzz.diagnostics import DiagnosticCode, GraphConstructionError
from modloadfuzz.enums import ImportMapKind
from modloadfuzz.graph.model import Graph, Node, depth_first_search


def _chain(*flags: dict[str, bool], import_map: ImportMapKind = ImportMapKind.NONE) -> Graph:
    """Root -> 1 -> 2 -> ... with the given node flags for nodes 1..n."""
    graph = Graph(import_map)
    previous = graph.add_node(Node(0))
    for index, node_flags in enumerate(flags, start=1):
        node = graph.add_node(Node(index, **node_flags))
        graph.add_import(previous, node)
        previous = node
    return graph


# ============================================================================
# NODE
# ============================================================================


class TestNode:
    """Derived node properties."""

    def test_root_properties(self) -> None:
        root = Node(0)
        assert root.is_root
        assert not root.is_classic
        assert root.can_import
        assert root.filename == "0.html"

    def test_module_and_classic_filenames(self) -> None:
        assert Node(3, is_module=True).filename == "3.mjs"
        assert Node(4).filename == "4.js"
        assert Node(4).is_classic

    def test_missing_module_cannot_import(self) -> None:
        assert not Node(1, is_module=True, is_not_found=True).can_import
        assert not Node(1).can_import

    def test_first_parent(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        assert graph.get_node(2).first_parent is graph.get_node(1)
        assert graph.root.first_parent is None

    def test_dynamic_import_forces_top_level_await(self) -> None:
        graph = _chain({"is_module": True})
        two = graph.add_node(Node(2, is_module=True))
        graph.add_import(graph.get_node(1), two, is_dynamic=True)
        assert graph.get_node(1).has_top_level_await

    def test_dynamic_import_from_root_leaves_root_unflagged(self) -> None:
        graph = Graph()
        root = graph.add_node(Node(0))
        one = graph.add_node(Node(1, is_module=True))
        graph.add_import(root, one, is_dynamic=True)
        assert not root.has_top_level_await
        graph.validate()

    def test_import_after_source_cached_rejected(self) -> None:
        node = Node(1, is_module=True)
        node.cached_source = "// cached"
        with pytest.raises(GraphConstructionError) as exc_info:
            node.add_import(Node(2, is_module=True))
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.SOURCE_ALREADY_CACHED

    def test_nodes_hash_by_identity(self) -> None:
        assert Node(1) != Node(1)
        assert len({Node(1), Node(1)}) == 2


# ============================================================================
# GRAPH CONSTRUCTION
# ============================================================================


class TestGraphConstruction:
    """Edge invariants enforced by Graph.add_import."""

    def test_node_index_must_match_position(self) -> None:
        graph = Graph()
        graph.add_node(Node(0))
        with pytest.raises(GraphConstructionError) as exc_info:
            graph.add_node(Node(2))
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.NODE_INDEX_MISMATCH

    def test_root_cannot_be_imported(self) -> None:
        graph = _chain({"is_module": True})
        with pytest.raises(GraphConstructionError, match="root cannot be imported"):
            graph.add_import(graph.get_node(1), graph.root)

    def test_classic_only_attached_to_root(self) -> None:
        graph = _chain({"is_module": True})
        classic = graph.add_node(Node(2))
        with pytest.raises(GraphConstructionError, match="only be attached to the root"):
            graph.add_import(graph.get_node(1), classic)

    def test_classic_attached_once(self) -> None:
        graph = _chain({})
        with pytest.raises(GraphConstructionError, match="exactly once"):
            graph.add_import(graph.root, graph.get_node(1))

    def test_classic_cannot_import(self) -> None:
        graph = _chain({})
        module = graph.add_node(Node(2, is_module=True))
        with pytest.raises(GraphConstructionError, match="only the root and existing modules"):
            graph.add_import(graph.get_node(1), module)

    def test_missing_module_cannot_import(self) -> None:
        graph = _chain({"is_module": True, "is_not_found": True})
        module = graph.add_node(Node(2, is_module=True))
        with pytest.raises(GraphConstructionError):
            graph.add_import(graph.get_node(1), module)

    def test_bare_import_needs_import_map(self) -> None:
        graph = Graph()
        root = graph.add_node(Node(0))
        one = graph.add_node(Node(1, is_module=True))
        with pytest.raises(GraphConstructionError, match="import map"):
            graph.add_import(root, one, is_bare=True)

    def test_bare_import_with_import_map(self) -> None:
        graph = Graph(ImportMapKind.STATIC)
        root = graph.add_node(Node(0))
        one = graph.add_node(Node(1, is_module=True))
        edge = graph.add_import(root, one, is_bare=True)
        assert edge.is_bare
        assert edge.flag_token == "b"

    def test_foreign_node_rejected(self) -> None:
        graph = _chain({"is_module": True})
        with pytest.raises(GraphConstructionError, match="does not belong"):
            graph.add_import(graph.get_node(1), Node(2, is_module=True))

    def test_frozen_after_serialization(self) -> None:
        graph = _chain({"is_module": True})
        graph.to_string()
        with pytest.raises(GraphConstructionError) as exc_info:
            graph.add_node(Node(2, is_module=True))
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.GRAPH_ALREADY_SERIALIZED

    def test_get_node_out_of_range(self) -> None:
        graph = _chain({"is_module": True})
        with pytest.raises(IndexError):
            graph.get_node(2)


class TestGraphValidate:
    """Flag invariants checked by Graph.validate."""

    def test_valid_chain(self) -> None:
        _chain({"is_module": True}, {"is_module": True, "is_error": True}).validate()

    def test_root_flags_rejected(self) -> None:
        graph = _chain({"is_module": True})
        graph.root.is_slow = True
        with pytest.raises(GraphConstructionError, match="root carries no node flags"):
            graph.validate()

    def test_classic_top_level_await_rejected(self) -> None:
        graph = _chain({"has_top_level_await": True})
        with pytest.raises(GraphConstructionError, match="cannot suspend"):
            graph.validate()

    def test_both_import_maps_rejected(self) -> None:
        graph = _chain({"is_module": True})
        graph.has_static_import_map = True
        graph.has_dynamic_import_map = True
        with pytest.raises(GraphConstructionError, match="mutually exclusive"):
            graph.validate()

    def test_unreachable_module_rejected(self) -> None:
        graph = _chain({"is_module": True})
        graph.add_node(Node(2, is_module=True))
        with pytest.raises(GraphConstructionError, match="2 is not reachable"):
            graph.validate()

    def test_dynamic_without_await_rejected(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        graph.get_node(1).out_edges[0].is_dynamic = True
        with pytest.raises(GraphConstructionError, match="does not suspend"):
            graph.validate()


# ============================================================================
# PREDICATES
# ============================================================================


class TestGraphPredicates:
    """Derived predicates used by the oracle."""

    def test_plain_chain_is_exactly_predictable(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        assert not graph.has_cycle()
        assert not graph.has_async_evaluation()
        assert graph.is_exactly_predictable()

    def test_back_edge_is_cycle(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True}, {"is_module": True})
        edge = graph.add_import(graph.get_node(3), graph.get_node(1))
        assert edge.is_back_edge
        assert graph.has_cycle()
        assert not graph.is_exactly_predictable()

    def test_top_level_await_is_async(self) -> None:
        graph = _chain({"is_module": True, "has_top_level_await": True})
        assert graph.has_async_evaluation()
        assert not graph.has_dynamic_import()

    def test_error_and_not_found(self) -> None:
        graph = _chain({"is_module": True, "is_error": True}, {"is_module": True, "is_not_found": True})
        assert graph.has_error()
        assert graph.has_not_found()

    def test_import_map_kind(self) -> None:
        assert Graph().import_map_kind is ImportMapKind.NONE
        assert Graph(ImportMapKind.STATIC).has_static_import_map
        assert Graph(ImportMapKind.DYNAMIC).import_map_kind is ImportMapKind.DYNAMIC

    def test_structure_equal_for_equal_graphs(self) -> None:
        first = _chain({"is_module": True}, {"is_module": True, "is_slow": True})
        second = _chain({"is_module": True}, {"is_module": True, "is_slow": True})
        assert first.structure() == second.structure()
        assert first.to_string() == second.to_string()


# ============================================================================
# TRAVERSAL
# ============================================================================


class TestDepthFirstSearch:
    """Post-order traversal with an explicit visited set."""

    def test_post_order(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        order: list[int] = []
        depth_first_search(graph.root, lambda n: order.append(n.index))
        assert order == [2, 1, 0]

    def test_diamond_visits_shared_node_once(self) -> None:
        graph = Graph()
        root = graph.add_node(Node(0))
        one = graph.add_node(Node(1, is_module=True))
        two = graph.add_node(Node(2, is_module=True))
        three = graph.add_node(Node(3, is_module=True))
        graph.add_import(root, one)
        graph.add_import(root, two)
        graph.add_import(one, three)
        graph.add_import(two, three)
        order: list[int] = []
        depth_first_search(root, lambda n: order.append(n.index))
        assert order == [3, 1, 2, 0]

    def test_terminates_on_cycle(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        graph.add_import(graph.get_node(2), graph.get_node(1))
        order: list[int] = []
        depth_first_search(graph.root, lambda n: order.append(n.index))
        assert order == [2, 1, 0]

    def test_edge_filter(self) -> None:
        graph = Graph()
        root = graph.add_node(Node(0))
        one = graph.add_node(Node(1, is_module=True))
        two = graph.add_node(Node(2, is_module=True))
        graph.add_import(root, one)
        graph.add_import(root, two, is_dynamic=True)
        order: list[int] = []
        depth_first_search(root, lambda n: order.append(n.index), lambda e: not e.is_dynamic)
        assert order == [1, 0]

    def test_shared_visited_set_skips_earlier_nodes(self) -> None:
        graph = _chain({"is_module": True}, {"is_module": True})
        visited: set[Node] = set()
        first: list[int] = []
        second: list[int] = []
        depth_first_search(graph.get_node(1), lambda n: first.append(n.index), visited=visited)
        depth_first_search(graph.root, lambda n: second.append(n.index), visited=visited)
        assert first == [2, 1]
        assert second == [0]

    def test_deep_chain_does_not_recurse(self) -> None:
        graph = _chain(*({"is_module": True} for _ in range(5000)))
        count: list[int] = []
        depth_first_search(graph.root, lambda n: count.append(n.index))
        assert len(count) == 5001
        assert count[0] == 5000
