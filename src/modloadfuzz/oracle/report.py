"""Diagnostic dump of a test run.

A failing run is reproducible from its printed report alone: the graph
string (the permalink), a readable node/edge listing, and the observation
buffers side by side with the expectation when there is one.

Python 3.13+.
"""

from __future__ import annotations

from modloadfuzz.graph.model import Graph, Node

from .expectation import ExpectedTrace
from .observation import Observation

__all__ = ["build_report", "describe_graph", "describe_observation"]

_NODE_LABELS = (
    ("is_module", "module"),
    ("is_error", "error"),
    ("is_not_found", "not-found"),
    ("has_top_level_await", "async"),
    ("has_preload", "preload"),
    ("is_slow", "slow"),
)


def _node_line(node: Node) -> str:
    if node.is_root:
        return f"  Node {node.index} root"
    labels = [label for name, label in _NODE_LABELS if getattr(node, name)]
    if not node.is_module:
        labels.insert(0, "classic")
    return f"  Node {node.index} {' '.join(labels)}"


def describe_graph(graph: Graph) -> list[str]:
    """Readable listing of every node and edge."""
    lines = [
        f"Graph of {graph.size} nodes: {graph.to_string()}",
        f"  Import map: {graph.import_map_kind}",
    ]
    for node in graph.nodes:
        lines.append(_node_line(node))
        for edge in node.out_edges:
            suffix = "".join(
                (
                    " dynamic" if edge.is_dynamic else "",
                    " bare" if edge.is_bare else "",
                    " cycle" if edge.is_back_edge else "",
                )
            )
            lines.append(f"   -> node {edge.target.index}{suffix}")
    return lines


def _flags(values: list[bool] | tuple[bool, ...]) -> str:
    return ", ".join("true" if v else "false" for v in values)


def describe_observation(observation: Observation) -> list[str]:
    """The four observation buffers, one per line."""
    return [
        f"Load order: {', '.join(str(i) for i in observation.order)}",
        f"Load started: {_flags(observation.started)}",
        f"Load finished: {_flags(observation.finished)}",
        f"Load errored: {_flags(observation.errored)}",
    ]


def build_report(
    graph: Graph,
    observation: Observation,
    *,
    expected: ExpectedTrace | None = None,
    problems: list[str] | None = None,
) -> str:
    """Full dump: problems, graph, observed buffers and expected buffers."""
    lines: list[str] = []
    if problems:
        lines.append("Graph check failed:")
        lines.extend(f"  {problem}" for problem in problems)
    lines.extend(describe_graph(graph))
    lines.extend(describe_observation(observation))
    if expected is not None:
        lines.append(f"Expected order: {', '.join(str(i) for i in expected.order)}")
        lines.append(f"Expected started: {_flags(expected.started)}")
        lines.append(f"Expected finished: {_flags(expected.finished)}")
        lines.append(f"Expected errored: {_flags(expected.errored)}")
    else:
        lines.append("Expected: weak invariants only (cycle or async evaluation)")
    return "\n".join(lines)
