"""Expected observations for a graph.

Two regimes:

Exact
    The graph has no cycle and nothing evaluates asynchronously. Classic
    scripts run first, in document order. Module scripts are deferred and
    run afterwards, one per import of the document, in declared order.
    Each module script evaluates its dependencies depth-first in post-order,
    sharing already-evaluated modules with earlier scripts. A module script
    whose static closure contains a missing resource fails to fetch and
    evaluates nothing. Once a module throws, the script stops: the modules
    still waiting on it are recorded as started but never finish, and no
    further dependency of that script is evaluated.

Inexact
    The graph has a cycle or async evaluation. Predicting the order would
    mean reimplementing the host's scheduler, so only weak invariants are
    checked.

The document root (index 0) never reports start or finish itself; its
expected buffers are always False.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from modloadfuzz.diagnostics import ErrorTemplate, OracleError
from modloadfuzz.graph.model import Edge, Graph, Node, depth_first_search

from .observation import Observation

__all__ = [
    "ExpectedTrace",
    "check_weak_invariants",
    "compare_trace",
    "compute_expected_trace",
]


@dataclass(frozen=True, slots=True)
class ExpectedTrace:
    """Exact observations predicted for a graph.

    Attributes:
        order: Node indices in expected start order
        started: Whether each node is expected to start
        finished: Whether each node is expected to finish
        errored: Whether each node is expected to report a generated error
    """

    order: tuple[int, ...]
    started: tuple[bool, ...]
    finished: tuple[bool, ...]
    errored: tuple[bool, ...]


class _TraceBuilder:
    def __init__(self, size: int) -> None:
        self.order: list[int] = []
        self.started = [False] * size
        self.finished = [False] * size

    def record(self, node: Node, *, finishes: bool) -> None:
        self.order.append(node.index)
        self.started[node.index] = True
        self.finished[node.index] = finishes


def _static(edge: Edge) -> bool:
    return not edge.is_dynamic


def _fetch_fails(module: Node) -> bool:
    """Whether the static closure of ``module`` contains a missing resource."""
    closure: list[Node] = []
    depth_first_search(module, closure.append, _static)
    return any(node.is_not_found for node in closure)


def _evaluate(
    start: Node,
    trace: _TraceBuilder,
    evaluated: set[Node],
    failed: set[Node],
) -> None:
    """Post-order evaluation of one module script, stopping at the first failure."""
    evaluated.add(start)
    stack: list[tuple[Node, Iterator[Edge]]] = [(start, iter(start.out_edges))]
    failing = False

    while stack:
        node, edges = stack[-1]
        child: Node | None = None
        if not failing:
            for edge in edges:
                target = edge.target
                if target not in evaluated:
                    child = target
                    break
                if target in failed:
                    failing = True
                    break

        if child is not None:
            evaluated.add(child)
            stack.append((child, iter(child.out_edges)))
            continue

        stack.pop()
        finishes = not failing and not node.is_error
        trace.record(node, finishes=finishes)
        if not finishes:
            failed.add(node)
            failing = True


def compute_expected_trace(graph: Graph) -> ExpectedTrace:
    """Predict the exact observations for an exactly predictable graph.

    Pure function of the graph: repeated calls return equal traces.

    Raises:
        OracleError: The graph has a cycle or async evaluation.
    """
    if not graph.is_exactly_predictable():
        raise OracleError(ErrorTemplate.trace_not_predictable())

    trace = _TraceBuilder(graph.size)
    root = graph.root

    for edge in root.out_edges:
        script = edge.target
        if script.is_classic and not script.is_not_found:
            trace.record(script, finishes=not script.is_error)

    evaluated: set[Node] = set()
    failed: set[Node] = set()
    for edge in root.out_edges:
        module = edge.target
        if not module.is_module or module in evaluated:
            continue
        if _fetch_fails(module):
            continue
        _evaluate(module, trace, evaluated, failed)

    errored = tuple(node.is_error and trace.started[node.index] for node in graph.nodes)
    return ExpectedTrace(
        order=tuple(trace.order),
        started=tuple(trace.started),
        finished=tuple(trace.finished),
        errored=errored,
    )


def _join(values: tuple[object, ...]) -> str:
    return ", ".join(str(v).lower() if isinstance(v, bool) else str(v) for v in values)


def compare_trace(
    expected: ExpectedTrace,
    observation: Observation,
    *,
    compare_errors: bool = True,
) -> list[str]:
    """Compare observed buffers with the expected trace.

    Returns:
        One message per mismatching buffer; empty when everything matches.
    """
    pairs: list[tuple[str, tuple[object, ...], tuple[object, ...]]] = [
        ("order", expected.order, tuple(observation.order)),
        ("started", expected.started, tuple(observation.started)),
        ("finished", expected.finished, tuple(observation.finished)),
    ]
    if compare_errors:
        pairs.append(("errored", expected.errored, tuple(observation.errored)))

    return [
        f"Load {name}: expected [{_join(want)}] but got [{_join(got)}]"
        for name, want, got in pairs
        if want != got
    ]


def check_weak_invariants(graph: Graph, observation: Observation) -> list[str]:
    """Check what must hold even when the exact order is unknown.

    Without erroring or missing nodes every script starts and finishes.
    Otherwise erroring scripts never finish and missing scripts never
    start or finish.

    Returns:
        One message per violation; empty when all invariants hold.
    """
    problems: list[str] = []
    scripts = graph.nodes[1:]

    if not graph.has_error() and not graph.has_not_found():
        for node in scripts:
            if not observation.started[node.index]:
                problems.append(f"Node {node.index} never started")
            if not observation.finished[node.index]:
                problems.append(f"Node {node.index} never finished")
        return problems

    for node in scripts:
        if node.is_error and observation.finished[node.index]:
            problems.append(f"Erroring node {node.index} finished")
        if node.is_not_found and observation.started[node.index]:
            problems.append(f"Missing node {node.index} started")
        if node.is_not_found and observation.finished[node.index]:
            problems.append(f"Missing node {node.index} finished")
    return problems
