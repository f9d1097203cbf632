"""Hypothesis strategies for module graph generation.

Graphs come from ``modloadfuzz.generator.generate`` driven by a drawn seed
and probability model, so every drawn graph satisfies the model invariants
and shrinks through (size, probabilities, seed).

Event-Emitting Strategies (HypoFuzz-Optimized):
    - probabilities: Emits ``strategy=probabilities_{profile}``
    - generated_graphs: Emits ``strategy=graph_{regime}``
    - harness_messages: Emits ``strategy=message_{kind}``

Python 3.13+.
"""

from __future__ import annotations

from dataclasses import fields

from hypothesis import event
from hypothesis import strategies as st
from hypothesis.strategies import composite

from modloadfuzz.generator import Probabilities, generate
from modloadfuzz.graph.model import Graph

__all__ = [
    "generated_graphs",
    "graph_sizes",
    "harness_messages",
    "probabilities",
]

graph_sizes: st.SearchStrategy[int] = st.integers(min_value=2, max_value=12)

_unit = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)


@composite
def probabilities(draw: st.DrawFn, *, exact: bool = False) -> Probabilities:
    """Draw a probability model.

    Args:
        draw: Hypothesis draw function.
        exact: Zero out cycles, top-level await and dynamic imports so the
            generated graphs are exactly predictable.

    Events emitted:
        - ``strategy=probabilities_{profile}``: default, exact or mixed.
    """
    profile = draw(st.sampled_from(["default", "mixed"]))
    if profile == "default" and not exact:
        event("strategy=probabilities_default")
        return Probabilities()

    values = {f.name: draw(_unit) for f in fields(Probabilities)}
    if exact:
        values.update(p_cyclic=0.0, p_top_level_await=0.0, p_dynamic=0.0)
        event("strategy=probabilities_exact")
    else:
        event("strategy=probabilities_mixed")
    return Probabilities(**values)


@composite
def generated_graphs(draw: st.DrawFn, *, exact: bool = False) -> Graph:
    """Draw a generated graph.

    Events emitted:
        - ``strategy=graph_{regime}``: exact, cyclic or async.
    """
    size = draw(graph_sizes)
    model = draw(probabilities(exact=exact))
    seed = draw(st.integers(min_value=0, max_value=2**32 - 1))
    graph = generate(size, model, seed=seed)

    if graph.has_cycle():
        event("strategy=graph_cyclic")
    elif graph.has_async_evaluation():
        event("strategy=graph_async")
    else:
        event("strategy=graph_exact")
    return graph


@composite
def harness_messages(draw: st.DrawFn, *, size: int = 8) -> str:
    """Draw one well-formed harness message for a graph of ``size`` nodes.

    Events emitted:
        - ``strategy=message_{kind}``: start, finish, node_error, page_error.
    """
    kind = draw(st.sampled_from(["start", "finish", "node_error", "page_error"]))
    event(f"strategy=message_{kind}")
    index = draw(st.integers(min_value=0, max_value=size - 1))
    match kind:
        case "start" | "finish":
            return f"{kind} {index}"
        case "node_error":
            return f"error GeneratedError {index}"
        case _:
            text = draw(st.text(alphabet="abcdefghij .:", min_size=1, max_size=20))
            return f"error {text}"
