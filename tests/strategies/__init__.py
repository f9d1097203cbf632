"""Hypothesis strategies for modloadfuzz property-based testing.

Usage:
    from tests.strategies import generated_graphs, probabilities

Event-Emitting Strategies (HypoFuzz-Optimized):
    These strategies emit hypothesis.event() calls for coverage-guided fuzzing:
    - probabilities: ``strategy=probabilities_{profile}``
    - generated_graphs: ``strategy=graph_{regime}``
    - harness_messages: ``strategy=message_{kind}``
"""

from .graph import generated_graphs, graph_sizes, harness_messages, probabilities

__all__ = [
    "generated_graphs",
    "graph_sizes",
    "harness_messages",
    "probabilities",
]
