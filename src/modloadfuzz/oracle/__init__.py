"""Oracle: expected observations, comparison and verdicts.

Exports:
    TestRun, RunConfig, RunResult: One page load of one graph
    Observation: Accumulated start/finish/error buffers
    ExpectedTrace, compute_expected_trace: Exact prediction
    compare_trace, check_weak_invariants: Checks producing failure messages
    build_report: Diagnostic dump for failing runs

Python 3.13+.
"""

from .expectation import (
    ExpectedTrace,
    check_weak_invariants,
    compare_trace,
    compute_expected_trace,
)
from .observation import Observation
from .report import build_report, describe_graph, describe_observation
from .run import RunConfig, RunResult, TestRun

__all__ = [
    "ExpectedTrace",
    "Observation",
    "RunConfig",
    "RunResult",
    "TestRun",
    "build_report",
    "check_weak_invariants",
    "compare_trace",
    "compute_expected_trace",
    "describe_graph",
    "describe_observation",
]
