"""modloadfuzz - Fuzzer and oracle for a host's script and module loading order.

Generates random dependency graphs of classic scripts and modules, renders
each graph as a servable test page, and checks the start/finish/error trace
the host reports against the order the graph demands.

Public API:
    Graph, Node, Edge - Test-case data model; Graph.to_string() is the permalink
    generate - Random graph generation under a Probabilities model
    TestRun - One page load: folds harness events and produces a verdict
    compute_expected_trace - Exact prediction for acyclic, synchronous graphs
    resolve_request - Map a request path to the file a server should return

Exceptions:
    ModLoadFuzzError - Base exception class
    GraphParseError - Malformed or non-canonical graph strings
    GraphConstructionError - Edges or flags that break a graph invariant
    ProtocolError - Harness messages outside the event vocabulary

Submodules:
    modloadfuzz.core - Flag letter tables
    modloadfuzz.graph - Model and serializer
    modloadfuzz.oracle - Expectations, comparisons and reports
    modloadfuzz.harness - Event protocol and page rendering
    modloadfuzz.diagnostics - Error types, codes and formatting
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

from .diagnostics import (
    GraphConstructionError,
    GraphParseError,
    ModLoadFuzzError,
    OracleError,
    ProtocolError,
    RunStateError,
)
from .enums import EventKind, ImportMapKind, RunState, Verdict
from .generator import Probabilities, generate
from .graph import Edge, Graph, Node, depth_first_search
from .harness import HarnessEvent, RenderConfig, parse_event, render_source, resolve_request
from .oracle import ExpectedTrace, RunConfig, RunResult, TestRun, compute_expected_trace

# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
try:
    __version__ = _get_version("modloadfuzz")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "Edge",
    "EventKind",
    "ExpectedTrace",
    "Graph",
    "GraphConstructionError",
    "GraphParseError",
    "HarnessEvent",
    "ImportMapKind",
    "ModLoadFuzzError",
    "Node",
    "OracleError",
    "Probabilities",
    "ProtocolError",
    "RenderConfig",
    "RunConfig",
    "RunResult",
    "RunState",
    "RunStateError",
    "TestRun",
    "Verdict",
    "__version__",
    "compute_expected_trace",
    "depth_first_search",
    "generate",
    "parse_event",
    "render_source",
    "resolve_request",
]
