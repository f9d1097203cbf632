#!/usr/bin/env python3
"""Graph String and Oracle Fuzzer (Atheris).

Targets: modloadfuzz.graph.serializer (parse_graph), modloadfuzz.generator
(generate), modloadfuzz.oracle (TestRun, compute_expected_trace),
modloadfuzz.harness (parse_event, resolve_request)

Concern boundary: graph strings arrive in request paths and permalinks, and
harness messages arrive from a page under test, so both parsers must reject
malformed input with their own error types and nothing else. Generated
graphs must round-trip through their string, never contain a cycle that
could livelock the host, and an idealized host that follows the expected
trace must always get an OK verdict.

Requires Python 3.13+.
"""

from __future__ import annotations

import argparse
import atexit
import gc
import logging
import pathlib
import random
import sys
import time
from collections.abc import Callable
from dataclasses import fields

import atheris

from fuzz_common import (
    GC_INTERVAL,
    BaseFuzzerState,
    build_base_stats_dict,
    build_weighted_schedule,
    emit_checkpoint_report,
    emit_final_report,
    get_process,
    print_fuzzer_banner,
    record_error,
    record_iteration_metrics,
    record_memory,
    run_fuzzer,
    select_pattern_round_robin,
)

# --- Suppress logging and instrument imports ---
logging.getLogger("modloadfuzz").setLevel(logging.CRITICAL)

with atheris.instrument_imports(include=["modloadfuzz"]):
    from modloadfuzz.diagnostics import GraphParseError, ProtocolError
    from modloadfuzz.enums import Verdict
    from modloadfuzz.generator import Probabilities, generate
    from modloadfuzz.graph.model import Graph
    from modloadfuzz.harness.protocol import parse_event
    from modloadfuzz.harness.render import resolve_request
    from modloadfuzz.oracle.expectation import compute_expected_trace
    from modloadfuzz.oracle.run import TestRun


class GraphFuzzError(Exception):
    """Invariant violation found by the fuzzer."""


# --- Pattern weights (cheapest first) ---

_PATTERN_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("parse_event_arbitrary", 10),
    ("parse_graph_arbitrary", 15),
    ("parse_graph_mutated", 15),
    ("resolve_request_arbitrary", 8),
    ("generate_round_trip", 12),
    ("generate_no_livelock", 10),
    ("perfect_host_ok", 10),
)

_PATTERN_SCHEDULE: tuple[str, ...] = build_weighted_schedule(
    [name for name, _ in _PATTERN_WEIGHTS],
    [weight for _, weight in _PATTERN_WEIGHTS],
)

_ALLOWED_EXCEPTIONS = (GraphParseError, ProtocolError)

_state = BaseFuzzerState(
    fuzzer_name="graph_string",
    fuzzer_target="graph serializer, generator, oracle and harness parsers",
    checkpoint_interval=500,
    seed_corpus_max_size=100,
)

_REPORT_DIR = pathlib.Path(".fuzz_atheris_corpus") / "graph_string"
_REPORT_FILENAME = "fuzz_graph_string_report.json"

_GRAPH_ALPHABET = "0123456789;,mentpsdb"


def _emit_report() -> None:
    emit_final_report(_state, build_base_stats_dict(_state), _REPORT_DIR, _REPORT_FILENAME)


atexit.register(_emit_report)


# --- Helpers ---


def _probabilities(fdp: atheris.FuzzedDataProvider) -> Probabilities:
    return Probabilities(**{f.name: fdp.ConsumeProbability() for f in fields(Probabilities)})


def _generated(fdp: atheris.FuzzedDataProvider) -> Graph:
    size = fdp.ConsumeIntInRange(2, 40)
    model = _probabilities(fdp)
    return generate(size, model, rng=random.Random(fdp.ConsumeInt(8)))


def _graph_text(fdp: atheris.FuzzedDataProvider) -> str:
    length = fdp.ConsumeIntInRange(0, 60)
    last = len(_GRAPH_ALPHABET) - 1
    return "".join(_GRAPH_ALPHABET[fdp.ConsumeIntInRange(0, last)] for _ in range(length))


def _cycle_members(graph: Graph) -> list[int]:
    members: list[int] = []
    for node in graph.nodes:
        seen: set[int] = set()
        stack = [edge.target for edge in node.out_edges]
        while stack:
            current = stack.pop()
            if current is node:
                members.append(node.index)
                break
            if current.index in seen:
                continue
            seen.add(current.index)
            stack.extend(edge.target for edge in current.out_edges)
    return members


# --- Patterns ---


def _pattern_parse_event_arbitrary(fdp: atheris.FuzzedDataProvider) -> None:
    parse_event(fdp.ConsumeUnicodeNoSurrogates(fdp.ConsumeIntInRange(0, 40)))


def _check_parsed(text: str) -> None:
    graph = Graph.from_string(text)
    if graph.to_string() != text:
        msg = f"Accepted non-canonical graph string {text!r}"
        raise GraphFuzzError(msg)


def _pattern_parse_graph_arbitrary(fdp: atheris.FuzzedDataProvider) -> None:
    _check_parsed(fdp.ConsumeUnicodeNoSurrogates(fdp.ConsumeIntInRange(0, 80)))


def _pattern_parse_graph_mutated(fdp: atheris.FuzzedDataProvider) -> None:
    text = _generated(fdp).to_string()
    position = fdp.ConsumeIntInRange(0, len(text))
    text = text[:position] + _graph_text(fdp) + text[position + fdp.ConsumeIntInRange(0, 3) :]
    _check_parsed(text)


def _pattern_resolve_request_arbitrary(fdp: atheris.FuzzedDataProvider) -> None:
    text = _generated(fdp).to_string() if fdp.ConsumeBool() else _graph_text(fdp)
    filename = fdp.ConsumeUnicodeNoSurrogates(fdp.ConsumeIntInRange(0, 10))
    resolve_request(f"/graph/{text}/{filename}")


def _pattern_generate_round_trip(fdp: atheris.FuzzedDataProvider) -> None:
    graph = _generated(fdp)
    text = graph.to_string()
    if Graph.from_string(text).structure() != graph.structure():
        msg = f"Round trip changed structure of {text}"
        raise GraphFuzzError(msg)


def _pattern_generate_no_livelock(fdp: atheris.FuzzedDataProvider) -> None:
    graph = _generated(fdp)
    for index in _cycle_members(graph):
        node = graph.get_node(index)
        if node.has_top_level_await or any(edge.is_dynamic for edge in node.out_edges):
            msg = f"Node {index} on a cycle evaluates asynchronously in {graph.to_string()}"
            raise GraphFuzzError(msg)


def _pattern_perfect_host_ok(fdp: atheris.FuzzedDataProvider) -> None:
    model = _probabilities(fdp)
    size = fdp.ConsumeIntInRange(2, 40)
    exact = Probabilities(
        **{f.name: getattr(model, f.name) for f in fields(Probabilities)}
        | {"p_cyclic": 0.0, "p_top_level_await": 0.0, "p_dynamic": 0.0}
    )
    graph = generate(size, exact, rng=random.Random(fdp.ConsumeInt(8)))
    trace = compute_expected_trace(graph)

    run = TestRun(graph)
    for index in trace.order:
        run.feed(f"start {index}")
        if trace.errored[index]:
            run.feed(f"error GeneratedError {index}")
        if trace.finished[index]:
            run.feed(f"finish {index}")
    result = run.feed("loaded")
    if result is None or result.verdict is not Verdict.OK:
        msg = f"Expected trace rejected for {graph.to_string()}: {result}"
        raise GraphFuzzError(msg)


_PATTERN_DISPATCH: dict[str, Callable[[atheris.FuzzedDataProvider], None]] = {
    "parse_event_arbitrary": _pattern_parse_event_arbitrary,
    "parse_graph_arbitrary": _pattern_parse_graph_arbitrary,
    "parse_graph_mutated": _pattern_parse_graph_mutated,
    "resolve_request_arbitrary": _pattern_resolve_request_arbitrary,
    "generate_round_trip": _pattern_generate_round_trip,
    "generate_no_livelock": _pattern_generate_no_livelock,
    "perfect_host_ok": _pattern_perfect_host_ok,
}


# --- Entry point ---


def test_one_input(data: bytes) -> None:
    """Atheris entry point."""
    if _state.iterations == 0:
        _state.initial_memory_mb = get_process().memory_info().rss / (1024 * 1024)

    _state.iterations += 1
    _state.status = "running"

    if _state.iterations % _state.checkpoint_interval == 0:
        emit_checkpoint_report(_state, build_base_stats_dict(_state), _REPORT_DIR, _REPORT_FILENAME)

    start_time = time.perf_counter()
    fdp = atheris.FuzzedDataProvider(data)

    pattern_name = select_pattern_round_robin(_state, _PATTERN_SCHEDULE)
    _state.pattern_coverage[pattern_name] = _state.pattern_coverage.get(pattern_name, 0) + 1

    try:
        _PATTERN_DISPATCH[pattern_name](fdp)

    except GraphFuzzError:
        _state.findings += 1
        raise

    except _ALLOWED_EXCEPTIONS:
        pass  # Expected for adversarial inputs

    except Exception as e:
        _state.findings += 1
        record_error(_state, e)
        raise

    finally:
        record_iteration_metrics(
            _state,
            pattern_name,
            start_time,
            data,
            is_interesting=(time.perf_counter() - start_time) * 1000 > 10.0,
        )
        if _state.iterations % GC_INTERVAL == 0:
            gc.collect()
        if _state.iterations % 100 == 0:
            record_memory(_state)


def main() -> None:
    """Run the graph string fuzzer."""
    parser = argparse.ArgumentParser(description="Graph String and Oracle Fuzzer")
    parser.add_argument(
        "--checkpoint-interval", type=int, default=500,
        help="Emit report every N iterations (default: 500)",
    )
    parser.add_argument(
        "--seed-corpus-size", type=int, default=100,
        help="Max seed corpus entries (default: 100)",
    )

    args, remaining = parser.parse_known_args()
    _state.checkpoint_interval = args.checkpoint_interval
    _state.seed_corpus_max_size = args.seed_corpus_size

    if not any(arg.startswith("-rss_limit_mb") for arg in remaining):
        remaining.append("-rss_limit_mb=4096")

    sys.argv = [sys.argv[0], *remaining]

    print_fuzzer_banner(
        title="Graph String and Oracle Fuzzer (Atheris)",
        state=_state,
        schedule_len=len(_PATTERN_SCHEDULE),
    )
    run_fuzzer(test_one_input)


if __name__ == "__main__":
    main()
