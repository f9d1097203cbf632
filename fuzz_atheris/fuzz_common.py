"""Shared fuzzing infrastructure for Atheris-based fuzzers.

Provides observability, metrics and reporting used by the fuzz targets.
Each fuzzer composes BaseFuzzerState with its own pattern schedule.

Not a fuzz target itself.
"""

from __future__ import annotations

import hashlib
import json
import os
import pathlib
import statistics
import sys
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

import psutil

# --- PEP 695 Type Aliases ---

FuzzStats: TypeAlias = dict[str, int | str | float | list[Any]]

# --- Constants ---

GC_INTERVAL = 256
"""Periodic gc.collect() interval to reclaim Atheris instrumentation cycles."""


# --- Process Handle (lazy singleton) ---

_process: psutil.Process | None = None


def get_process() -> psutil.Process:
    """Lazy-initialize psutil process handle."""
    global _process  # noqa: PLW0603
    if _process is None:
        _process = psutil.Process(os.getpid())
    return _process


# --- Base Fuzzer State ---


@dataclass
class BaseFuzzerState:
    """Common observability state shared by all fuzzers."""

    fuzzer_name: str = ""
    fuzzer_target: str = ""

    iterations: int = 0
    findings: int = 0
    status: str = "incomplete"

    performance_history: deque[float] = field(default_factory=lambda: deque(maxlen=10000))
    memory_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000))
    initial_memory_mb: float = 0.0

    pattern_coverage: dict[str, int] = field(default_factory=dict)
    pattern_wall_time: dict[str, float] = field(default_factory=dict)
    error_counts: dict[str, int] = field(default_factory=dict)

    seed_corpus: dict[str, bytes] = field(default_factory=dict)
    checkpoint_interval: int = 500
    seed_corpus_max_size: int = 500


# --- Weighted Schedule ---


def build_weighted_schedule(items: Sequence[str], weights: Sequence[int]) -> tuple[str, ...]:
    """Expand items into a schedule where each appears ``weight`` times."""
    schedule: list[str] = []
    for item, weight in zip(items, weights, strict=True):
        schedule.extend([item] * weight)
    return tuple(schedule)


def select_pattern_round_robin(state: BaseFuzzerState, schedule: tuple[str, ...]) -> str:
    """Cycle through the schedule by iteration count.

    Immune to libFuzzer's coverage feedback skewing a byte-driven selector.
    Callers increment state.iterations first, so iteration 1 maps to index 0.
    """
    return schedule[(state.iterations - 1) % len(schedule)]


# --- Metrics ---


def hash_input(data: bytes) -> str:
    """Truncated SHA-256 hex digest for corpus deduplication."""
    return hashlib.sha256(data).hexdigest()[:16]


def record_memory(state: BaseFuzzerState) -> None:
    """Sample current RSS memory usage (call every ~100 iterations)."""
    state.memory_history.append(get_process().memory_info().rss / (1024 * 1024))


def record_iteration_metrics(
    state: BaseFuzzerState,
    pattern: str,
    start_time: float,
    input_data: bytes,
    *,
    is_interesting: bool,
) -> None:
    """Record timing and keep interesting inputs. Call from a finally block."""
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    state.performance_history.append(elapsed_ms)
    state.pattern_wall_time[pattern] = state.pattern_wall_time.get(pattern, 0.0) + elapsed_ms

    if is_interesting:
        state.seed_corpus[hash_input(input_data)] = input_data
        if len(state.seed_corpus) > state.seed_corpus_max_size:
            del state.seed_corpus[next(iter(state.seed_corpus))]


def record_error(state: BaseFuzzerState, error: BaseException) -> None:
    """Count an unexpected exception by type and message prefix."""
    key = f"{type(error).__name__}_{str(error)[:30]}"
    state.error_counts[key] = state.error_counts.get(key, 0) + 1


def build_base_stats_dict(state: BaseFuzzerState) -> FuzzStats:
    """Stats dictionary for the JSON report."""
    stats: FuzzStats = {
        "fuzzer": state.fuzzer_name,
        "status": state.status,
        "iterations": state.iterations,
        "findings": state.findings,
        "seed_corpus_size": len(state.seed_corpus),
    }

    if state.performance_history:
        perf = list(state.performance_history)
        stats["perf_mean_ms"] = round(statistics.mean(perf), 3)
        stats["perf_max_ms"] = round(max(perf), 3)
        if len(perf) >= 100:
            stats["perf_p99_ms"] = round(statistics.quantiles(perf, n=100)[98], 3)

    if state.memory_history:
        memory = list(state.memory_history)
        stats["memory_peak_mb"] = round(max(memory), 2)
        stats["memory_delta_mb"] = round(max(memory) - state.initial_memory_mb, 2)

    for pattern, count in sorted(state.pattern_coverage.items()):
        stats[f"pattern_{pattern}"] = count
    for pattern, total_ms in sorted(state.pattern_wall_time.items()):
        stats[f"wall_time_ms_{pattern}"] = round(total_ms, 1)
    for error_type, count in sorted(state.error_counts.items()):
        stats[f"error_{error_type[:50]}"] = count
    return stats


# --- Reporting ---


def _write_report(stats: FuzzStats, report_dir: pathlib.Path, report_filename: str) -> None:
    try:
        report_dir.mkdir(parents=True, exist_ok=True)
        (report_dir / report_filename).write_text(json.dumps(stats, sort_keys=True), encoding="utf-8")
    except OSError as e:
        print(f"[WARN] Could not write report: {e}", file=sys.stderr)


def emit_checkpoint_report(
    state: BaseFuzzerState,
    stats: FuzzStats,
    report_dir: pathlib.Path,
    report_filename: str,
) -> None:
    """Print a periodic checkpoint and refresh the report file."""
    state.status = "running"
    stats["status"] = state.status
    report = json.dumps(stats, sort_keys=True)
    print(f"[CHECKPOINT] {state.fuzzer_name} {report}", file=sys.stderr, flush=True)
    _write_report(stats, report_dir, report_filename)


def emit_final_report(
    state: BaseFuzzerState,
    stats: FuzzStats,
    report_dir: pathlib.Path,
    report_filename: str,
) -> None:
    """Emit the JSON summary to stderr and to the report file."""
    state.status = "complete"
    stats["status"] = state.status
    report = json.dumps(stats, sort_keys=True)
    print(f"\n[SUMMARY-JSON-BEGIN]{report}[SUMMARY-JSON-END]", file=sys.stderr, flush=True)
    _write_report(stats, report_dir, report_filename)


def print_fuzzer_banner(*, title: str, state: BaseFuzzerState, schedule_len: int) -> None:
    """Print the startup banner."""
    print("=" * 80, file=sys.stderr)
    print(title, file=sys.stderr)
    print("=" * 80, file=sys.stderr)
    print(f"Target:     {state.fuzzer_target}", file=sys.stderr)
    print(f"Checkpoint: every {state.checkpoint_interval} iterations", file=sys.stderr)
    print(f"Schedule:   {schedule_len} slots", file=sys.stderr)
    print("=" * 80, file=sys.stderr, flush=True)


def run_fuzzer(test_one_input: Callable[[bytes], None]) -> None:
    """Hand sys.argv to libFuzzer and start fuzzing."""
    import atheris  # noqa: PLC0415

    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()
