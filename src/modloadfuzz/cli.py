"""Command line interface.

Usage:
    modloadfuzz generate --size 6 --seed 1 --p-error 0.2
    modloadfuzz describe 's3;1,1;m1,b2;m0'
    modloadfuzz expect '3;1,1;m1,2;m0'
    modloadfuzz check '3;1,1;m1,2;m0' --events trace.txt
    modloadfuzz render '3;1,1;m1,2;m0' 0.html

Exit Codes (check):
    0   OK
    1   FAIL
    2   ERROR (page failed out of band)
    3   Malformed graph string or harness protocol violation

Python 3.13+.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from dataclasses import fields
from pathlib import Path
from typing import TextIO

from modloadfuzz.diagnostics import ModLoadFuzzError
from modloadfuzz.enums import RunState, Verdict
from modloadfuzz.generator import Probabilities, generate
from modloadfuzz.graph.model import Graph
from modloadfuzz.harness.render import RenderConfig, render_source
from modloadfuzz.oracle.expectation import compute_expected_trace
from modloadfuzz.oracle.report import describe_graph
from modloadfuzz.oracle.run import RunConfig, TestRun

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)

EXIT_CODES: dict[Verdict, int] = {Verdict.OK: 0, Verdict.FAIL: 1, Verdict.ERROR: 2}
EXIT_MALFORMED = 3


def _probabilities(args: argparse.Namespace) -> Probabilities:
    values: dict[str, float] = {}
    if args.config is not None:
        loaded = json.loads(Path(args.config).read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            msg = f"Config file {args.config} must hold a JSON object of probabilities"
            raise ValueError(msg)
        values.update(loaded)
    for f in fields(Probabilities):
        value = getattr(args, f.name)
        if value is not None:
            values[f.name] = value
    return Probabilities.from_mapping(values)


def _cmd_generate(args: argparse.Namespace, out: TextIO) -> int:
    probabilities = _probabilities(args)
    rng = random.Random(args.seed)
    for _ in range(args.count):
        size = args.size if args.size is not None else 2 + rng.randrange(8)
        graph = generate(size, probabilities, rng=rng)
        print(graph.to_string(), file=out)
    return 0


def _cmd_describe(args: argparse.Namespace, out: TextIO) -> int:
    graph = Graph.from_string(args.graph)
    print("\n".join(describe_graph(graph)), file=out)
    return 0


def _cmd_expect(args: argparse.Namespace, out: TextIO) -> int:
    graph = Graph.from_string(args.graph)
    if not graph.is_exactly_predictable():
        print("inexact: weak invariants only (cycle or async evaluation)", file=out)
        return 0
    trace = compute_expected_trace(graph)
    print(f"order: {' '.join(str(i) for i in trace.order)}", file=out)
    for name in ("started", "finished", "errored"):
        indices = [str(i) for i, flag in enumerate(getattr(trace, name)) if flag]
        print(f"{name}: {' '.join(indices)}", file=out)
    return 0


def _cmd_check(args: argparse.Namespace, out: TextIO) -> int:
    graph = Graph.from_string(args.graph)
    run = TestRun(graph, RunConfig(compare_errors=not args.ignore_errors))

    if args.events == "-":
        lines = sys.stdin.read().splitlines()
    else:
        lines = Path(args.events).read_text(encoding="utf-8").splitlines()

    for line in lines:
        if not line.strip():
            continue
        run.feed(line.strip())
        if run.state is RunState.CONCLUDED:
            break

    if run.result is None:
        # No terminal signal: check what was accumulated, as on a harness timeout.
        logger.warning("No 'loaded' event received; checking accumulated buffers")
        result = run.check()
    else:
        result = run.result

    print(f"Test finished: {result.verdict} {result.reason}".rstrip(), file=out)
    if result.report:
        print(result.report, file=out)
    return EXIT_CODES[result.verdict]


def _cmd_render(args: argparse.Namespace, out: TextIO) -> int:
    graph = Graph.from_string(args.graph)
    filenames = {node.filename: node for node in graph.nodes}
    node = filenames.get(args.file)
    if node is None:
        print(f"[ERROR] No file {args.file} in graph", file=sys.stderr)
        return EXIT_MALFORMED
    out.write(render_source(graph, node, RenderConfig()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``modloadfuzz`` command."""
    parser = argparse.ArgumentParser(
        prog="modloadfuzz",
        description="Generate module graphs and check observed load order against an oracle.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Print random graph strings")
    gen.add_argument("--size", type=int, default=None, help="Node count (default: random 2..9)")
    gen.add_argument("--count", type=int, default=1, help="Number of graphs")
    gen.add_argument("--seed", type=int, default=None, help="Random seed")
    gen.add_argument("--config", default=None, help="JSON file of probabilities")
    for f in fields(Probabilities):
        gen.add_argument(f"--{f.name.replace('_', '-')}", dest=f.name, type=float, default=None)
    gen.set_defaults(handler=_cmd_generate)

    describe = sub.add_parser("describe", help="List the nodes and edges of a graph")
    describe.add_argument("graph")
    describe.set_defaults(handler=_cmd_describe)

    expect = sub.add_parser("expect", help="Print the expected trace of a graph")
    expect.add_argument("graph")
    expect.set_defaults(handler=_cmd_expect)

    check = sub.add_parser("check", help="Check harness messages against the oracle")
    check.add_argument("graph")
    check.add_argument("--events", default="-", help="File of harness messages (default: stdin)")
    check.add_argument(
        "--ignore-errors",
        action="store_true",
        help="Harness cannot report per-node errors; do not compare them",
    )
    check.set_defaults(handler=_cmd_check)

    render = sub.add_parser("render", help="Print the source of one served file")
    render.add_argument("graph")
    render.add_argument("file", help="File name, e.g. 0.html or 3.mjs")
    render.set_defaults(handler=_cmd_render)

    return parser


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    stream = out if out is not None else sys.stdout

    try:
        return args.handler(args, stream)
    except ModLoadFuzzError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_MALFORMED
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_MALFORMED


if __name__ == "__main__":
    sys.exit(main())
