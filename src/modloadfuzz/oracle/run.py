"""One test run: a graph, its observation buffers and the verdict.

Lifecycle::

    BUILT ──first event──▶ OBSERVING ──loaded / page error──▶ CONCLUDED
      ▲                                                          │
      └──────────────────────────── reset() ─────────────────────┘

A TestRun is owned by whoever drives the harness; nothing here is global,
so independent runs can proceed side by side. The oracle does not care in
which order events arrive, only that the buffers are checked once a
terminal signal is received.

A message outside the harness vocabulary also concludes the run, without
a verdict: the buffers no longer describe what the page did.

Python 3.13+.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from modloadfuzz.diagnostics import ErrorTemplate, ProtocolError, RunStateError
from modloadfuzz.enums import EventKind, RunState, Verdict
from modloadfuzz.graph.model import Graph
from modloadfuzz.harness.protocol import HarnessEvent, format_event, parse_event

from .expectation import check_weak_invariants, compare_trace, compute_expected_trace
from .observation import Observation
from .report import build_report

__all__ = ["RunConfig", "RunResult", "TestRun"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Oracle options.

    Attributes:
        compare_errors: The harness distinguishes generated errors per node,
            so the errored buffer is compared in the exact case.
    """

    compare_errors: bool = True


@dataclass(frozen=True, slots=True)
class RunResult:
    """Verdict of a concluded run.

    Attributes:
        verdict: OK, FAIL or ERROR
        reason: First mismatch for FAIL, page error text for ERROR
        report: Full diagnostic dump (graph plus buffers); empty for OK
    """

    verdict: Verdict
    reason: str = ""
    report: str = ""

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.OK


class TestRun:
    """Observation state and verdict for one page load of one graph.

    Example:
        >>> run = TestRun(Graph.from_string("2;1,1;m0"))
        >>> for message in ("start 1", "finish 1"):
        ...     run.feed(message)
        >>> run.feed("loaded").verdict
        <Verdict.OK: 'OK'>
    """

    __test__ = False  # not a pytest test class

    def __init__(self, graph: Graph, config: RunConfig | None = None) -> None:
        self.graph = graph
        self.config = config or RunConfig()
        self.observation = Observation.empty(graph.size)
        self._state = RunState.BUILT
        self._result: RunResult | None = None

    def __repr__(self) -> str:
        return f"TestRun(graph={self.graph.to_string()!r}, state={self._state.value!r})"

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result(self) -> RunResult | None:
        """Verdict once concluded; None while observing or after discard()."""
        return self._result

    def reset(self) -> None:
        """Clear the buffers and return to BUILT for another page load."""
        self.observation = Observation.empty(self.graph.size)
        self._state = RunState.BUILT
        self._result = None

    def discard(self) -> None:
        """Cancel the run: conclude without a verdict."""
        if self._state is not RunState.CONCLUDED:
            logger.debug("Discarding run of %s", self.graph.to_string())
        self._state = RunState.CONCLUDED
        self._result = None

    def feed(self, message: str) -> RunResult | None:
        """Parse and apply one harness message.

        Returns:
            The RunResult when the message concludes the run, else None.

        Raises:
            ProtocolError: Message outside the vocabulary or bad index. The
                run is concluded without a verdict.
            RunStateError: The run has already concluded.
        """
        if self._state is RunState.CONCLUDED:
            raise RunStateError(ErrorTemplate.run_already_concluded(message))
        try:
            event = parse_event(message)
        except ProtocolError as e:
            self._abandon(e)
            raise
        return self.apply(event)

    def apply(self, event: HarnessEvent) -> RunResult | None:
        """Fold one event into the buffers; conclude on a terminal event.

        Raises:
            ProtocolError: The event names a node the graph does not have.
                The run is concluded without a verdict.
            RunStateError: The run has already concluded.
        """
        if self._state is RunState.CONCLUDED:
            raise RunStateError(ErrorTemplate.run_already_concluded(format_event(event)))

        if event.index is not None and not 0 <= event.index < self.graph.size:
            error = ProtocolError(
                ErrorTemplate.event_index_out_of_range(event.index, self.graph.size)
            )
            self._abandon(error)
            raise error

        self._state = RunState.OBSERVING
        logger.debug("Event: %s", format_event(event))

        match event:
            case HarnessEvent(kind=EventKind.START, index=int() as index):
                self.observation.record_start(index)
            case HarnessEvent(kind=EventKind.FINISH, index=int() as index):
                self.observation.record_finish(index)
            case HarnessEvent(kind=EventKind.NODE_ERROR, index=int() as index):
                self.observation.record_error(index)
            case HarnessEvent(kind=EventKind.LOADED):
                return self._conclude(self.check())
            case HarnessEvent(kind=EventKind.PAGE_ERROR):
                report = build_report(self.graph, self.observation)
                return self._conclude(RunResult(Verdict.ERROR, reason=event.message, report=report))
            case _:
                error = ProtocolError(ErrorTemplate.event_index_invalid(format_event(event)))
                self._abandon(error)
                raise error
        return None

    def check(self) -> RunResult:
        """Compare the current buffers against the graph's expectation."""
        if self.graph.is_exactly_predictable():
            expected = compute_expected_trace(self.graph)
            problems = compare_trace(
                expected, self.observation, compare_errors=self.config.compare_errors
            )
        else:
            expected = None
            problems = check_weak_invariants(self.graph, self.observation)

        if not problems:
            return RunResult(Verdict.OK)

        report = build_report(self.graph, self.observation, expected=expected, problems=problems)
        return RunResult(Verdict.FAIL, reason=problems[0], report=report)

    def _abandon(self, error: ProtocolError) -> None:
        logger.warning("Run of %s stopped: %s", self.graph.to_string(), error)
        self._state = RunState.CONCLUDED
        self._result = None

    def _conclude(self, result: RunResult) -> RunResult:
        self._state = RunState.CONCLUDED
        self._result = result
        if result.ok:
            logger.info("Test finished: %s", result.verdict)
        else:
            logger.warning("Test finished: %s %s", result.verdict, result.reason)
        return result
