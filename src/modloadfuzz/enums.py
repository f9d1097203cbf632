"""Enumerations for modloadfuzz type-safe constants.

Uses StrEnum (Python 3.11+) for automatic string conversion.
StrEnum members are strings themselves, eliminating boilerplate __str__ methods.

Python 3.13+.
"""

from enum import StrEnum


class ImportMapKind(StrEnum):
    """How the root document declares its import map.

    StrEnum provides automatic string conversion: str(ImportMapKind.STATIC) == "static"
    """

    NONE = "none"
    """No import map; bare specifiers cannot be used."""

    STATIC = "static"
    """Inline <script type="importmap"> in the document."""

    DYNAMIC = "dynamic"
    """Import map inserted by a classic script while the document is parsed."""


class EventKind(StrEnum):
    """Kind of message relayed by the page-loading harness."""

    START = "start"
    """A script began evaluating: start <index>"""

    FINISH = "finish"
    """A script completed evaluating: finish <index>"""

    NODE_ERROR = "node_error"
    """A generated script threw: error GeneratedError <index>"""

    PAGE_ERROR = "page_error"
    """Out-of-band failure of the page itself: error <message>"""

    LOADED = "loaded"
    """Terminal signal: the page believes it has finished running."""


class RunState(StrEnum):
    """Lifecycle of one TestRun."""

    BUILT = "built"
    OBSERVING = "observing"
    CONCLUDED = "concluded"


class Verdict(StrEnum):
    """Outcome of a concluded TestRun."""

    OK = "OK"
    """Observed trace matches the expectation."""

    FAIL = "FAIL"
    """Observed trace diverges from the expectation or an invariant is violated."""

    ERROR = "ERROR"
    """The page itself failed out of band; the prediction was never checked."""


__all__ = [
    "EventKind",
    "ImportMapKind",
    "RunState",
    "Verdict",
]
