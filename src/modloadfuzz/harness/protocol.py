"""Harness event vocabulary.

The page-loading harness relays one text message per event:

    start <index>
    finish <index>
    error GeneratedError <index>   a generated script threw
    error <message>                the page itself failed
    loaded                         the page believes it is done

Anything else is a protocol violation: the test infrastructure is broken,
so parsing raises instead of producing a verdict.

Python 3.13+.
"""

import re
from dataclasses import dataclass

from modloadfuzz.constants import GENERATED_ERROR_NAME
from modloadfuzz.diagnostics import ErrorTemplate, ProtocolError
from modloadfuzz.enums import EventKind

__all__ = ["HarnessEvent", "format_event", "parse_event"]

_INDEX = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class HarnessEvent:
    """One decoded harness message.

    Attributes:
        kind: Event kind
        index: Node index for start, finish and generated errors
        message: Page error text for PAGE_ERROR
    """

    kind: EventKind
    index: int | None = None
    message: str = ""


def _parse_index(token: str | None, message: str) -> int:
    if token is None or _INDEX.fullmatch(token) is None:
        raise ProtocolError(ErrorTemplate.event_index_invalid(message))
    return int(token)


def parse_event(message: str) -> HarnessEvent:
    """Decode one harness message.

    Raises:
        ProtocolError: Unknown event word, or a missing/non-numeric index.

    Example:
        >>> parse_event("start 3")
        HarnessEvent(kind=<EventKind.START: 'start'>, index=3, message='')
        >>> parse_event("error Script error.").kind
        <EventKind.PAGE_ERROR: 'page_error'>
    """
    words = message.split(" ")
    reason = words[0]

    match reason:
        case "start" | "finish":
            if len(words) > 2:
                raise ProtocolError(ErrorTemplate.event_index_invalid(message))
            index = _parse_index(words[1] if len(words) == 2 else None, message)
            kind = EventKind.START if reason == "start" else EventKind.FINISH
            return HarnessEvent(kind, index=index)
        case "loaded" if len(words) == 1:
            return HarnessEvent(EventKind.LOADED)
        case "error":
            if len(words) > 1 and words[1] == GENERATED_ERROR_NAME:
                if len(words) > 3:
                    raise ProtocolError(ErrorTemplate.event_index_invalid(message))
                index = _parse_index(words[2] if len(words) == 3 else None, message)
                return HarnessEvent(EventKind.NODE_ERROR, index=index)
            return HarnessEvent(EventKind.PAGE_ERROR, message=message[len("error ") :])
        case _:
            raise ProtocolError(ErrorTemplate.event_unrecognized(message))


def format_event(event: HarnessEvent) -> str:
    """Encode an event as the harness would send it."""
    match event.kind:
        case EventKind.START:
            return f"start {event.index}"
        case EventKind.FINISH:
            return f"finish {event.index}"
        case EventKind.NODE_ERROR:
            return f"error {GENERATED_ERROR_NAME} {event.index}"
        case EventKind.PAGE_ERROR:
            return f"error {event.message}"
        case EventKind.LOADED:
            return "loaded"
