"""Tests for harness.protocol: the event vocabulary."""

import pytest
from hypothesis import given

from modloadfuzz.diagnostics import DiagnosticCode, ProtocolError
from modloadfuzz.enums import EventKind
from modloadfuzz.harness.protocol import HarnessEvent, format_event, parse_event
from tests.strategies import harness_messages


class TestParseEvent:
    """Known messages."""

    def test_start(self) -> None:
        assert parse_event("start 3") == HarnessEvent(EventKind.START, index=3)

    def test_finish(self) -> None:
        assert parse_event("finish 0") == HarnessEvent(EventKind.FINISH, index=0)

    def test_loaded(self) -> None:
        assert parse_event("loaded") == HarnessEvent(EventKind.LOADED)

    def test_generated_error(self) -> None:
        assert parse_event("error GeneratedError 2") == HarnessEvent(EventKind.NODE_ERROR, index=2)

    def test_page_error_keeps_text(self) -> None:
        event = parse_event("error Uncaught SyntaxError: bad token")
        assert event.kind is EventKind.PAGE_ERROR
        assert event.message == "Uncaught SyntaxError: bad token"


class TestParseEventErrors:
    """Messages outside the vocabulary."""

    @pytest.mark.parametrize("message", ["", "begin 1", "loaded now", "Start 1"])
    def test_unrecognized(self, message: str) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            parse_event(message)
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.EVENT_UNRECOGNIZED

    @pytest.mark.parametrize(
        "message",
        [
            "start",
            "start x",
            "start -1",
            "start 1 2",
            "finish 1.5",
            "error GeneratedError",
            "error GeneratedError 1 2",
        ],
    )
    def test_bad_index(self, message: str) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            parse_event(message)
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.EVENT_INDEX_INVALID


class TestFormatEvent:
    """format_event inverts parse_event."""

    @pytest.mark.parametrize(
        "message", ["start 3", "finish 1", "loaded", "error GeneratedError 4", "error Script error."]
    )
    def test_known_messages(self, message: str) -> None:
        assert format_event(parse_event(message)) == message

    @given(message=harness_messages())
    def test_generated_messages(self, message: str) -> None:
        assert format_event(parse_event(message)) == message
