"""Diagnostic codes and data structures.

Defines error codes and diagnostic messages.
Python 3.13+. Zero external dependencies.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
]


class DiagnosticCode(Enum):
    """Error codes with unique identifiers.

    Organized by category:
        1000-1999: Flag codec errors
        2000-2999: Graph string parse errors
        3000-3999: Graph construction errors
        4000-4999: Harness protocol errors
        5000-5999: Oracle and run lifecycle errors
    """

    # Flag codec (1000-1999)
    FLAG_NAME_INVALID = 1001
    FLAG_DUPLICATE_LETTER = 1002
    FLAG_UNKNOWN_LETTER = 1003

    # Graph string parsing (2000-2999)
    GRAPH_STRING_EMPTY = 2001
    GRAPH_SIZE_INVALID = 2002
    GRAPH_FIELD_COUNT = 2003
    GRAPH_NUMBER_INVALID = 2004
    GRAPH_INDEX_OUT_OF_RANGE = 2005
    GRAPH_FLAGS_INVALID = 2006
    GRAPH_NOT_CANONICAL = 2007
    GRAPH_INVARIANT_VIOLATED = 2008

    # Graph construction (3000-3999)
    SOURCE_ALREADY_CACHED = 3001
    GRAPH_ALREADY_SERIALIZED = 3002
    NODE_INDEX_MISMATCH = 3003
    IMPORT_NOT_ALLOWED = 3004

    # Harness protocol (4000-4999)
    EVENT_UNRECOGNIZED = 4001
    EVENT_INDEX_INVALID = 4002
    EVENT_INDEX_OUT_OF_RANGE = 4003

    # Oracle (5000-5999)
    RUN_ALREADY_CONCLUDED = 5001
    TRACE_NOT_PREDICTABLE = 5002


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Structured diagnostic message.

    Attributes:
        code: Unique error code
        message: Human-readable error description
        position: Character offset into the offending input (None if not applicable)
        subject: Offending token, event or entity, as text
        hint: Suggestion for fixing the error
        severity: Error severity level
    """

    code: DiagnosticCode
    message: str
    position: int | None = None
    subject: str | None = None
    hint: str | None = None
    severity: Literal["error", "warning"] = "error"

    def __str__(self) -> str:
        """Return human-readable error description."""
        return self.message

    def format_error(self) -> str:
        """Format diagnostic in the default multi-line style.

        Example output:
            error[GRAPH_INDEX_OUT_OF_RANGE]: Edge target 7 out of range for graph of 3 nodes
              --> position 12
              = subject: 7
              = help: Edge targets must name an existing node

        Returns:
            Formatted error message
        """
        from .formatter import DiagnosticFormatter  # noqa: PLC0415 - circular

        return DiagnosticFormatter().format(self)
