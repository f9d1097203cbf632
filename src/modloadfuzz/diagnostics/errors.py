"""modloadfuzz exception hierarchy with structured diagnostics.

All exceptions store Diagnostic objects for rich error information.
Malformed input and protocol violations raise; assertion failures and
page errors are reported as verdicts by the oracle instead.

Python 3.13+. Zero external dependencies.
"""

from .codes import Diagnostic


class ModLoadFuzzError(Exception):
    """Base exception for all modloadfuzz errors.

    Attributes:
        diagnostic: Structured diagnostic information (optional)
    """

    def __init__(self, message: str | Diagnostic) -> None:
        """Initialize ModLoadFuzzError.

        Args:
            message: Error message string OR Diagnostic object
        """
        if isinstance(message, Diagnostic):
            self.diagnostic: Diagnostic | None = message
            super().__init__(message.format_error())
        else:
            self.diagnostic = None
            super().__init__(message)


class FlagError(ModLoadFuzzError):
    """Error defining a flag table or decoding a flag token."""


class FlagDefinitionError(FlagError):
    """Flag attribute name cannot be mapped to a letter."""


class DuplicateFlagError(FlagDefinitionError):
    """Two flag names derive the same letter.

    Raised when a FlagTable is built, which happens at import time for
    the tables of Node, Edge and Graph.
    """


class UnknownFlagError(FlagError):
    """Flag token contains a letter that no flag maps to."""


class GraphError(ModLoadFuzzError):
    """Base class for graph errors."""


class GraphParseError(GraphError):
    """Serialized graph string is malformed.

    Covers wrong field counts, non-numeric or out-of-range indices, unknown
    flag letters, non-canonical encodings and decoded graphs that violate a
    structural invariant. A GraphParseError never leaves a partial Graph.
    """


class GraphConstructionError(GraphError):
    """Graph built in a way that breaks one of its invariants.

    Example:
        Adding an import to a node whose source has already been generated.
    """


class ProtocolError(ModLoadFuzzError):
    """Harness event outside the vocabulary or naming an invalid node.

    Fatal for the current run: it means the test infrastructure is broken,
    not the host under test.
    """


class RunStateError(ModLoadFuzzError):
    """Operation not valid in the current TestRun state."""


class OracleError(ModLoadFuzzError):
    """Oracle asked for something it cannot compute."""
