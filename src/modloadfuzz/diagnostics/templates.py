"""Error message templates.

Centralized error message templates for testable, consistent error messages.
Python 3.13+. Zero external dependencies.
"""

from .codes import Diagnostic, DiagnosticCode


class ErrorTemplate:
    """Centralized error message templates.

    All error messages are created here. NO f-strings in exception constructors!
    Keeps messages testable and documents every error case in one place.
    """

    # ------------------------------------------------------------------
    # Flag codec
    # ------------------------------------------------------------------

    @staticmethod
    def flag_name_invalid(name: str) -> Diagnostic:
        """Flag attribute name lacks an ``is_``/``has_`` prefix or a letter after it."""
        msg = f"Flag name '{name}' must start with 'is_' or 'has_' followed by a letter"
        return Diagnostic(
            code=DiagnosticCode.FLAG_NAME_INVALID,
            message=msg,
            subject=name,
        )

    @staticmethod
    def flag_duplicate_letter(letter: str, first: str, second: str) -> Diagnostic:
        """Two flag names derive the same letter.

        Args:
            letter: The colliding letter
            first: Name that claimed the letter first
            second: Name that collided with it
        """
        msg = f"Flags '{first}' and '{second}' both encode as '{letter}'"
        return Diagnostic(
            code=DiagnosticCode.FLAG_DUPLICATE_LETTER,
            message=msg,
            subject=letter,
            hint="Rename one of the flags so the first letter after its prefix differs",
        )

    @staticmethod
    def flag_unknown_letter(letter: str, position: int) -> Diagnostic:
        """Flag token contains a letter that no flag maps to."""
        msg = f"Unknown flag letter '{letter}'"
        return Diagnostic(
            code=DiagnosticCode.FLAG_UNKNOWN_LETTER,
            message=msg,
            position=position,
            subject=letter,
        )

    # ------------------------------------------------------------------
    # Graph string parsing
    # ------------------------------------------------------------------

    @staticmethod
    def empty_graph_string() -> Diagnostic:
        """Graph string is empty."""
        return Diagnostic(
            code=DiagnosticCode.GRAPH_STRING_EMPTY,
            message="Graph string is empty",
        )

    @staticmethod
    def graph_size_invalid(size: int, minimum: int, maximum: int) -> Diagnostic:
        """Declared node count is outside the accepted range."""
        msg = f"Graph size {size} outside range {minimum}..{maximum}"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_SIZE_INVALID,
            message=msg,
            subject=str(size),
        )

    @staticmethod
    def field_count_mismatch(what: str, expected: int, actual: int, position: int) -> Diagnostic:
        """Number of fields differs from the declared count.

        Args:
            what: Description of the container ("graph", "node 3")
            expected: Declared count
            actual: Count found
            position: Offset of the container in the input
        """
        msg = f"Expected {expected} fields in {what}, found {actual}"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_FIELD_COUNT,
            message=msg,
            position=position,
            hint="Counts are written directly after the flag letters of each header",
        )

    @staticmethod
    def number_invalid(token: str, position: int) -> Diagnostic:
        """Token remainder is not a decimal number."""
        msg = f"Expected a decimal number, found '{token}'"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_NUMBER_INVALID,
            message=msg,
            position=position,
            subject=token,
        )

    @staticmethod
    def index_out_of_range(index: int, size: int, position: int) -> Diagnostic:
        """Edge target index does not name a node."""
        msg = f"Edge target {index} out of range for graph of {size} nodes"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_INDEX_OUT_OF_RANGE,
            message=msg,
            position=position,
            subject=str(index),
            hint="Edge targets must name an existing node",
        )

    @staticmethod
    def flags_invalid(detail: str, position: int) -> Diagnostic:
        """Flag token could not be decoded."""
        msg = f"Invalid flags: {detail}"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_FLAGS_INVALID,
            message=msg,
            position=position,
        )

    @staticmethod
    def not_canonical(text: str, canonical: str) -> Diagnostic:
        """Input decodes to a graph whose encoding is a different string."""
        msg = f"Graph string is not in canonical form (canonical: '{canonical}')"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_NOT_CANONICAL,
            message=msg,
            subject=text,
            hint="Flag letters must appear once each in table order; numbers have no leading zeros",
        )

    @staticmethod
    def invariant_violated(detail: str) -> Diagnostic:
        """Decoded graph breaks a structural invariant."""
        msg = f"Graph invariant violated: {detail}"
        return Diagnostic(
            code=DiagnosticCode.GRAPH_INVARIANT_VIOLATED,
            message=msg,
        )

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    @staticmethod
    def source_already_cached(index: int) -> Diagnostic:
        """Import added to a node whose source text was already generated."""
        msg = f"Cannot add import to node {index} after its source was generated"
        return Diagnostic(
            code=DiagnosticCode.SOURCE_ALREADY_CACHED,
            message=msg,
            subject=str(index),
        )

    @staticmethod
    def graph_already_serialized() -> Diagnostic:
        """Graph mutated after its string identity was computed."""
        return Diagnostic(
            code=DiagnosticCode.GRAPH_ALREADY_SERIALIZED,
            message="Cannot modify a graph after it has been serialized",
        )

    @staticmethod
    def node_index_mismatch(index: int, position: int) -> Diagnostic:
        """Node appended at a position other than its index."""
        msg = f"Node {index} added at position {position}"
        return Diagnostic(
            code=DiagnosticCode.NODE_INDEX_MISMATCH,
            message=msg,
            subject=str(index),
        )

    @staticmethod
    def import_not_allowed(source: int, target: int, reason: str) -> Diagnostic:
        """Edge would break a graph invariant."""
        msg = f"Node {source} cannot import node {target}: {reason}"
        return Diagnostic(
            code=DiagnosticCode.IMPORT_NOT_ALLOWED,
            message=msg,
            subject=f"{source} -> {target}",
        )

    # ------------------------------------------------------------------
    # Harness protocol
    # ------------------------------------------------------------------

    @staticmethod
    def event_unrecognized(message: str) -> Diagnostic:
        """Harness sent a message outside the event vocabulary."""
        msg = f"Unexpected harness message: {message!r}"
        return Diagnostic(
            code=DiagnosticCode.EVENT_UNRECOGNIZED,
            message=msg,
            subject=message,
            hint="Expected start <i>, finish <i>, error <message> or loaded",
        )

    @staticmethod
    def event_index_invalid(message: str) -> Diagnostic:
        """Harness event lacks a numeric node index."""
        msg = f"Bad index in harness message: {message!r}"
        return Diagnostic(
            code=DiagnosticCode.EVENT_INDEX_INVALID,
            message=msg,
            subject=message,
        )

    @staticmethod
    def event_index_out_of_range(index: int, size: int) -> Diagnostic:
        """Harness event names a node the graph does not have."""
        msg = f"Harness reported node {index} but the graph has {size} nodes"
        return Diagnostic(
            code=DiagnosticCode.EVENT_INDEX_OUT_OF_RANGE,
            message=msg,
            subject=str(index),
        )

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------

    @staticmethod
    def run_already_concluded(event: str) -> Diagnostic:
        """Event delivered after the run reached a verdict."""
        msg = f"Test run already concluded; cannot apply {event!r}"
        return Diagnostic(
            code=DiagnosticCode.RUN_ALREADY_CONCLUDED,
            message=msg,
            subject=event,
            hint="Start a new TestRun (or reset this one) for the next page load",
        )

    @staticmethod
    def trace_not_predictable() -> Diagnostic:
        """Exact trace requested for a graph with cycles or async evaluation."""
        return Diagnostic(
            code=DiagnosticCode.TRACE_NOT_PREDICTABLE,
            message="Exact trace is only defined for acyclic graphs without async evaluation",
            hint="Use check_weak_invariants() for this graph",
        )
