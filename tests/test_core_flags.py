"""Tests for core.flags letter tables.

Covers letter derivation, collision detection at table construction,
encoding in table order and greedy decoding of leading letters.
"""

from dataclasses import dataclass

import pytest
from hypothesis import given
from hypothesis import strategies as st

from modloadfuzz.core.flags import FlagTable, decode_flags, encode_flags
from modloadfuzz.diagnostics import (
    DiagnosticCode,
    DuplicateFlagError,
    FlagDefinitionError,
    FlagError,
    UnknownFlagError,
)
from modloadfuzz.graph.model import EDGE_FLAGS, GRAPH_FLAGS, NODE_FLAGS


@dataclass
class _Record:
    is_module: bool = False
    is_error: bool = False


_TABLE = FlagTable(("is_module", "is_error"))


# ============================================================================
# TABLE CONSTRUCTION
# ============================================================================


class TestFlagTableConstruction:
    """Letters are derived and checked when a table is built."""

    def test_letter_is_first_letter_after_prefix(self) -> None:
        table = FlagTable(("is_module", "has_top_level_await"))
        assert table.letter_for("is_module") == "m"
        assert table.letter_for("has_top_level_await") == "t"

    def test_name_for_unmapped_letter_is_none(self) -> None:
        assert _TABLE.name_for("m") == "is_module"
        assert _TABLE.name_for("z") is None

    def test_duplicate_letter_rejected(self) -> None:
        with pytest.raises(DuplicateFlagError) as exc_info:
            FlagTable(("is_error", "is_empty"))
        assert exc_info.value.diagnostic is not None
        assert exc_info.value.diagnostic.code is DiagnosticCode.FLAG_DUPLICATE_LETTER
        assert "is_error" in str(exc_info.value)
        assert "is_empty" in str(exc_info.value)

    def test_duplicate_is_a_definition_error(self) -> None:
        assert issubclass(DuplicateFlagError, FlagDefinitionError)
        assert issubclass(FlagDefinitionError, FlagError)

    @pytest.mark.parametrize("name", ["module", "is_", "has_9lives", "was_error"])
    def test_name_without_usable_prefix_rejected(self, name: str) -> None:
        with pytest.raises(FlagDefinitionError):
            FlagTable((name,))

    def test_model_tables_have_expected_letters(self) -> None:
        assert [NODE_FLAGS.letter_for(n) for n in NODE_FLAGS.names] == ["m", "e", "n", "t", "p", "s"]
        assert [EDGE_FLAGS.letter_for(n) for n in EDGE_FLAGS.names] == ["d", "b"]
        assert [GRAPH_FLAGS.letter_for(n) for n in GRAPH_FLAGS.names] == ["s", "d"]


# ============================================================================
# ENCODING
# ============================================================================


class TestEncode:
    """Encoding emits one letter per true attribute, in table order."""

    def test_module_without_error_encodes_as_m(self) -> None:
        assert _TABLE.encode(_Record(is_module=True, is_error=False)) == "m"

    def test_all_false_encodes_empty(self) -> None:
        assert _TABLE.encode(_Record()) == ""

    def test_table_order_not_attribute_order(self) -> None:
        reversed_table = FlagTable(("is_error", "is_module"))
        record = _Record(is_module=True, is_error=True)
        assert _TABLE.encode(record) == "me"
        assert reversed_table.encode(record) == "em"

    def test_encode_mapping_treats_missing_as_false(self) -> None:
        assert _TABLE.encode_mapping({"is_error": True}) == "e"
        assert _TABLE.encode_mapping({}) == ""

    def test_encode_flags_wrapper(self) -> None:
        assert encode_flags(_Record(is_error=True), _TABLE) == "e"


# ============================================================================
# DECODING
# ============================================================================


class TestDecode:
    """Decoding consumes leading letters and returns the remainder."""

    def test_decode_m_has_no_error_key(self) -> None:
        flags, rest = _TABLE.decode("m")
        assert flags == {"is_module": True}
        assert "is_error" not in flags
        assert rest == ""

    def test_decode_stops_at_first_non_letter(self) -> None:
        flags, rest = _TABLE.decode("me12,3")
        assert flags == {"is_module": True, "is_error": True}
        assert rest == "12,3"

    def test_decode_without_letters(self) -> None:
        assert _TABLE.decode("42") == ({}, "42")

    def test_unknown_letter_reports_position(self) -> None:
        with pytest.raises(UnknownFlagError) as exc_info:
            _TABLE.decode("mx1", offset=10)
        diagnostic = exc_info.value.diagnostic
        assert diagnostic is not None
        assert diagnostic.code is DiagnosticCode.FLAG_UNKNOWN_LETTER
        assert diagnostic.position == 11

    def test_uppercase_is_not_a_flag_letter(self) -> None:
        assert _TABLE.decode("M1") == ({}, "M1")

    def test_decode_flags_wrapper(self) -> None:
        assert decode_flags("e0", _TABLE) == ({"is_error": True}, "0")


class TestFlagProperties:
    """Encode then decode recovers the true attributes."""

    @given(is_module=st.booleans(), is_error=st.booleans(), number=st.integers(0, 999))
    def test_decode_inverts_encode(self, is_module: bool, is_error: bool, number: int) -> None:
        record = _Record(is_module=is_module, is_error=is_error)
        flags, rest = _TABLE.decode(f"{_TABLE.encode(record)}{number}")
        assert flags == {name: True for name in _TABLE.names if getattr(record, name)}
        assert rest == str(number)
