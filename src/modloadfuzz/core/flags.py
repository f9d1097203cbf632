"""Flag codec: named boolean attributes <-> short letter tokens.

Every entity of the graph (graph header, node, edge) serializes its boolean
attributes as a run of lowercase letters, one letter per true attribute, in
table order. Letters are disjoint from the digits used for indices and
counts, so a decoder can greedily consume letters and hand the remaining
digits to the caller.

Letters are derived once, when a FlagTable is built: the first letter after
the ``is_``/``has_`` prefix. Tables are module-level constants of the model,
so a collision fails at import time rather than on some later call.

Python 3.13+. Zero external dependencies.
"""

import string
from collections.abc import Mapping, Sequence

from modloadfuzz.diagnostics import (
    DuplicateFlagError,
    ErrorTemplate,
    FlagDefinitionError,
    UnknownFlagError,
)

__all__ = ["FlagTable", "decode_flags", "encode_flags"]

_PREFIXES = ("is_", "has_")
_LETTERS = frozenset(string.ascii_lowercase)


def _derive_letter(name: str) -> str:
    for prefix in _PREFIXES:
        if name.startswith(prefix):
            rest = name[len(prefix) :]
            if rest and rest[0].lower() in _LETTERS:
                return rest[0].lower()
            break
    raise FlagDefinitionError(ErrorTemplate.flag_name_invalid(name))


class FlagTable:
    """Ordered mapping between boolean attribute names and letters.

    Example:
        >>> table = FlagTable(("is_module", "is_error"))
        >>> table.letter_for("is_error")
        'e'
        >>> FlagTable(("is_error", "is_empty"))
        Traceback (most recent call last):
        ...
        modloadfuzz.diagnostics.errors.DuplicateFlagError: ...
    """

    __slots__ = ("_by_letter", "_by_name", "names")

    def __init__(self, names: Sequence[str]) -> None:
        """Build the table, deriving and checking every letter.

        Raises:
            FlagDefinitionError: A name has no is_/has_ prefix.
            DuplicateFlagError: Two names derive the same letter.
        """
        self.names: tuple[str, ...] = tuple(names)
        self._by_name: dict[str, str] = {}
        self._by_letter: dict[str, str] = {}
        for name in self.names:
            letter = _derive_letter(name)
            if letter in self._by_letter:
                first = self._by_letter[letter]
                raise DuplicateFlagError(ErrorTemplate.flag_duplicate_letter(letter, first, name))
            self._by_name[name] = letter
            self._by_letter[letter] = name

    def __repr__(self) -> str:
        return f"FlagTable({self.names!r})"

    def letter_for(self, name: str) -> str:
        """Return the letter encoding ``name``."""
        return self._by_name[name]

    def name_for(self, letter: str) -> str | None:
        """Return the attribute name for ``letter``, or None if unmapped."""
        return self._by_letter.get(letter)

    def encode(self, obj: object) -> str:
        """Concatenate the letters of every true attribute of ``obj``, in table order."""
        return "".join(self._by_name[name] for name in self.names if getattr(obj, name))

    def encode_mapping(self, flags: Mapping[str, bool]) -> str:
        """Same as encode() for a name -> bool mapping; missing names count as false."""
        return "".join(self._by_name[name] for name in self.names if flags.get(name, False))

    def decode(self, text: str, *, offset: int = 0) -> tuple[dict[str, bool], str]:
        """Consume leading flag letters of ``text``.

        Args:
            text: Token starting with zero or more flag letters
            offset: Position of ``text`` in a larger input, for diagnostics

        Returns:
            Tuple of (flags, remainder). ``flags`` holds only the attributes
            that are set; names whose letter is absent are omitted rather
            than mapped to False.

        Raises:
            UnknownFlagError: A lowercase letter is not in the table.
        """
        flags: dict[str, bool] = {}
        pos = 0
        while pos < len(text) and text[pos] in _LETTERS:
            name = self._by_letter.get(text[pos])
            if name is None:
                raise UnknownFlagError(ErrorTemplate.flag_unknown_letter(text[pos], offset + pos))
            flags[name] = True
            pos += 1
        return flags, text[pos:]


def encode_flags(obj: object, table: FlagTable) -> str:
    """Encode the true attributes of ``obj`` listed in ``table``."""
    return table.encode(obj)


def decode_flags(text: str, table: FlagTable) -> tuple[dict[str, bool], str]:
    """Decode leading flag letters of ``text`` against ``table``."""
    return table.decode(text)
