"""Core utilities shared by the graph model and the oracle.

Exports:
    FlagTable: Ordered name <-> letter table for boolean attributes
    encode_flags / decode_flags: Functional wrappers around FlagTable

Python 3.13+.
"""

from .flags import FlagTable, decode_flags, encode_flags

__all__ = ["FlagTable", "decode_flags", "encode_flags"]
