"""Diagnostic system for modloadfuzz errors.

Provides structured error diagnostics with codes, positions and hints.
Inspired by Rust compiler diagnostics.

Python 3.13+. Zero external dependencies.
"""

from .codes import Diagnostic, DiagnosticCode
from .errors import (
    DuplicateFlagError,
    FlagDefinitionError,
    FlagError,
    GraphConstructionError,
    GraphError,
    GraphParseError,
    ModLoadFuzzError,
    OracleError,
    ProtocolError,
    RunStateError,
    UnknownFlagError,
)
from .formatter import DiagnosticFormatter, OutputFormat
from .templates import ErrorTemplate

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticFormatter",
    "DuplicateFlagError",
    "ErrorTemplate",
    "FlagDefinitionError",
    "FlagError",
    "GraphConstructionError",
    "GraphError",
    "GraphParseError",
    "ModLoadFuzzError",
    "OracleError",
    "OutputFormat",
    "ProtocolError",
    "RunStateError",
    "UnknownFlagError",
]
