"""Shared constants for modloadfuzz.

Constants are grouped by domain:
- Serialization: separators of the graph string grammar
- Input limits: bounds on decoded graphs
- Serving: file extensions and MIME types of rendered resources

Python 3.13+. Zero external dependencies.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Serialization
    "NODE_SEPARATOR",
    "FIELD_SEPARATOR",
    # Input limits
    "MIN_GRAPH_SIZE",
    "MAX_GRAPH_SIZE",
    "MAX_INDEX_DIGITS",
    # Serving
    "ROOT_EXTENSION",
    "MODULE_EXTENSION",
    "CLASSIC_EXTENSION",
    "MIME_TYPES",
    "DEFAULT_URL_PREFIX",
    "DEFAULT_SLOW_DELAY",
    "GENERATED_ERROR_NAME",
]

# ============================================================================
# SERIALIZATION
# ============================================================================

# Separates the graph header and each node field.
NODE_SEPARATOR: str = ";"

# Separates the tokens inside one node field (node token, then edge tokens).
# Neither separator is a flag letter or a digit, and both are legal in a
# URL path segment.
FIELD_SEPARATOR: str = ","

# ============================================================================
# INPUT LIMITS
# ============================================================================

# A graph needs the document root plus at least one script.
MIN_GRAPH_SIZE: int = 2

# Upper bound on the node count accepted by Graph.from_string. Permalinks
# are URL path segments; anything larger is malformed input.
MAX_GRAPH_SIZE: int = 1000

# Longest decimal count or index that can name a node of such a graph.
MAX_INDEX_DIGITS: int = len(str(MAX_GRAPH_SIZE))

# ============================================================================
# SERVING
# ============================================================================

ROOT_EXTENSION: str = "html"
MODULE_EXTENSION: str = "mjs"
CLASSIC_EXTENSION: str = "js"

MIME_TYPES: dict[str, str] = {
    "default": "application/octet-stream",
    ROOT_EXTENSION: "text/html; charset=UTF-8",
    MODULE_EXTENSION: "text/javascript",
    CLASSIC_EXTENSION: "text/javascript",
}

DEFAULT_URL_PREFIX: str = "/graph"

# Artificial response delay (seconds) for resources flagged is_slow.
DEFAULT_SLOW_DELAY: float = 0.5

# Name of the error class thrown by generated scripts flagged is_error.
GENERATED_ERROR_NAME: str = "GeneratedError"
