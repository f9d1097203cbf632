"""Boundary with the page-loading harness and the file server.

Exports:
    HarnessEvent, parse_event, format_event: Event vocabulary
    RenderConfig, Resource, render_source, resolve_request, node_url:
        Servable documents for a graph

Python 3.13+.
"""

from .protocol import HarnessEvent, format_event, parse_event
from .render import RenderConfig, Resource, node_url, render_source, resolve_request

__all__ = [
    "HarnessEvent",
    "RenderConfig",
    "Resource",
    "format_event",
    "node_url",
    "parse_event",
    "render_source",
    "resolve_request",
]
