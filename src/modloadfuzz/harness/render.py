"""Render a graph as servable documents and scripts.

Every node becomes one file under ``<prefix>/<graph string>/``:
``0.html`` for the document, ``<i>.mjs`` for modules and ``<i>.js`` for
classic scripts. Scripts report ``start``/``finish`` to the parent frame;
the document relays errors and finally ``loaded``.

Rendering a node caches its source on the node, which freezes its imports.
The document is the exception: it embeds the serving options, so it is
rebuilt for every request.

Python 3.13+.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache

from modloadfuzz.constants import (
    DEFAULT_SLOW_DELAY,
    DEFAULT_URL_PREFIX,
    GENERATED_ERROR_NAME,
    MAX_INDEX_DIGITS,
    MIME_TYPES,
)
from modloadfuzz.enums import ImportMapKind
from modloadfuzz.graph.model import Edge, Graph, Node

__all__ = [
    "RenderConfig",
    "Resource",
    "node_url",
    "render_source",
    "resolve_request",
]

_FILENAME = re.compile(rf"(0|[1-9][0-9]{{0,{MAX_INDEX_DIGITS - 1}}})\.([a-z]+)")


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Serving options.

    Attributes:
        url_prefix: Path prefix under which graphs are served
        slow_delay: Response delay in seconds for nodes flagged is_slow
        settle_delay_ms: Wait after the window load event before reporting
            ``loaded``, giving top-level await and dynamic imports time to
            settle
    """

    url_prefix: str = DEFAULT_URL_PREFIX
    slow_delay: float = DEFAULT_SLOW_DELAY
    settle_delay_ms: int = 100

    def __post_init__(self) -> None:
        if self.slow_delay < 0:
            msg = "slow_delay must not be negative"
            raise ValueError(msg)
        if self.settle_delay_ms < 0:
            msg = "settle_delay_ms must not be negative"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Resource:
    """Response for one served file."""

    content_type: str
    body: str
    delay: float = 0.0


def node_url(graph: Graph, node: Node, config: RenderConfig | None = None) -> str:
    """Absolute path of ``node``'s file; for the root this is the test page permalink."""
    prefix = (config or RenderConfig()).url_prefix
    return f"{prefix}/{graph.to_string()}/{node.filename}"


def _specifier(edge: Edge) -> str:
    if edge.is_bare:
        return str(edge.target.index)
    return f"./{edge.target.filename}"


def _post(message: str) -> str:
    return f'window.parent.postMessage("{message}", "*");'


def _import_map(graph: Graph) -> str:
    imports = {str(node.index): f"./{node.filename}" for node in graph.nodes if node.is_module}
    return json.dumps({"imports": imports})


def _render_document(graph: Graph, config: RenderConfig) -> str:
    lines = [
        "<!DOCTYPE html>",
        '<meta charset="utf-8">',
        f"<title>{graph.to_string()}</title>",
        "<script>",
        f"  window.{GENERATED_ERROR_NAME} = class extends Error {{",
        f'    constructor(index) {{ super(String(index)); this.name = "{GENERATED_ERROR_NAME}"; }}',
        "  };",
        "  function report(error, message) {",
        f'    if (error && error.name === "{GENERATED_ERROR_NAME}") {{',
        f'      window.parent.postMessage("error {GENERATED_ERROR_NAME} " + error.message, "*");',
        "    } else {",
        '      window.parent.postMessage("error " + message, "*");',
        "    }",
        "  }",
        '  window.addEventListener("error", (event) => report(event.error, event.message));',
        '  window.addEventListener("unhandledrejection",',
        '    (event) => report(event.reason, String(event.reason)));',
        '  window.addEventListener("load", () => {',
        f"    setTimeout(() => {{ {_post('loaded')} }}, {config.settle_delay_ms});",
        "  });",
        "</script>",
    ]

    match graph.import_map_kind:
        case ImportMapKind.STATIC:
            lines.append(f'<script type="importmap">{_import_map(graph)}</script>')
        case ImportMapKind.DYNAMIC:
            lines.extend(
                [
                    "<script>",
                    '  const map = document.createElement("script");',
                    '  map.type = "importmap";',
                    f"  map.textContent = {json.dumps(_import_map(graph))};",
                    "  document.currentScript.after(map);",
                    "</script>",
                ]
            )
        case ImportMapKind.NONE:
            pass

    for node in graph.nodes[1:]:
        if node.has_preload:
            if node.is_module:
                lines.append(f'<link rel="modulepreload" href="./{node.filename}">')
            else:
                lines.append(f'<link rel="preload" as="script" href="./{node.filename}">')

    for edge in graph.root.out_edges:
        target = edge.target
        if target.is_classic:
            lines.append(f'<script src="./{target.filename}"></script>')
        elif edge.is_dynamic:
            lines.append(f'<script type="module">await import("{_specifier(edge)}");</script>')
        elif edge.is_bare:
            lines.append(f'<script type="module">import "{_specifier(edge)}";</script>')
        else:
            lines.append(f'<script type="module" src="./{target.filename}"></script>')

    return "\n".join(lines) + "\n"


def _render_script(node: Node) -> str:
    kind = "Module" if node.is_module else "Script"
    lines = [f"// {kind} {node.index}"]
    lines.extend(
        f'import "{_specifier(edge)}";' for edge in node.out_edges if not edge.is_dynamic
    )
    lines.append(_post(f"start {node.index}"))
    if node.is_error:
        lines.append(f"throw new {GENERATED_ERROR_NAME}({node.index});")
    if node.has_top_level_await:
        lines.append("await 0;")
    lines.extend(
        f'await import("{_specifier(edge)}");' for edge in node.out_edges if edge.is_dynamic
    )
    lines.append(_post(f"finish {node.index}"))
    return "\n".join(lines) + "\n"


def render_source(graph: Graph, node: Node, config: RenderConfig | None = None) -> str:
    """Source text of ``node``'s file.

    Script sources are cached on the node. The document depends on the
    serving options and is rendered on every call; its first rendering
    still freezes the root's imports.
    """
    if node.is_root:
        document = _render_document(graph, config or RenderConfig())
        if node.cached_source is None:
            node.cached_source = document
        return document
    if node.cached_source is None:
        node.cached_source = _render_script(node)
    return node.cached_source


@lru_cache(maxsize=64)
def _load_graph(text: str) -> Graph:
    return Graph.from_string(text)


def resolve_request(path: str, config: RenderConfig | None = None) -> Resource | None:
    """Map a request path to the file a server should return.

    Args:
        path: Request path, ``<prefix>/<graph string>/<index>.<extension>``
        config: Serving options

    Returns:
        The resource, or None when the server should answer 404: unknown
        path, wrong extension for the node, or a node flagged is_not_found.

    Raises:
        GraphParseError: The graph string in the path is malformed.
    """
    config = config or RenderConfig()
    prefix = config.url_prefix.rstrip("/") + "/"
    if not path.startswith(prefix):
        return None

    parts = path[len(prefix) :].split("/")
    if len(parts) != 2:
        return None
    text, filename = parts

    match = _FILENAME.fullmatch(filename)
    if match is None:
        return None

    graph = _load_graph(text)
    index = int(match.group(1))
    if index >= graph.size:
        return None
    node = graph.get_node(index)
    if node.filename != filename or node.is_not_found:
        return None

    body = render_source(graph, node, config)
    return Resource(
        content_type=MIME_TYPES.get(node.extension, MIME_TYPES["default"]),
        body=body,
        delay=config.slow_delay if node.is_slow else 0.0,
    )
