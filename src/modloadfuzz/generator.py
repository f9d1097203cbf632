"""Randomized graph generation.

Builds graphs node by node. Node 0 is the document; each later node is
either a classic script (attached to the document only) or a module
imported by one or more earlier importers. Optionally a module closes a
cycle by importing one of its ancestors.

Cycles are the one dangerous feature: a cycle that contains a module with
top-level await, or that contains a dynamic import, can leave the
host waiting on a dependency that only resolves after the waiter finishes.
Whenever a back-edge is added, every node on a cycle through it loses
top-level await and every import out of those nodes becomes static. Later
children of on-cycle nodes are always imported statically.

Python 3.13+.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass, fields

from modloadfuzz.constants import MIN_GRAPH_SIZE
from modloadfuzz.enums import ImportMapKind
from modloadfuzz.graph.model import Graph, Node, depth_first_search

__all__ = ["Probabilities", "generate"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Probabilities:
    """Probability model for generate().

    Every value is an independent Bernoulli chance in ``[0.0, 1.0]``.
    Defaults produce plain static module trees.

    Attributes:
        p_import_map: Graph declares an import map.
        p_static_import_map: Given an import map, it is inline (static)
            rather than inserted by script (dynamic).
        p_classic: A new node is a classic script instead of a module.
        p_top_level_await: A new module suspends at top level.
        p_cyclic: A new module imports one of its ancestors.
        p_not_found: A new node's resource does not exist.
        p_error: A new node throws when evaluated.
        p_slow: A new node's resource is served with a delay.
        p_preload: The document preloads a new node.
        p_multi_parent: After each parent, another importer also imports
            the new module.
        p_dynamic: An import edge is dynamic.
        p_bare: Given an import map, an import uses a bare specifier.

    Example:
        >>> Probabilities(p_error=0.2, p_cyclic=0.1)
        Probabilities(p_import_map=0.0, ...)
        >>> Probabilities(p_error=1.5)
        Traceback (most recent call last):
        ...
        ValueError: p_error must be between 0.0 and 1.0, got 1.5
    """

    p_import_map: float = 0.0
    p_static_import_map: float = 0.5
    p_classic: float = 0.0
    p_top_level_await: float = 0.0
    p_cyclic: float = 0.0
    p_not_found: float = 0.0
    p_error: float = 0.0
    p_slow: float = 0.0
    p_preload: float = 0.0
    p_multi_parent: float = 0.0
    p_dynamic: float = 0.0
    p_bare: float = 0.5

    def __post_init__(self) -> None:
        """Validate every probability.

        Raises:
            ValueError: A value is outside ``[0.0, 1.0]``.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0.0 <= value <= 1.0:
                msg = f"{f.name} must be between 0.0 and 1.0, got {value}"
                raise ValueError(msg)

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> Probabilities:
        """Build from a plain mapping such as a parsed JSON config file.

        Raises:
            ValueError: Unknown key, a value that is not a number, or a
                value outside ``[0.0, 1.0]``.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            msg = f"Unknown probability names: {', '.join(unknown)}"
            raise ValueError(msg)
        converted: dict[str, float] = {}
        for name, value in values.items():
            if isinstance(value, bool) or not isinstance(value, int | float):
                msg = f"{name} must be a number, got {value!r}"
                raise ValueError(msg)
            converted[name] = float(value)
        return cls(**converted)


class _Builder:
    """State of one generate() call."""

    def __init__(self, probabilities: Probabilities, rng: random.Random) -> None:
        self.p = probabilities
        self.rng = rng
        self.graph = Graph(self._choose_import_map())
        self.root = self.graph.add_node(Node(0))
        self.importers: list[Node] = [self.root]
        self.on_cycle: set[Node] = set()

    def choose(self, p: float) -> bool:
        """Pick an alternative with probability ``p``."""
        return self.rng.random() < p

    def _choose_import_map(self) -> ImportMapKind:
        if not self.choose(self.p.p_import_map):
            return ImportMapKind.NONE
        if self.choose(self.p.p_static_import_map):
            return ImportMapKind.STATIC
        return ImportMapKind.DYNAMIC

    def add_node(self, index: int) -> None:
        p = self.p
        is_module = not self.choose(p.p_classic)
        is_error = self.choose(p.p_error)
        is_not_found = self.choose(p.p_not_found)
        awaits = self.choose(p.p_top_level_await)
        node = self.graph.add_node(
            Node(
                index,
                is_module=is_module,
                is_error=is_error,
                is_not_found=is_not_found,
                has_top_level_await=is_module and awaits,
                has_preload=self.choose(p.p_preload),
                is_slow=self.choose(p.p_slow),
            )
        )

        if not is_module:
            self.graph.add_import(self.root, node)
            logger.debug("Node %d: classic script attached to root", index)
            return

        self.attach(node)
        for _ in range(len(self.importers) - 1):
            if not self.choose(p.p_multi_parent):
                break
            self.attach(node)

        if node.can_import:
            if self.choose(p.p_cyclic):
                self.close_cycle(node)
            self.importers.append(node)

    def attach(self, node: Node) -> None:
        parent = self.rng.choice(self.importers)
        is_dynamic = self.choose(self.p.p_dynamic) and parent not in self.on_cycle
        is_bare = self.graph.has_import_map and self.choose(self.p.p_bare)
        self.graph.add_import(parent, node, is_dynamic=is_dynamic, is_bare=is_bare)
        logger.debug(
            "Node %d: imported by %d%s%s",
            node.index,
            parent.index,
            " dynamically" if is_dynamic else "",
            " via bare specifier" if is_bare else "",
        )

    def close_cycle(self, node: Node) -> None:
        """Import a strict, non-root ancestor on the first-parent chain."""
        ancestors: list[Node] = []
        parent = node.first_parent
        while parent is not None and not parent.is_root:
            ancestors.append(parent)
            parent = parent.first_parent
        if not ancestors:
            return

        ancestor = self.rng.choice(ancestors)
        self.graph.add_import(node, ancestor)
        logger.debug("Node %d: back-edge to ancestor %d", node.index, ancestor.index)
        self.repair_livelock(node, ancestor)

    def repair_livelock(self, node: Node, ancestor: Node) -> None:
        """Make every cycle through the back-edge ``node -> ancestor`` synchronous.

        The members are the nodes reachable from ``ancestor`` that can also
        reach ``node``; this includes the first-parent path between them.
        """
        reachable: set[Node] = set()
        depth_first_search(ancestor, reachable.add)

        reaching: set[Node] = {node}
        worklist = [node]
        while worklist:
            current = worklist.pop()
            for edge in current.in_edges:
                if edge.source not in reaching:
                    reaching.add(edge.source)
                    worklist.append(edge.source)

        members = reachable & reaching
        for member in sorted(members, key=lambda n: n.index):
            member.has_top_level_await = False
            for edge in member.out_edges:
                edge.is_dynamic = False
        self.on_cycle |= members
        logger.debug(
            "Cleared async evaluation on cycle through %s",
            ", ".join(str(m.index) for m in sorted(members, key=lambda n: n.index)),
        )


def generate(
    size: int,
    probabilities: Probabilities | None = None,
    *,
    rng: random.Random | None = None,
    seed: int | None = None,
) -> Graph:
    """Build a random graph of ``size`` nodes.

    Args:
        size: Number of nodes including the document root; at least 2.
        probabilities: Probability model (defaults to ``Probabilities()``).
        rng: Random source; takes precedence over ``seed``.
        seed: Seed for a fresh ``random.Random`` when ``rng`` is not given,
            making the graph reproducible.

    Returns:
        A graph satisfying every model invariant, with no cycle through a
        module that awaits or through a dynamic import.

    Raises:
        ValueError: ``size`` is below 2.

    Example:
        >>> graph = generate(5, Probabilities(p_error=0.3), seed=42)
        >>> graph.size
        5
    """
    if size < MIN_GRAPH_SIZE:
        msg = f"Graph size must be at least {MIN_GRAPH_SIZE}, got {size}"
        raise ValueError(msg)

    builder = _Builder(probabilities or Probabilities(), rng or random.Random(seed))
    for index in range(1, size):
        builder.add_node(index)

    builder.graph.validate()
    logger.debug("Generated %r", builder.graph)
    return builder.graph
