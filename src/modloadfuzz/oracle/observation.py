"""Observation buffers accumulated while a page loads.

Python 3.13+.
"""

from dataclasses import dataclass, field

__all__ = ["Observation"]


@dataclass(slots=True)
class Observation:
    """What the harness reported for one page load.

    Attributes:
        order: Node indices in the order they started
        started: started[i] is True once ``start i`` was seen
        finished: finished[i] is True once ``finish i`` was seen
        errored: errored[i] is True once ``error GeneratedError i`` was seen
    """

    order: list[int] = field(default_factory=list)
    started: list[bool] = field(default_factory=list)
    finished: list[bool] = field(default_factory=list)
    errored: list[bool] = field(default_factory=list)

    @classmethod
    def empty(cls, size: int) -> "Observation":
        return cls(
            order=[],
            started=[False] * size,
            finished=[False] * size,
            errored=[False] * size,
        )

    def record_start(self, index: int) -> None:
        self.started[index] = True
        self.order.append(index)

    def record_finish(self, index: int) -> None:
        self.finished[index] = True

    def record_error(self, index: int) -> None:
        self.errored[index] = True
