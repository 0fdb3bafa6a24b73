"""
Progress reporting for byte transfers.

A ProgressReporter accumulates byte increments for one logical operation and
forwards a ProgressData snapshot to a callback on every update.
"""

from typing import Callable, Optional

from pydantic import BaseModel


class ProgressData(BaseModel):
    """Snapshot sent to the progress callback."""

    key: str
    increment: int
    status: Optional[str] = None
    completed: int = 0  # bytes already transferred
    total: Optional[int] = None  # bytes expected


ProgressCallback = Callable[[ProgressData], None]


class ProgressReporter:
    """
    Accumulates transferred bytes and emits ProgressData events.

    ``update`` may be called any number of times between ``begin`` and ``done``.
    ``done`` emits whatever part of the declared total was never reported, so
    the last event always has ``completed >= total``.
    """

    DEFAULT_KEY = "Downloading"

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.name: Optional[str] = None
        self.total: Optional[int] = None
        self.completed = 0

    def begin(self, name: str, total: Optional[int]) -> None:
        self.name = name
        self.total = total
        self.completed = 0

    def update(self, increment: int, detail: Optional[str] = None) -> None:
        self.completed += increment
        if self._callback is None:
            return
        self._callback(
            ProgressData(
                key=self.name or self.DEFAULT_KEY,
                increment=increment,
                status=detail,
                completed=self.completed,
                total=self.total,
            )
        )

    def done(self) -> None:
        remaining = max((self.total or 0) - self.completed, 0)
        self.update(remaining)
