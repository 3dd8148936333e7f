"""Reusable scratch buffers for the search hot path.

Candidate id lists and match lists are allocated once per pool slot and
cleared between queries instead of being rebuilt for every keystroke.
"""

from __future__ import annotations

from collections import deque
import threading

from launcher_search.domain.search import MatchResult


class ScratchBuffers:
    """Per-query working storage."""

    __slots__ = ("candidates", "matches")

    def __init__(self) -> None:
        self.candidates: list[str] = []
        self.matches: list[MatchResult] = []

    def reset(self) -> None:
        self.candidates.clear()
        self.matches.clear()


class BufferPool:
    """Bounded pool of :class:`ScratchBuffers`.

    ``acquire`` hands out a pooled slot when one is free and a fresh one
    otherwise; ``release`` keeps at most ``max_idle`` slots around.
    """

    def __init__(self, max_idle: int = 4) -> None:
        self.max_idle = max_idle
        self._idle: deque[ScratchBuffers] = deque()
        self._lock = threading.Lock()
        self.allocated = 0

    def acquire(self) -> ScratchBuffers:
        with self._lock:
            if self._idle:
                return self._idle.pop()
            self.allocated += 1
        return ScratchBuffers()

    def release(self, buffers: ScratchBuffers) -> None:
        buffers.reset()
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(buffers)

    @property
    def idle(self) -> int:
        return len(self._idle)
