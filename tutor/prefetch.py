from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class PrefetchCache(Generic[T]):
    """Single-slot holder for the audio of the slide after the current one."""

    def __init__(self) -> None:
        self._index: int | None = None
        self._buffer: T | None = None

    def put(self, index: int, buffer: T) -> None:
        self._index = index
        self._buffer = buffer

    def take(self, index: int) -> T | None:
        if self._index is None or self._index != index:
            return None
        buffer = self._buffer
        self.clear()
        return buffer

    def clear(self) -> None:
        self._index = None
        self._buffer = None

    def peek_index(self) -> int | None:
        return self._index
