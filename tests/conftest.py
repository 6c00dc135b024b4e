"""Shared pytest fixtures for stream tests.

Provides:
- ``recorder``: EventRecorder whose handlers log every dispatched event
- ``clock``: FakeClock for deterministic elapsed-time measurement
- ``byte_stream``: factory turning byte chunks into an async iterable
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable

import pytest

from services.stream_consumer import EventHandlers


class EventRecorder:
    """Collects ``(type, payload)`` tuples in dispatch order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def _record(self, kind: str) -> Callable[[Any], None]:
        return lambda payload: self.calls.append((kind, payload))

    @property
    def handlers(self) -> EventHandlers:
        return EventHandlers(
            on_progress=self._record("progress"),
            on_content=self._record("content"),
            on_section=self._record("section"),
            on_complete=self._record("complete"),
            on_error=self._record("error"),
        )

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def _iterate(chunks: tuple[bytes, ...]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


@pytest.fixture
def recorder() -> EventRecorder:
    """Fresh recorder, isolated per test."""
    return EventRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def byte_stream() -> Callable[..., AsyncIterator[bytes]]:
    """``byte_stream(b"a", "b", ...)``: str chunks are UTF-8 encoded."""

    def make(*chunks: bytes | str) -> AsyncIterator[bytes]:
        encoded = tuple(c.encode("utf-8") if isinstance(c, str) else c for c in chunks)
        return _iterate(encoded)

    return make
