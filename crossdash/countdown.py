"""
CountdownScheduler — turns an ETA sequence into a live display value.

This is a pure asyncio timing primitive with no network dependencies.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable

from .const import COUNTDOWN_INTERVAL
from .models import CountdownState

_LOGGER = logging.getLogger(__name__)


class CountdownScheduler:
    """
    Emits the head of an ETA sequence, dropping one element per interval.

    Once a single value is left the timer stops and that value is kept.
    At most one timer task is alive at any time; start() replaces it.
    """

    def __init__(self, interval: float = COUNTDOWN_INTERVAL) -> None:
        self.interval = interval
        self._state: CountdownState | None = None
        self._task: asyncio.Task | None = None
        self._listeners: list[Callable[[int], None]] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def state(self) -> CountdownState | None:
        return self._state

    @property
    def current(self) -> int | None:
        return self._state.current if self._state else None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: Callable[[int], None]) -> Callable[[], None]:
        """Register listener for every emitted value; returns a remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def start(self, initial: Iterable[int]) -> int:
        """
        Cancel any running timer, emit initial[0] and start ticking.

        Must be called from within the running event loop.
        """
        remaining = tuple(int(v) for v in initial)
        if not remaining:
            raise ValueError("ETA sequence must contain at least one value")

        self.cancel()
        self._state = CountdownState(remaining)
        self._emit(self._state.current)

        if not self._state.is_final:
            self._task = asyncio.ensure_future(self._run())
        return self._state.current

    def tick(self) -> int | None:
        """Advance by one step; a no-op once the last value is reached."""
        if self._state is None:
            return None
        advanced = self._state.advance()
        if advanced is self._state:
            return self._state.current
        self._state = advanced
        _LOGGER.debug("ETA countdown at %s (%d values left)", advanced.current, len(advanced.remaining))
        self._emit(advanced.current)
        return advanced.current

    def cancel(self) -> None:
        """Stop the timer; the current value is kept."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def async_shutdown(self) -> None:
        """Cancel the timer and wait for its task to finish."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        """Tick once per interval until only the last value is left."""
        try:
            while self._state is not None and not self._state.is_final:
                await asyncio.sleep(self.interval)
                self.tick()
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    def _emit(self, value: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.error("Countdown listener failed for value %s: %s", value, exc)
