"""Cooperative driver that advances flow progress over wall-clock time.

The driver owns nothing but a progress value. Each tick computes progress from
the elapsed time, yields it and suspends once via ``sleep`` so the host loop
keeps control between frames. Pausing simply stops advancing; because flow is
a pure function of the committed progress there is nothing to unwind.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable

from bracketflow.config import get_settings

logger = logging.getLogger("bracketflow.core.animation")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
FrameCallback = Callable[[float], Awaitable[None] | None]


class AnimationDriver:
    def __init__(
        self,
        duration: float | None = None,
        *,
        frame_interval: float | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        settings = get_settings()
        self.duration = settings.animation_seconds if duration is None else max(0.0, duration)
        self.frame_interval = (
            settings.frame_seconds if frame_interval is None else max(0.0, frame_interval)
        )
        self._clock = clock
        self._sleep = sleep
        self._progress = 1.0
        self._running = False
        self._stop_requested = False

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def running(self) -> bool:
        return self._running

    def _progress_at(self, started: float) -> float:
        if self.duration <= 0:
            return 1.0
        elapsed = self._clock() - started
        return max(0.0, min(1.0, elapsed / self.duration))

    async def frames(self) -> AsyncIterator[float]:
        """Yield progress values from the committed progress up to 1."""
        if self._progress >= 1.0:
            self._progress = 0.0
        self._stop_requested = False
        self._running = True
        started = self._clock() - self._progress * self.duration
        try:
            while not self._stop_requested:
                current = max(self._progress, self._progress_at(started))
                self._progress = current
                yield current
                if current >= 1.0:
                    break
                await self._sleep(self.frame_interval)
        finally:
            self._running = False

    async def run(self, on_frame: FrameCallback | None = None) -> float:
        async for value in self.frames():
            if on_frame is None:
                continue
            outcome = on_frame(value)
            if inspect.isawaitable(outcome):
                await outcome
        logger.debug("Animation stopped at progress=%.3f", self._progress)
        return self._progress

    async def play(self, on_frame: FrameCallback | None = None) -> float:
        self.restart()
        return await self.run(on_frame)

    def play_frames(self) -> AsyncIterator[float]:
        self.restart()
        return self.frames()

    def restart(self) -> None:
        self._progress = 0.0
        self._stop_requested = False

    def pause(self) -> None:
        self._stop_requested = True

    cancel = pause

    def fill_instantly(self) -> None:
        self._stop_requested = True
        self._progress = 1.0


__all__ = ["AnimationDriver", "Clock", "FrameCallback", "Sleep"]
