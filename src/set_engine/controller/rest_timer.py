"""
Rest countdown used by the controller's resting substates.

One asyncio task decrements the remaining time by one second every
``tick_interval`` seconds of wall time.  Pausing cancels the task and keeps
the remaining time; starting again resumes from it.
"""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

from ..core.config import TIMER_TICK_SECONDS
from ..core.log import EngineLogger
from .states import TimerState


class RestTimer:
    def __init__(
        self,
        on_tick: Callable[[TimerState], None],
        on_complete: Callable[[], None],
        tick_interval: float = TIMER_TICK_SECONDS,
        logger: EngineLogger | None = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._on_tick = on_tick
        self._on_complete = on_complete
        self.tick_interval = tick_interval
        self.logger: EngineLogger = logger or structlog.get_logger(__name__)
        self._total = 0
        self._remaining = 0
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> TimerState:
        return TimerState(
            total_seconds=self._total,
            remaining_seconds=self._remaining,
            is_running=self.is_running,
        )

    def load(self, seconds: int) -> TimerState:
        """Arm the timer with a fresh duration without starting it."""
        self._cancel()
        self._total = max(int(seconds), 0)
        self._remaining = self._total
        return self.state

    def start(self) -> TimerState:
        """Start or resume the countdown.  Requires a running event loop."""
        if not self.is_running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self.state

    def pause(self) -> TimerState:
        self._cancel()
        return self.state

    def stop(self) -> TimerState:
        """Cancel the countdown and clear the loaded duration."""
        self._cancel()
        self._total = 0
        self._remaining = 0
        return self.state

    def _cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while self._remaining > 0:
            await asyncio.sleep(self.tick_interval)
            self._remaining -= 1
            self.logger.debug("Rest timer tick", remaining_seconds=self._remaining)
            self._on_tick(self.state)

        # Detach first so completion handlers that stop the timer don't cancel this task
        self._task = None
        self._on_complete()
