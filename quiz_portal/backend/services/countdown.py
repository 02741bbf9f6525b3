"""
Quiz Portal
Countdown that auto-submits a quiz attempt when its time limit runs out
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

# Configure logging
logger = logging.getLogger(__name__)


class QuizCountdown:
    """Ticks down from the quiz time limit and fires on_expire exactly once.

    The count starts at ``time_limit_minutes * 60`` and drops by one every
    ``tick_seconds``. When it reaches zero ``on_expire`` is awaited. After
    cancel() it is never awaited.
    """

    def __init__(
        self,
        time_limit_minutes: int,
        on_expire: Callable[[], Awaitable[None]],
        tick_seconds: float = 1.0
    ):
        if time_limit_minutes < 0:
            raise ValueError("Time limit cannot be negative")

        self.remaining = int(time_limit_minutes) * 60
        self.tick_seconds = tick_seconds
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._fired = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def expired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def formatted(self) -> str:
        """Remaining time as MM:SS"""
        minutes, seconds = divmod(max(self.remaining, 0), 60)
        return f"{minutes:02d}:{seconds:02d}"

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("Countdown already started")
        self._task = asyncio.create_task(self._run())
        return self._task

    def cancel(self):
        if self._fired or self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()
        logger.debug(f"Countdown cancelled with {self.formatted()} left")

    async def wait(self):
        """Wait for the countdown to finish, whether expired or cancelled"""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise

    async def _run(self):
        while self.remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            if self._cancelled:
                return
            self.remaining -= 1

        if self._cancelled:
            return

        self._fired = True
        logger.info("⏰ Time is up, submitting attempt")
        await self._on_expire()


__all__ = ["QuizCountdown"]
