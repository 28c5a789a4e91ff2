"""Bounded wait for the host runtime to become scannable."""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Callable

from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_BACKOFF_SECONDS = 2.0


class Readiness(str, Enum):
    WAITING = "waiting"
    READY = "ready"
    TIMED_OUT = "timed_out"


class ReadinessProbe:
    """Polls *check* with a fixed backoff until it passes or attempts run out.

    States move WAITING -> READY or WAITING -> TIMED_OUT and never back.
    A check that raises counts as not ready.
    """

    def __init__(
        self,
        check: Callable[[], bool],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._check = check
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self.attempts = 0
        self.state = Readiness.WAITING

    def poll(self) -> Readiness:
        """Run one attempt and return the resulting state."""
        if self.state is not Readiness.WAITING:
            return self.state

        self.attempts += 1
        try:
            ok = bool(self._check())
        except Exception as e:
            logger.debug("Readiness check failed: %s", e)
            ok = False

        if ok:
            self.state = Readiness.READY
            logger.info("Host ready after %d attempt(s)", self.attempts)
        elif self.attempts >= self.max_attempts:
            self.state = Readiness.TIMED_OUT
            logger.warning(
                "Timed out waiting for host after %d attempts; services must be started manually",
                self.attempts,
            )
        return self.state

    def wait(self) -> Readiness:
        """Poll until READY or TIMED_OUT, sleeping between attempts."""
        while self.poll() is Readiness.WAITING:
            self._sleep(self.backoff_seconds)
        return self.state

    async def wait_async(self) -> Readiness:
        """Like ``wait``, but sleeps on the event loop so cancellation stops it."""
        while self.poll() is Readiness.WAITING:
            await asyncio.sleep(self.backoff_seconds)
        return self.state
