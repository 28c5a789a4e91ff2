"""Single-flight scan scheduling with an explicit state token."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETING = "completing"


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    ALREADY_RUNNING = "already_running"
    ABORTED = "aborted"
    DISABLED = "disabled"


@dataclass
class ScanResult(Generic[T]):
    status: ScanStatus
    report: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def accepted(self) -> bool:
        return self.status in (ScanStatus.COMPLETED, ScanStatus.ABORTED)


class ScanScheduler:
    """Allows at most one scan pass in flight.

    A start request while a pass runs is answered with
    ``ScanStatus.ALREADY_RUNNING``; it is neither queued nor interleaved.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    @property
    def is_scanning(self) -> bool:
        return self.state is not ScanState.IDLE

    def try_begin(self) -> bool:
        """Move IDLE -> SCANNING. False if a pass is already in flight."""
        with self._lock:
            if self._state is not ScanState.IDLE:
                return False
            self._state = ScanState.SCANNING
            return True

    def completing(self) -> None:
        """Mark the unit-level phase done; flow aggregation is under way."""
        with self._lock:
            if self._state is ScanState.SCANNING:
                self._state = ScanState.COMPLETING

    def finish(self) -> None:
        with self._lock:
            self._state = ScanState.IDLE

    def run(self, pass_fn: Callable[["ScanScheduler"], T]) -> ScanResult[T]:
        """Run *pass_fn* exclusively.

        *pass_fn* receives the scheduler so it can report the COMPLETING
        phase. Exceptions from the pass are logged and returned as an
        ABORTED result; the scheduler always returns to IDLE.
        """
        if not self.try_begin():
            logger.info("Scan request ignored: scan already in progress")
            return ScanResult(status=ScanStatus.ALREADY_RUNNING)
        try:
            report = pass_fn(self)
        except Exception as e:
            logger.error("Scan pass aborted: %s", e)
            return ScanResult(status=ScanStatus.ABORTED, error=e)
        finally:
            self.finish()
        return ScanResult(status=ScanStatus.COMPLETED, report=report)
