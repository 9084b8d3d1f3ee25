from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from llm_compare.clients.base import ComparisonBackend
from llm_compare.errors import HealthCheckError
from llm_compare.logging_setup import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthState:
    """
    Backend reachability as last observed. Starts UNKNOWN; only a
    HealthMonitor writes it, and it never goes back to UNKNOWN.
    """
    status: HealthStatus = HealthStatus.UNKNOWN
    last_checked_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def reachable(self) -> Optional[bool]:
        if self.status is HealthStatus.UNKNOWN:
            return None
        return self.status is HealthStatus.HEALTHY

    def record(self, reachable: bool, *, at: datetime, error: Optional[str] = None) -> bool:
        """Store one poll outcome. Returns True if the status changed."""
        new_status = HealthStatus.HEALTHY if reachable else HealthStatus.UNHEALTHY
        changed = new_status is not self.status
        self.status = new_status
        self.last_checked_at = at
        self.last_error = None if reachable else error
        return changed


class HealthMonitor:
    """
    Polls the backend's health endpoint on a fixed interval, independent of
    any comparison in flight. Check failures of any kind become UNHEALTHY.
    """

    def __init__(
        self,
        backend: ComparisonBackend,
        *,
        state: Optional[HealthState] = None,
        interval_s: float = 30.0,
        timeout_s: float = 5.0,
        on_change: Optional[Callable[[HealthState], None]] = None,
    ):
        self.backend = backend
        self.state = state if state is not None else HealthState()
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self.on_change = on_change
        self._task: asyncio.Task | None = None

    async def poll_once(self) -> HealthStatus:
        error: str | None = None
        try:
            await asyncio.wait_for(self.backend.check_health(), timeout=self.timeout_s)
        except HealthCheckError as e:
            error = str(e) or "unreachable"
        except asyncio.TimeoutError:
            error = f"no answer within {self.timeout_s:g}s"
        except Exception as e:
            logger.exception("health_check_crashed")
            error = f"{type(e).__name__}: {e}"

        reachable = error is None
        changed = self.state.record(reachable, at=datetime.now(timezone.utc), error=error)
        if changed:
            logger.info("health_changed", status=self.state.status.value, error=error)
            if self.on_change:
                try:
                    self.on_change(self.state)
                except Exception:
                    logger.exception("health_callback_failed")
        else:
            logger.debug("health_polled", status=self.state.status.value)
        return self.state.status

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_s)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="health-monitor")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
