from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..application.services.user_service import UserService

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, hour: int) -> float:
    """Seconds from ``now`` until the next ``hour``:00 UTC."""
    now = now.astimezone(timezone.utc)
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class StaleAccountPurger:
    """Background task that deletes stale unactivated accounts once a day."""

    def __init__(
        self,
        user_service: UserService,
        *,
        hour_utc: int = 1,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if not 0 <= hour_utc <= 23:
            raise ValueError("hour_utc must be between 0 and 23.")
        self._user_service = user_service
        self._hour = hour_utc
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self._shutdown = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task:
            return
        logger.info("Starting stale account purger, daily at %02d:00 UTC.", self._hour)
        self._shutdown.clear()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="stale-account-purger")

    async def stop(self) -> None:
        if not self._task:
            return
        logger.info("Stopping stale account purger.")
        self._shutdown.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def run_once(self) -> int:
        return self._user_service.remove_not_activated_users()

    async def _run(self) -> None:
        while not self._shutdown.is_set():
            delay = seconds_until_next_run(self._clock(), self._hour)
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:  # pragma: no cover - keep the schedule alive
                logger.exception("Unexpected error while removing not activated users.")
