"""APScheduler-based ticker that drives time-based batch flushes.

The ticker runs on the caller's asyncio event loop, so it keeps firing while
the producer is suspended and while every worker is sending.
"""
from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger


class FlushTicker:
    """Calls an async callback every `interval` on the running event loop."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        *,
        interval: timedelta,
        job_id: str = "bulk-flush",
    ) -> None:
        self._callback = callback
        self._interval = interval
        self._job_id = job_id
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """Start ticking. Must be called from within a running event loop."""
        if self._scheduler is not None:
            return
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._interval.total_seconds()),
            id=self._job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start(paused=False)
        self._scheduler = scheduler

    async def _tick(self) -> None:
        self._idle.clear()
        try:
            await self._callback()
        finally:
            self._idle.set()

    async def shutdown(self) -> None:
        """Stop ticking once a tick that is already running has finished.

        The scheduler cancels outstanding job tasks when it shuts down, so the
        job is removed first and any submitted tick is allowed to complete.
        """
        scheduler = self._scheduler
        if scheduler is None:
            return
        self._scheduler = None
        scheduler.remove_job(self._job_id)
        # A tick submitted just before removal takes its first step here
        await asyncio.sleep(0)
        await self._idle.wait()
        scheduler.shutdown(wait=False)
