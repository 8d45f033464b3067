"""APScheduler-driven polling loop triggering one fetch cycle per tick."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Event, Lock
from typing import Callable

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..errors import CycleCancelled
from ..logging_conf import get_logger

JOB_ID = "hiring::fetch-cycle"

CycleRunner = Callable[[Event], object]


class PollingScheduler:
    """Own the polling timer and the Idle → Active lifecycle.

    ``start`` blocks the calling thread until ``cancel`` is set. The first
    cycle runs immediately, later ones on a fixed interval; at most one
    cycle is in flight and missed ticks collapse into one. ``stop`` only
    clears the active flag so that a later ``start`` may proceed; it never
    interrupts a running cycle.
    """

    def __init__(
        self,
        run_cycle: CycleRunner,
        interval: float,
        logger: structlog.BoundLogger | None = None,
        scheduler_factory: Callable[[], BaseScheduler] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.run_cycle = run_cycle
        self.interval = interval
        self.logger = logger or get_logger("scheduler")
        self._scheduler_factory = scheduler_factory or (
            lambda: BackgroundScheduler(timezone=timezone.utc)
        )
        self.scheduler: BaseScheduler | None = None
        self._lock = Lock()
        self._active = False

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def start(self, cancel: Event) -> None:
        with self._lock:
            if self._active:
                return
            self._active = True

        scheduler = self._scheduler_factory()
        scheduler.add_job(
            self._tick,
            trigger=self._build_trigger(),
            id=JOB_ID,
            args=[cancel],
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        self.scheduler = scheduler
        scheduler.start()
        self.logger.info("scheduler_started", interval_seconds=self.interval)
        try:
            cancel.wait()
        finally:
            scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        raise CycleCancelled("polling loop cancelled")

    def stop(self) -> None:
        with self._lock:
            self._active = False

    def run_once(self, cancel: Event | None = None) -> object:
        return self.run_cycle(cancel or Event())

    def _tick(self, cancel: Event) -> None:
        if cancel.is_set():
            return
        try:
            self.run_cycle(cancel)
        except CycleCancelled:
            self.logger.info("cycle_cancelled")
        except Exception as exc:  # noqa: BLE001
            self.logger.error("cycle_failed", error=str(exc))

    def _build_trigger(self) -> IntervalTrigger:
        return IntervalTrigger(seconds=self.interval, timezone=timezone.utc)

    def list_jobs(self) -> list[dict]:
        if self.scheduler is None:
            return []
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": job.next_run_time,
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["JOB_ID", "PollingScheduler"]
