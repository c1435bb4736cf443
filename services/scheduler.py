"""
Periodic market data refresh using APScheduler.
One immediate fetch on activation, then a fetch every refresh interval.
At most one refresh job exists at a time: re-keying stops the old job before
scheduling the new one, and nothing fetched after deactivation is applied.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from models import Asset
from services.common import FetchFailure
from services.market_data import MarketDataClient

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "market_data_refresh"


@dataclass
class RefreshHandle:
    """A scheduled refresh job. Returned by start(), consumed by stop()."""
    job: Job
    access_key: Optional[str]
    started_at: datetime = field(default_factory=datetime.now)
    stopped: bool = False


class RefreshScheduler:
    """
    Drives MarketDataClient on a fixed interval.

    Results are delivered through callbacks: on_success receives the new
    asset list, on_failure the FetchFailure. Both run on whichever thread
    performed the fetch (the caller for immediate fetches, the scheduler
    thread for periodic ones).
    """

    def __init__(
        self,
        client: MarketDataClient,
        on_success: Callable[[List[Asset]], None],
        on_failure: Optional[Callable[[FetchFailure], None]] = None,
        on_fetch_start: Optional[Callable[[], None]] = None,
        interval_seconds: Optional[int] = None,
        scheduler: Optional[BaseScheduler] = None
    ):
        self.client = client
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_fetch_start = on_fetch_start
        self.interval_seconds = interval_seconds or get_settings().refresh_interval_seconds
        self._scheduler = scheduler or BackgroundScheduler()
        self._owns_scheduler = scheduler is None
        self._lock = threading.RLock()
        self._handle: Optional[RefreshHandle] = None
        # Bumped on every deactivation; a fetch begun under an older
        # generation is never applied
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def access_key(self) -> Optional[str]:
        return self._handle.access_key if self._handle else None

    def _ensure_running(self):
        if self._owns_scheduler and not self._scheduler.running:
            self._scheduler.start()
            logger.info("Refresh scheduler started")

    def _schedule(self, access_key: Optional[str]) -> RefreshHandle:
        job = self._scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            args=[access_key],
            id=REFRESH_JOB_ID,
            name="Market Data Refresh",
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )
        return RefreshHandle(job=job, access_key=access_key)

    def start(self, access_key: Optional[str] = None) -> RefreshHandle:
        """
        Begin a refresh cycle: schedule the recurring job, then fetch once immediately.
        Replaces any running cycle.

        Args:
            access_key: Optional market-data API key used by every fetch of this cycle

        Returns:
            Handle for the new cycle
        """
        with self._lock:
            previous, self._handle = self._handle, None
            if previous is not None:
                # Re-keying keeps the generation: in-flight results still apply
                self.stop(previous)
            self._ensure_running()
            handle = self._schedule(access_key)
            self._handle = handle

        logger.info(f"Refresh cycle started, every {self.interval_seconds}s")
        self._run(access_key)
        return handle

    def stop(self, handle: RefreshHandle):
        """Cancel a refresh cycle. Stopping an already stopped handle does nothing."""
        with self._lock:
            if handle.stopped:
                return
            handle.stopped = True
            try:
                handle.job.remove()
            except JobLookupError:
                logger.debug("Refresh job already removed")
            if self._handle is handle:
                self._handle = None
                self._generation += 1
        logger.info("Refresh cycle stopped")

    def activate(self, access_key: Optional[str] = None) -> RefreshHandle:
        return self.start(access_key)

    def set_access_key(self, access_key: Optional[str]) -> Optional[RefreshHandle]:
        """
        Re-arm the cycle with a new key: cancel the old job, fetch now, reschedule.
        Does nothing when inactive or when the key is unchanged.
        """
        with self._lock:
            if self._handle is None or self._handle.access_key == access_key:
                return self._handle
        logger.info("Market data key changed, restarting refresh cycle")
        return self.start(access_key)

    def refresh_now(self):
        """Fetch once with the current key without touching the schedule."""
        if not self.active:
            logger.warning("Refresh requested while scheduler is inactive")
            return
        self._run(self.access_key)

    def deactivate(self):
        """Cancel the schedule. Results of fetches still in flight are dropped."""
        with self._lock:
            handle = self._handle
            self._handle = None
            self._generation += 1
            if handle is not None:
                self.stop(handle)

    def shutdown(self):
        """Deactivate and stop the scheduler thread if this instance created it."""
        self.deactivate()
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Refresh scheduler shut down")

    def _current(self, generation: int) -> bool:
        return self.active and generation == self._generation

    def _run(self, access_key: Optional[str]):
        """One refresh: fetch, then deliver the result if no deactivation happened meanwhile."""
        with self._lock:
            if not self.active:
                return
            generation = self._generation

        if self.on_fetch_start is not None:
            self.on_fetch_start()

        try:
            assets = self.client.fetch(access_key)
        except FetchFailure as e:
            with self._lock:
                if not self._current(generation):
                    logger.debug("Dropping fetch failure that arrived after deactivation")
                    return
                if self.on_failure is not None:
                    self.on_failure(e)
            return

        with self._lock:
            if not self._current(generation):
                logger.debug("Dropping fetch result that arrived after deactivation")
                return
            self.on_success(assets)
