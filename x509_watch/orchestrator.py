"""Scan orchestration: one startup scan, then optional periodic rescans."""

import asyncio
import logging
import threading
import time
from functools import wraps
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .certs.models import ScanBatch
from .exporter.base import MetricsPublisher
from .sources.base import CertificateSource


def safe_cycle(func):
    """
    Decorator containing any failure of one scan cycle.

    The exception is logged with its traceback and counted; the cycle
    returns None and the snapshot published by the previous cycle stays
    in place.

    Args:
        func: Cycle coroutine method to wrap

    Returns:
        Wrapped coroutine method that never raises Exception subclasses
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except Exception as e:
            self.failed_cycles += 1
            self.logger.error(
                f"Scan cycle failed: {e}",
                exc_info=True,
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
            )
            return None
    return wrapper


class ScanOrchestrator:
    """
    Drives CertificateSource -> MetricsPublisher cycles.

    A cycle runs immediately on start. With a positive interval an
    APScheduler job then repeats it; the job allows a single running
    instance and coalesces missed ticks, so cycles never overlap and late
    ticks are never queued.
    """

    JOB_ID = "certificate_scan"

    def __init__(
        self,
        source: CertificateSource,
        publisher: MetricsPublisher,
        path: str,
        interval: float = 0.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize orchestrator.

        Args:
            source: Certificate source to scan
            publisher: Sink receiving each cycle's batch
            path: File or directory handed to the source
            interval: Seconds between cycles, 0 for a single startup scan
            logger: Optional logger instance
        """
        self.source = source
        self.publisher = publisher
        self.path = path
        self.interval = interval
        self.logger = (logger or logging.getLogger(__name__)).getChild("orchestrator")

        self.cancel = threading.Event()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.completed_cycles = 0
        self.failed_cycles = 0

    @property
    def periodic(self) -> bool:
        """True when a scan interval is configured."""
        return self.interval > 0

    @safe_cycle
    async def run_cycle(self) -> Optional[ScanBatch]:
        """
        Execute one complete scan cycle.

        The blocking filesystem walk runs in the default executor so the
        event loop keeps serving scrapes meanwhile.

        Returns:
            Optional[ScanBatch]: The published batch, None if skipped or failed
        """
        if self.cancel.is_set():
            self.logger.debug("Cancellation requested, skipping scan cycle")
            return None

        self.logger.info(f"Starting certificate scan of {self.path}")
        start_time = time.monotonic()

        loop = asyncio.get_running_loop()
        batch = await loop.run_in_executor(None, self.source.load, self.path, self.cancel)

        self.publisher.publish(batch)
        self.completed_cycles += 1

        duration = time.monotonic() - start_time
        self.logger.info(
            f"Scan done in {duration:.3f}s: {len(batch.records)} certs, {len(batch.errors)} errors"
        )
        for error in batch.errors:
            self.logger.debug(str(error))

        return batch

    async def start(self) -> None:
        """
        Run the startup cycle and, in periodic mode, arm the scheduler.

        Must be awaited from inside the event loop that will run the
        periodic job.
        """
        await self.run_cycle()

        if not self.periodic:
            self.logger.info("No scan interval configured, scanned once at startup")
            return

        if self.cancel.is_set():
            return

        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self.scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(seconds=self.interval),
            id=self.JOB_ID,
            name='Certificate scan',
            max_instances=1,  # Prevent overlapping executions
            coalesce=True,  # If missed, run once
            misfire_grace_time=None
        )
        self.scheduler.start()
        self.logger.info(f"Periodic scan started, interval {self.interval:g}s")

    def stop(self) -> None:
        """
        Cancel further cycles.

        An in-progress cycle is not interrupted; the source observes the
        cancellation signal at its next path.
        """
        self.cancel.set()
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("Stopping periodic scan")
