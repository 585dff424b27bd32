"""Background worker that drains the sync outbox."""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime
import logging
from typing import Optional

from onduty.client.outbox import SyncOutbox
from onduty.config import settings


# Configure logging
logger = logging.getLogger(__name__)

JOB_ID = "outbox_drain"


class SyncWorker:
    """Drains an outbox on a fixed interval and right after each enqueue.

    One worker per client session; jobs never overlap, so at most one remote
    call is in flight at a time.
    """

    def __init__(self, outbox: SyncOutbox, interval_seconds: Optional[int] = None):
        """
        Args:
            outbox: Outbox to drain
            interval_seconds: Seconds between drains, defaults to settings
        """
        self.outbox = outbox
        self.interval_seconds = interval_seconds or settings.sync_interval_seconds
        self.scheduler = BackgroundScheduler()

    def drain_outbox(self) -> None:
        """Job body: attempt everything currently queued."""
        if self.outbox.size() == 0:
            return
        self.outbox.drain()

    def start(self) -> None:
        """Start draining and wake up whenever a task is enqueued."""
        self.scheduler.add_job(
            self.drain_outbox,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Outbox Drain",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.outbox.on_enqueue = self.kick
        self.scheduler.start()
        logger.info(f"Sync worker started, draining every {self.interval_seconds}s")

    def kick(self) -> None:
        """Run the drain job as soon as possible."""
        if self.scheduler.running:
            self.scheduler.modify_job(JOB_ID, next_run_time=datetime.now(self.scheduler.timezone))

    def stop(self) -> None:
        """Stop the worker, waiting for a running drain to finish."""
        self.outbox.on_enqueue = None
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Sync worker stopped")
        else:
            logger.info("Sync worker was not running")
