"""Scheduler and background tasks package."""
from onduty.scheduler.sync_scheduler import SyncWorker

__all__ = [
    'SyncWorker'
]
