"""Client library: local cache, remote store and their reconciliation."""
from onduty.client.app_state import AppState
from onduty.client.local_cache import JsonFileCache, LocalCache, MemoryCache
from onduty.client.outbox import SyncOutbox, SyncTask
from onduty.client.reconciler import Reconciler
from onduty.client.remote_store import RemoteStore

__all__ = [
    "AppState",
    "JsonFileCache",
    "LocalCache",
    "MemoryCache",
    "SyncOutbox",
    "SyncTask",
    "Reconciler",
    "RemoteStore",
]
