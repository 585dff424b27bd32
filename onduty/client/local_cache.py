"""Client-side persistence: keyed blobs holding whole entity collections.

Each collection is one blob, a JSON list of camelCase records, rewritten in
full on every mutation. A blob that cannot be parsed reads as empty.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Type

from pydantic import ValidationError as RecordValidationError

from onduty.schemas import RecordModel, RequestRecord, UserRecord


logger = logging.getLogger(__name__)

USERS_KEY = "odp_users_v3"
REQUESTS_KEY = "odp_reqs_v3"
SESSION_KEY = "odp_session"


class LocalCache:
    """Key/value blob store. Subclasses provide ``get_raw``/``set_raw``/``remove``."""

    def get_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_raw(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def _load_records(self, key: str, model: Type[RecordModel]) -> List:
        raw = self.get_raw(key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable cache blob {key}")
            return []
        if not isinstance(items, list):
            logger.warning(f"Discarding cache blob {key}: expected a list")
            return []

        records = []
        for item in items:
            try:
                records.append(model.model_validate(item))
            except RecordValidationError as e:
                logger.warning(f"Skipping invalid record in {key}: {e.errors()[0]['msg']}")
        return records

    def _save_records(self, key: str, records: List[RecordModel]) -> None:
        self.set_raw(key, json.dumps([r.to_wire() for r in records]))

    def load_users(self) -> List[UserRecord]:
        return self._load_records(USERS_KEY, UserRecord)

    def save_users(self, users: List[UserRecord]) -> None:
        self._save_records(USERS_KEY, users)

    def load_requests(self) -> List[RequestRecord]:
        return self._load_records(REQUESTS_KEY, RequestRecord)

    def save_requests(self, requests: List[RequestRecord]) -> None:
        self._save_records(REQUESTS_KEY, requests)

    def get_session(self) -> Optional[str]:
        return self.get_raw(SESSION_KEY) or None

    def set_session(self, user_id: str) -> None:
        self.set_raw(SESSION_KEY, user_id)

    def clear_session(self) -> None:
        self.remove(SESSION_KEY)


class MemoryCache(LocalCache):
    """In-process cache, used by tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.blobs: Dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self.blobs[key] = value

    def remove(self, key: str) -> None:
        self.blobs.pop(key, None)


class JsonFileCache(LocalCache):
    """One file per key under ``directory``, replaced atomically on write."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_raw(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_raw(self, key: str, value: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_path, self._path(key))
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
