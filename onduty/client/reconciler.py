"""Keeps the local cache and the remote store eventually consistent.

Reads: the local cache is loaded synchronously, then a refresh task fetches
the remote requests and, when the remote returns a non-empty list, replaces
the local working set with it (remote wins).

Writes: every mutation is applied to the working set and saved to the cache
before the call returns, then queued in the outbox for the remote store.
New requests get a ``tmp-<n>`` id that is swapped for the remote id once the
remote create succeeds. Tasks are enqueued under the same lock as the local
write they mirror, so an id swap either happens before the write or remaps
its task. Remote failures are logged and never rolled back.

Known gap: a local change that has not reached the remote yet is lost if a
later refresh replaces the working set with older remote data.
"""
import logging
import re
import threading
from typing import Any, Dict, List, Optional

from onduty.client.local_cache import LocalCache
from onduty.client.outbox import SyncOutbox, SyncTask
from onduty.client.remote_store import RemoteStore
from onduty.exceptions import NotFoundError, RemoteUnavailableError
from onduty.schemas import RequestRecord, RequestUpdate, UserOut, UserRecord


logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp-"
_TEMP_ID_PATTERN = re.compile(r"^tmp-(\d+)$")


def is_temporary_id(entity_id: str) -> bool:
    return bool(entity_id) and entity_id.startswith(TEMP_ID_PREFIX)


class Reconciler:
    """Owner of the client's working sets of users and requests."""

    def __init__(
        self,
        cache: LocalCache,
        remote: Optional[RemoteStore] = None,
        outbox: Optional[SyncOutbox] = None
    ):
        self.cache = cache
        self.remote = remote
        self.outbox = outbox or SyncOutbox()

        self.users: List[UserRecord] = []
        self.requests: List[RequestRecord] = []
        # Remote user directory, read-only and credential-free
        self.directory: List[UserOut] = []

        self._lock = threading.RLock()
        self._next_temp = 1

        self.outbox.register("refresh", self._sync_refresh)
        self.outbox.register("create_request", self._sync_create_request)
        self.outbox.register("update_request", self._sync_update_request)
        self.outbox.register("delete_request", self._sync_delete_request)
        self.outbox.register("create_user", self._sync_create_user)
        self.outbox.register("delete_user", self._sync_delete_user)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_local(self) -> None:
        """Load both collections from the cache. Never touches the network."""
        with self._lock:
            self.users = self.cache.load_users()
            self.requests = self.cache.load_requests()
            self._next_temp = self._first_free_temp_number()
        logger.info(f"Loaded {len(self.users)} users and {len(self.requests)} requests from local cache")

    def _first_free_temp_number(self) -> int:
        numbers = [
            int(match.group(1))
            for match in (_TEMP_ID_PATTERN.match(r.id) for r in self.requests)
            if match
        ]
        return max(numbers, default=0) + 1

    def schedule_refresh(self) -> SyncTask:
        """Queue a remote read; the working set is replaced when it lands."""
        return self.outbox.enqueue("refresh")

    def refresh_from_remote(self) -> bool:
        """
        Fetch the remote collections now.

        Returns:
            True if the remote answered, False if it was unavailable
        """
        try:
            self._sync_refresh(SyncTask(kind="refresh"))
        except RemoteUnavailableError as e:
            logger.warning(f"Could not load remote requests: {e.message}")
            return False
        return True

    def _sync_refresh(self, task: SyncTask) -> None:
        remote_requests = self.remote_or_raise("list requests").list_requests()
        if remote_requests:
            with self._lock:
                self.requests = list(remote_requests)
                self.cache.save_requests(self.requests)
            logger.info(f"Replaced local requests with {len(remote_requests)} remote requests")

        try:
            directory = self.remote.list_users()
        except RemoteUnavailableError as e:
            logger.warning(f"Remote users not available yet: {e.message}")
        else:
            with self._lock:
                self.directory = directory

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def next_temp_id(self) -> str:
        with self._lock:
            temp_id = f"{TEMP_ID_PREFIX}{self._next_temp}"
            self._next_temp += 1
        return temp_id

    def get_request(self, request_id: str) -> RequestRecord:
        """
        Raises:
            NotFoundError: If no local request has this id
        """
        with self._lock:
            for record in self.requests:
                if record.id == request_id:
                    return record
        raise NotFoundError("request", request_id)

    def add_request(self, record: RequestRecord) -> RequestRecord:
        """Insert a new request at the front, save it, and queue the remote create."""
        with self._lock:
            self.requests = [record] + self.requests
            self.cache.save_requests(self.requests)
            self.outbox.enqueue("create_request", record.id, record.to_wire())
        return record

    def update_request(self, request_id: str, patch: Dict[str, Any]) -> RequestRecord:
        """
        Apply ``patch`` locally, save, and queue the remote update.

        Args:
            request_id: Request to update
            patch: snake_case attribute values

        Raises:
            NotFoundError: If no local request has this id
        """
        with self._lock:
            current = self.get_request(request_id)
            updated = RequestRecord.model_validate({**current.model_dump(), **patch})
            self.requests = [updated if r.id == request_id else r for r in self.requests]
            self.cache.save_requests(self.requests)

            wire_patch = RequestUpdate(**patch).model_dump(mode="json", by_alias=True, exclude_unset=True)
            self.outbox.enqueue("update_request", request_id, wire_patch)
        return updated

    def remove_request(self, request_id: str) -> None:
        """
        Raises:
            NotFoundError: If no local request has this id
        """
        with self._lock:
            self.get_request(request_id)
            self.requests = [r for r in self.requests if r.id != request_id]
            self.cache.save_requests(self.requests)
            self.outbox.enqueue("delete_request", request_id)

    def _sync_create_request(self, task: SyncTask) -> None:
        saved = self.remote_or_raise("create request").create_request(task.payload)
        temp_id = task.entity_id

        with self._lock:
            self.requests = [
                r.model_copy(update={"id": saved.id}) if r.id == temp_id else r
                for r in self.requests
            ]
            self.cache.save_requests(self.requests)
            remapped = self.outbox.remap(temp_id, saved.id)
        logger.info(f"Request {temp_id} stored remotely as {saved.id} ({remapped} queued tasks remapped)")

    def _sync_update_request(self, task: SyncTask) -> None:
        self.remote_or_raise("update request").update_request(task.entity_id, task.payload)

    def _sync_delete_request(self, task: SyncTask) -> None:
        self.remote_or_raise("delete request").delete_request(task.entity_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def find_user(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users:
                if user.id == user_id:
                    return user
        return None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users:
                if user.email == email:
                    return user
        return None

    def replace_users(self, users: List[UserRecord]) -> None:
        """Overwrite the local user set without touching the remote store."""
        with self._lock:
            self.users = list(users)
            self.cache.save_users(self.users)

    def replace_requests(self, requests: List[RequestRecord]) -> None:
        """Overwrite the local request set without touching the remote store."""
        with self._lock:
            self.requests = list(requests)
            self.cache.save_requests(self.requests)
            self._next_temp = max(self._next_temp, self._first_free_temp_number())

    def add_user(self, user: UserRecord, password: str) -> UserRecord:
        """Save a new user locally and queue its remote registration."""
        with self._lock:
            self.users = self.users + [user]
            self.cache.save_users(self.users)

            payload = {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "password": password,
                "role": user.role.value,
            }
            self.outbox.enqueue("create_user", user.id, payload)
        return user

    def remove_user(self, user_id: str) -> None:
        """
        Raises:
            NotFoundError: If no local user has this id
        """
        with self._lock:
            if self.find_user(user_id) is None:
                raise NotFoundError("user", user_id)
            self.users = [u for u in self.users if u.id != user_id]
            self.cache.save_users(self.users)
            self.outbox.enqueue("delete_user", user_id)

    def _sync_create_user(self, task: SyncTask) -> None:
        try:
            self.remote_or_raise("create user").create_user(task.payload)
        finally:
            # The plain password must not outlive the single attempt
            task.payload = {}

    def _sync_delete_user(self, task: SyncTask) -> None:
        self.remote_or_raise("delete user").delete_user(task.entity_id)

    def remote_or_raise(self, operation: str) -> RemoteStore:
        if self.remote is None:
            raise RemoteUnavailableError(operation, "no remote store configured")
        return self.remote
