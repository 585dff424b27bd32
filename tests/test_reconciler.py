"""Tests for local/remote reconciliation.

The remote side is either the real API behind a TestClient or an httpx
transport that refuses every connection.
"""
import threading

import pytest
import httpx
from datetime import date, datetime
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from onduty.client.app_state import AppState
from onduty.client.local_cache import REQUESTS_KEY, MemoryCache
from onduty.client.outbox import SyncOutbox
from onduty.client.reconciler import Reconciler, is_temporary_id
from onduty.client.remote_store import RemoteStore
from onduty.exceptions import NotFoundError, RemoteUnavailableError
from onduty.models.request import RequestStatus
from onduty.models.user import UserRole
from onduty.schemas import RequestRecord, UserRecord
from onduty.services.request_service import RequestService
from tests.conftest import make_user


def offline_remote() -> RemoteStore:
    def refuse(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)
    
    return RemoteStore(
        "http://remote.invalid/api",
        client=httpx.Client(transport=httpx.MockTransport(refuse))
    )


class InterleavingOutbox(SyncOutbox):
    """Starts a background drain of the queued create right before the update is queued."""
    
    def __init__(self):
        super().__init__()
        self.worker = None
    
    def enqueue(self, kind, entity_id=None, payload=None):
        if kind == "update_request" and self.worker is None:
            self.worker = threading.Thread(target=self.drain, kwargs={"limit": 1})
            self.worker.start()
            # Give the worker the chance to swap the id before this task exists
            self.worker.join(timeout=1.0)
        return super().enqueue(kind, entity_id, payload)


def new_record(reconciler: Reconciler, **overrides) -> RequestRecord:
    fields = {
        "id": reconciler.next_temp_id(),
        "user_id": "student-1",
        "user_name": "Alex Johnson",
        "date": date(2024, 1, 15),
        "reason": "Medical appointment",
        "instructor_id": "instructor-1",
        "instructor_name": "Sarah Chen",
        "created_at": datetime(2024, 1, 10, 9, 0),
    }
    fields.update(overrides)
    return RequestRecord(**fields)


ACCEPT_PATCH = {
    "status": RequestStatus.ACCEPTED,
    "handled_by": "Sarah Chen",
    "handled_at": datetime(2024, 1, 11, 9, 0),
}


@pytest.fixture
def server_users(api_db: Session) -> None:
    make_user(api_db, UserRole.STUDENT, "Alex Johnson", "student-1")
    make_user(api_db, UserRole.INSTRUCTOR, "Sarah Chen", "instructor-1")


@pytest.fixture
def online_remote(client: TestClient) -> RemoteStore:
    return RemoteStore("http://testserver/api", client=client)


class TestOffline:
    
    def test_create_while_offline_keeps_temporary_request(self):
        cache = MemoryCache()
        reconciler = Reconciler(cache, offline_remote())
        
        record = reconciler.add_request(new_record(reconciler))
        report = reconciler.outbox.drain()
        
        assert record.id == "tmp-1"
        assert len(report.failed) == 1
        assert [r.id for r in reconciler.requests] == ["tmp-1"]
        assert "tmp-1" in cache.blobs[REQUESTS_KEY]
    
    def test_refresh_failure_keeps_local_data(self):
        cache = MemoryCache()
        reconciler = Reconciler(cache, offline_remote())
        reconciler.add_request(new_record(reconciler))
        
        assert reconciler.refresh_from_remote() is False
        assert [r.id for r in reconciler.requests] == ["tmp-1"]
    
    def test_no_remote_configured(self):
        reconciler = Reconciler(MemoryCache())
        reconciler.add_request(new_record(reconciler))
        
        report = reconciler.outbox.drain()
        
        assert len(report.failed) == 1
        with pytest.raises(RemoteUnavailableError):
            reconciler.remote_or_raise("list requests")
    
    def test_local_update_and_remove(self):
        reconciler = Reconciler(MemoryCache(), offline_remote())
        reconciler.add_request(new_record(reconciler))
        
        updated = reconciler.update_request("tmp-1", ACCEPT_PATCH)
        assert updated.status == RequestStatus.ACCEPTED
        assert reconciler.cache.load_requests()[0].handled_by == "Sarah Chen"
        
        reconciler.remove_request("tmp-1")
        assert reconciler.requests == []
        with pytest.raises(NotFoundError):
            reconciler.get_request("tmp-1")
    
    def test_temporary_ids_continue_after_reload(self):
        cache = MemoryCache()
        first = Reconciler(cache)
        for _ in range(3):
            first.add_request(new_record(first))
        
        second = Reconciler(cache)
        second.load_local()
        
        assert second.next_temp_id() == "tmp-4"
        assert is_temporary_id("tmp-4")
        assert not is_temporary_id("req-1")


class TestOnline:
    
    def test_create_swaps_temporary_id_and_follows_with_update(
        self, online_remote, server_users, api_db
    ):
        """Accepting before the create has synced still lands on the new remote id."""
        reconciler = Reconciler(MemoryCache(), online_remote)
        reconciler.add_request(new_record(reconciler))
        reconciler.update_request("tmp-1", ACCEPT_PATCH)
        
        report = reconciler.outbox.drain()
        
        assert report.failed == []
        local = reconciler.requests[0]
        assert not is_temporary_id(local.id)
        assert local.status == RequestStatus.ACCEPTED
        
        stored = RequestService(api_db).get_request(local.id)
        assert stored.status == RequestStatus.ACCEPTED
        assert stored.handled_by == "Sarah Chen"
    
    def test_update_racing_background_create_reaches_remote(
        self, online_remote, server_users, api_db
    ):
        """An accept queued while the create is syncing follows the swapped id."""
        outbox = InterleavingOutbox()
        reconciler = Reconciler(MemoryCache(), online_remote, outbox)
        reconciler.add_request(new_record(reconciler))
        
        reconciler.update_request("tmp-1", ACCEPT_PATCH)
        outbox.worker.join()
        report = outbox.drain()
        
        assert report.failed == []
        local = reconciler.requests[0]
        assert not is_temporary_id(local.id)
        stored = RequestService(api_db).get_request(local.id)
        assert stored.status == RequestStatus.ACCEPTED
    
    def test_refresh_replaces_local_when_remote_has_requests(
        self, online_remote, server_users, api_db
    ):
        RequestService(api_db).create_request(
            user_id="student-1", user_name=None, date=date(2024, 2, 1), shift="night",
            reason="Remote only", instructor_id="instructor-1"
        )
        reconciler = Reconciler(MemoryCache(), online_remote)
        reconciler.replace_requests([new_record(reconciler, id="local-1")])
        
        assert reconciler.refresh_from_remote() is True
        
        assert [r.reason for r in reconciler.requests] == ["Remote only"]
        assert {u.id for u in reconciler.directory} == {"student-1", "instructor-1"}
    
    def test_app_state_exposes_remote_directory(self, online_remote, server_users):
        state = AppState(MemoryCache(), online_remote, seed=False)
        state.start()
        
        state.outbox.drain()
        
        assert {u.id for u in state.directory} == {"student-1", "instructor-1"}
        status = state.remote_status()
        assert status["online"] is True
        assert status["health"]["status"] == "OK"
        assert status["users"] == 2
    
    def test_remote_status_when_offline(self):
        state = AppState(MemoryCache(), offline_remote(), seed=False)
        state.start()
        state.outbox.drain()
        
        status = state.remote_status()
        
        assert status["online"] is False
        assert "connection refused" in status["reason"]
        assert state.directory == []
        assert AppState(MemoryCache(), seed=False).remote_status()["online"] is False
    
    def test_refresh_keeps_local_when_remote_empty(self, online_remote, server_users):
        reconciler = Reconciler(MemoryCache(), online_remote)
        reconciler.replace_requests([new_record(reconciler, id="local-1")])
        
        assert reconciler.refresh_from_remote() is True
        
        assert [r.id for r in reconciler.requests] == ["local-1"]
    
    def test_user_registration_reaches_remote_without_keeping_password(
        self, online_remote, client: TestClient
    ):
        reconciler = Reconciler(MemoryCache(), online_remote)
        user = UserRecord(
            id="u_0123456789ab", name="New Student", email="new@example.com",
            role=UserRole.STUDENT, password_hash="salt$hash"
        )
        reconciler.add_user(user, "pw")
        task = reconciler.outbox.pending()[0]
        
        reconciler.outbox.drain()
        
        assert task.payload == {}
        assert client.get("/api/users/u_0123456789ab").json()["email"] == "new@example.com"
        login = client.post("/api/auth/login", json={"email": "new@example.com", "password": "pw"})
        assert login.status_code == 200
    
    def test_remote_delete(self, online_remote, server_users, api_db):
        reconciler = Reconciler(MemoryCache(), online_remote)
        reconciler.add_request(new_record(reconciler))
        reconciler.outbox.drain()
        remote_id = reconciler.requests[0].id
        
        reconciler.remove_request(remote_id)
        reconciler.outbox.drain()
        
        assert RequestService(api_db).list_requests() == []


class TestRemoteStore:
    
    def test_health(self, online_remote):
        assert online_remote.check_health()["status"] == "OK"
    
    def test_http_errors_become_remote_unavailable(self, online_remote):
        with pytest.raises(RemoteUnavailableError) as exc_info:
            online_remote.delete_request("missing")
        
        assert "404" in exc_info.value.details["reason"]
    
    def test_connection_errors_become_remote_unavailable(self):
        with pytest.raises(RemoteUnavailableError):
            offline_remote().list_users()
    
    def test_non_json_response(self):
        remote = RemoteStore(
            "http://remote.invalid/api",
            client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
        )
        
        with pytest.raises(RemoteUnavailableError):
            remote.check_health()
