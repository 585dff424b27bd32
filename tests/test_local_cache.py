"""Tests for the client blob cache."""
import json
from datetime import date, datetime

from onduty.client.local_cache import (
    REQUESTS_KEY,
    SESSION_KEY,
    USERS_KEY,
    JsonFileCache,
    MemoryCache,
)
from onduty.models.user import UserRole
from onduty.schemas import RequestRecord, UserRecord


def sample_request(request_id: str = "tmp-1") -> RequestRecord:
    return RequestRecord(
        id=request_id,
        user_id="student-1",
        user_name="Alex Johnson",
        date=date(2024, 1, 15),
        reason="Medical appointment",
        instructor_id="instructor-1",
        created_at=datetime(2024, 1, 10, 9, 0)
    )


class TestMemoryCache:
    
    def test_requests_stored_as_camel_case_json(self):
        cache = MemoryCache()
        cache.save_requests([sample_request()])
        
        stored = json.loads(cache.blobs[REQUESTS_KEY])
        
        assert stored[0]["userId"] == "student-1"
        assert stored[0]["status"] == "pending"
        assert cache.load_requests() == [sample_request()]
    
    def test_unreadable_blob_reads_as_empty(self):
        cache = MemoryCache({USERS_KEY: "{not json", REQUESTS_KEY: '{"a": 1}'})
        
        assert cache.load_users() == []
        assert cache.load_requests() == []
    
    def test_invalid_records_skipped(self):
        good = sample_request("r1").to_wire()
        cache = MemoryCache({REQUESTS_KEY: json.dumps([good, {"id": "broken"}])})
        
        assert [r.id for r in cache.load_requests()] == ["r1"]
    
    def test_missing_blob_reads_as_empty(self):
        assert MemoryCache().load_requests() == []
    
    def test_session(self):
        cache = MemoryCache()
        assert cache.get_session() is None
        
        cache.set_session("student-1")
        assert cache.blobs[SESSION_KEY] == "student-1"
        assert cache.get_session() == "student-1"
        
        cache.clear_session()
        assert cache.get_session() is None


class TestJsonFileCache:
    
    def test_round_trip_through_files(self, tmp_path):
        cache = JsonFileCache(str(tmp_path / "cache"))
        user = UserRecord(
            id="u1", name="Alex", email="alex@example.com",
            role=UserRole.STUDENT, password_hash="salt$hash"
        )
        cache.save_users([user])
        
        reopened = JsonFileCache(str(tmp_path / "cache"))
        
        assert reopened.load_users() == [user]
        assert (tmp_path / "cache" / f"{USERS_KEY}.json").exists()
        assert not list((tmp_path / "cache").glob("*.tmp"))
    
    def test_remove(self, tmp_path):
        cache = JsonFileCache(str(tmp_path))
        cache.set_session("u1")
        
        cache.clear_session()
        cache.clear_session()
        
        assert cache.get_session() is None
