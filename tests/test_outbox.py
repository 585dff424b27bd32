"""Tests for the sync outbox."""
import pytest

from onduty.client.outbox import SyncOutbox
from onduty.exceptions import RemoteUnavailableError


class TestSyncOutbox:
    
    def test_unregistered_kind_rejected(self):
        outbox = SyncOutbox()
        
        with pytest.raises(ValueError):
            outbox.enqueue("create_request", "tmp-1")
    
    def test_drain_runs_tasks_in_order(self):
        seen = []
        outbox = SyncOutbox()
        outbox.register("touch", lambda task: seen.append(task.entity_id))
        for entity_id in ["a", "b", "c"]:
            outbox.enqueue("touch", entity_id)
        
        report = outbox.drain()
        
        assert seen == ["a", "b", "c"]
        assert len(report.succeeded) == 3
        assert outbox.size() == 0
    
    def test_failed_task_dropped_and_rest_continue(self):
        seen = []
        
        def handler(task):
            if task.entity_id == "bad":
                raise RemoteUnavailableError("touch", "connection refused")
            seen.append(task.entity_id)
        
        outbox = SyncOutbox()
        outbox.register("touch", handler)
        for entity_id in ["bad", "good"]:
            outbox.enqueue("touch", entity_id)
        
        report = outbox.drain()
        
        assert seen == ["good"]
        assert [t.entity_id for t in report.failed] == ["bad"]
        assert outbox.pending() == []
    
    def test_other_errors_propagate(self):
        outbox = SyncOutbox()
        outbox.register("boom", lambda task: 1 / 0)
        outbox.enqueue("boom")
        
        with pytest.raises(ZeroDivisionError):
            outbox.drain()
    
    def test_drain_limit(self):
        outbox = SyncOutbox()
        outbox.register("touch", lambda task: None)
        for entity_id in ["a", "b", "c"]:
            outbox.enqueue("touch", entity_id)
        
        outbox.drain(limit=2)
        
        assert [t.entity_id for t in outbox.pending()] == ["c"]
    
    def test_remap_rewrites_queued_tasks(self):
        outbox = SyncOutbox()
        outbox.register("touch", lambda task: None)
        outbox.enqueue("touch", "tmp-1")
        outbox.enqueue("touch", "tmp-2")
        outbox.enqueue("touch", "tmp-1")
        
        assert outbox.remap("tmp-1", "r-99") == 2
        assert [t.entity_id for t in outbox.pending()] == ["r-99", "tmp-2", "r-99"]
    
    def test_handler_may_remap_during_drain(self):
        outbox = SyncOutbox()
        seen = []
        outbox.register("create", lambda task: outbox.remap(task.entity_id, "server-1"))
        outbox.register("update", lambda task: seen.append(task.entity_id))
        outbox.enqueue("create", "tmp-1")
        outbox.enqueue("update", "tmp-1")
        
        outbox.drain()
        
        assert seen == ["server-1"]
    
    def test_on_enqueue_hook(self):
        calls = []
        outbox = SyncOutbox()
        outbox.register("touch", lambda task: None)
        outbox.on_enqueue = lambda: calls.append(1)
        
        outbox.enqueue("touch")
        
        assert calls == [1]
