"""Unit tests for tutor/models/pipeline_logs.py"""
import threading

from tutor.models.pipeline_logs import PipelineLogEntry, PipelineTraceStore


def _make_entry(conversation_id="c1", turn_id="turn_1", event_type="state_detected", **kwargs):
    return PipelineLogEntry(
        conversation_id=conversation_id,
        turn_id=turn_id,
        stage="classifier",
        event_type=event_type,
        **kwargs,
    )


class TestPipelineLogEntry:

    def test_defaults(self):
        entry = _make_entry()
        assert entry.timestamp.tzinfo is not None
        assert entry.metadata == {}
        assert entry.output is None


class TestPipelineTraceStore:

    def test_add_and_get(self):
        store = PipelineTraceStore()
        store.add_log(_make_entry(output={"state": "stuck"}))
        logs = store.get_logs("c1")
        assert len(logs) == 1
        assert logs[0].output == {"state": "stuck"}

    def test_filters(self):
        store = PipelineTraceStore()
        store.add_log(_make_entry(turn_id="t1", event_type="turn_started"))
        store.add_log(_make_entry(turn_id="t1", event_type="state_detected"))
        store.add_log(_make_entry(turn_id="t2", event_type="state_detected"))

        assert len(store.get_logs("c1", turn_id="t1")) == 2
        assert len(store.get_logs("c1", event_type="state_detected")) == 2
        assert len(store.get_logs("c1", turn_id="t2", event_type="state_detected")) == 1
        assert store.get_logs("missing") == []

    def test_bounded_per_conversation(self):
        store = PipelineTraceStore(max_logs_per_conversation=3)
        for i in range(5):
            store.add_log(_make_entry(turn_id=f"t{i}"))
        assert [log.turn_id for log in store.get_logs("c1")] == ["t2", "t3", "t4"]

    def test_oldest_conversation_evicted(self):
        store = PipelineTraceStore(max_conversations=3)
        for i in range(500):
            store.add_log(_make_entry(conversation_id=f"c{i}"))

        assert store.get_logs("c0") == []
        assert store.get_logs("c496") == []
        assert len(store.get_logs("c497")) == 1
        assert len(store.get_logs("c499")) == 1

    def test_recent_write_keeps_conversation(self):
        store = PipelineTraceStore(max_conversations=2)
        store.add_log(_make_entry("a"))
        store.add_log(_make_entry("b"))
        store.add_log(_make_entry("a"))
        store.add_log(_make_entry("c"))

        assert len(store.get_logs("a")) == 2
        assert store.get_logs("b") == []

    def test_concurrent_adds(self):
        store = PipelineTraceStore(max_logs_per_conversation=1000)

        def add_many():
            for _ in range(100):
                store.add_log(_make_entry())

        threads = [threading.Thread(target=add_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.get_logs("c1")) == 400
