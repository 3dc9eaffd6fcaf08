"""Unit tests for trainer/models/agent_logs.py"""

import threading

from trainer.models.agent_logs import AgentLogEntry, AgentLogStore


def make_entry(session_id="train_1", turn_id="turn_1", agent_name="silent_scorer", **kwargs):
    return AgentLogEntry(
        session_id=session_id,
        turn_id=turn_id,
        agent_name=agent_name,
        event_type=kwargs.pop("event_type", "completed"),
        **kwargs,
    )


class TestAgentLogStore:
    def test_add_and_get(self):
        store = AgentLogStore()
        store.add_log(make_entry())
        logs = store.get_logs("train_1")
        assert len(logs) == 1
        assert logs[0].agent_name == "silent_scorer"

    def test_unknown_session(self):
        assert AgentLogStore().get_logs("missing") == []

    def test_filters(self):
        store = AgentLogStore()
        store.add_log(make_entry(turn_id="turn_1", agent_name="silent_scorer"))
        store.add_log(make_entry(turn_id="turn_1", agent_name="guest_simulator"))
        store.add_log(make_entry(turn_id="turn_2", agent_name="silent_scorer"))

        assert len(store.get_logs("train_1", turn_id="turn_1")) == 2
        assert len(store.get_logs("train_1", agent_name="silent_scorer")) == 2
        assert len(store.get_logs("train_1", turn_id="turn_2", agent_name="silent_scorer")) == 1

    def test_bounded_per_session(self):
        store = AgentLogStore(max_logs_per_session=3)
        for i in range(5):
            store.add_log(make_entry(turn_id=f"turn_{i}"))
        logs = store.get_logs("train_1")
        assert [log.turn_id for log in logs] == ["turn_2", "turn_3", "turn_4"]

    def test_count_fallbacks(self):
        store = AgentLogStore()
        store.add_log(make_entry(fallback_used=True))
        store.add_log(make_entry())
        store.add_log(make_entry(agent_name="guest_simulator", fallback_used=True))
        assert store.count_fallbacks("train_1") == 2

    def test_clear_session(self):
        store = AgentLogStore()
        store.add_log(make_entry())
        store.add_log(make_entry(session_id="train_2"))
        store.clear_session("train_1")
        assert store.get_logs("train_1") == []
        assert len(store.get_logs("train_2")) == 1

    def test_stats(self):
        store = AgentLogStore(max_logs_per_session=50)
        store.add_log(make_entry())
        store.add_log(make_entry(session_id="train_2"))
        assert store.get_stats() == {"session_count": 2, "total_logs": 2, "max_logs_per_session": 50}

    def test_concurrent_writes(self):
        store = AgentLogStore(max_logs_per_session=1000)

        def write():
            for _ in range(100):
                store.add_log(make_entry())

        threads = [threading.Thread(target=write) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store.get_logs("train_1")) == 400
