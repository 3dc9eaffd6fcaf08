"""
Agent Logging Models

In-memory, thread-safe record of what each agent did on each turn, including
whether a fallback producer stood in for it.
"""

import threading
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from pydantic import BaseModel, Field


class AgentLogEntry(BaseModel):
    """Single agent event within a session turn."""

    timestamp: datetime = Field(default_factory=datetime.utcnow)
    session_id: str
    turn_id: str
    agent_name: str
    event_type: str
    fallback_used: bool = False
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AgentLogStore:
    """Per-session agent events; the oldest entries drop once a session is full."""

    def __init__(self, max_logs_per_session: int = 200):
        self._max_logs = max_logs_per_session
        self._sessions: Dict[str, Deque[AgentLogEntry]] = {}
        self._lock = threading.Lock()

    def add_log(self, entry: AgentLogEntry) -> None:
        with self._lock:
            if entry.session_id not in self._sessions:
                self._sessions[entry.session_id] = deque(maxlen=self._max_logs)
            self._sessions[entry.session_id].append(entry)

    def get_logs(
        self,
        session_id: str,
        turn_id: Optional[str] = None,
        agent_name: Optional[str] = None,
    ) -> List[AgentLogEntry]:
        with self._lock:
            snapshot = list(self._sessions.get(session_id, ()))
        return [
            entry for entry in snapshot
            if (turn_id is None or entry.turn_id == turn_id)
            and (agent_name is None or entry.agent_name == agent_name)
        ]

    def count_fallbacks(self, session_id: str) -> int:
        return sum(entry.fallback_used for entry in self.get_logs(session_id))

    def clear_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "session_count": len(self._sessions),
                "total_logs": sum(map(len, self._sessions.values())),
                "max_logs_per_session": self._max_logs,
            }
