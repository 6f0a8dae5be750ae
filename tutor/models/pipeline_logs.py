"""
Pipeline Trace Models

In-memory storage for per-turn pipeline events (state detected, strategy
selected, draft finalized), keyed by conversation id. One store is built at
app start and handed to each pipeline; it is bounded both per conversation
and in the number of conversations kept.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field
import threading


class PipelineLogEntry(BaseModel):
    """Single pipeline event."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    conversation_id: str
    turn_id: str
    stage: str
    event_type: str
    input_summary: Optional[str] = None
    output: Optional[Dict[str, Any]] = None
    duration_ms: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PipelineTraceStore:
    """
    Thread-safe trace store.

    Conversations are kept in least-recently-written order; adding an event
    for a new conversation past `max_conversations` drops the oldest one.
    """

    def __init__(self, max_conversations: int = 500, max_logs_per_conversation: int = 200):
        self._logs: "OrderedDict[str, List[PipelineLogEntry]]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_conversations = max_conversations
        self._max_logs = max_logs_per_conversation

    def add_log(self, entry: PipelineLogEntry) -> None:
        with self._lock:
            logs = self._logs.pop(entry.conversation_id, [])
            logs.append(entry)
            self._logs[entry.conversation_id] = logs[-self._max_logs:]
            while len(self._logs) > self._max_conversations:
                self._logs.popitem(last=False)

    def get_logs(
        self,
        conversation_id: str,
        turn_id: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> List[PipelineLogEntry]:
        with self._lock:
            logs = list(self._logs.get(conversation_id, []))
        if turn_id:
            logs = [log for log in logs if log.turn_id == turn_id]
        if event_type:
            logs = [log for log in logs if log.event_type == event_type]
        return logs
