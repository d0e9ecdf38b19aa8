"""
Workflow event log: a bounded, newest-first buffer of run progress events.

Instances are passed to the orchestrator; there is no module-level log.
"""
import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 500


@dataclass(frozen=True)
class WorkflowEvent:
    id: int
    message: str
    type: str
    workflow_id: Optional[str]
    timestamp: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.type,
            "workflow_id": self.workflow_id,
            "timestamp": self.timestamp,
            **self.metadata,
        }


class WorkflowEventLog:
    """Keeps the last ``max_events`` events; older ones are evicted."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS):
        self.max_events = max_events
        self._events: deque = deque(maxlen=max_events)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(
        self,
        message: str,
        type: str = "processing",
        workflow_id: Optional[str] = None,
        **metadata: Any,
    ) -> WorkflowEvent:
        """Record an event and forward it to the module logger."""
        with self._lock:
            event = WorkflowEvent(
                id=next(self._ids),
                message=message,
                type=type,
                workflow_id=workflow_id,
                timestamp=datetime.now(timezone.utc).isoformat(),
                metadata=dict(metadata),
            )
            self._events.appendleft(event)

        level = logging.ERROR if type == "error" else logging.INFO
        logger.log(level, "[%s] %s", workflow_id or "-", message)
        return event

    def get(
        self,
        workflow_id: Optional[str] = None,
        type: Optional[str] = None,
        limit: int = 100,
    ) -> List[WorkflowEvent]:
        """Newest-first events, optionally filtered by run and type."""
        with self._lock:
            events = list(self._events)
        if workflow_id:
            events = [e for e in events if e.workflow_id == workflow_id]
        if type:
            events = [e for e in events if e.type == type]
        return events[:limit]

    def for_workflow(self, workflow_id: str) -> List[WorkflowEvent]:
        return self.get(workflow_id=workflow_id, limit=self.max_events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        # An empty log is still a usable sink
        return True
