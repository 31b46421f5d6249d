"""
Bounded event log for one simulation session.
"""

from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()


class EventType(str, Enum):
    SEASON_ADVANCED = "season_advanced"
    KINGDOM_UPDATED = "kingdom_updated"
    LOCATION_UPDATED = "location_updated"
    CONFLICT_STARTED = "conflict_started"
    CONFLICT_MERGED = "conflict_merged"
    ROUND_RESOLVED = "round_resolved"
    CONFLICT_RESOLVED = "conflict_resolved"
    TERRITORY_TRANSFERRED = "territory_transferred"
    KINGDOM_DESTROYED = "kingdom_destroyed"
    CONFLICT_CLEARED = "conflict_cleared"


class SimulationEvent(BaseModel):
    """One recorded simulation event."""

    sequence: int = Field(description="Position in the session, starting at 1")
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = Field(default_factory=dict)


class EventLog:
    """
    Keeps the most recent events of a session.

    Owned by the application root and handed to the Simulation that
    writes to it; older events fall off once capacity is reached.
    """

    def __init__(self, capacity: int = 500):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._events: Deque[SimulationEvent] = deque(maxlen=capacity)
        self._sequence = 0

    def record(self, event_type: EventType, **data: Any) -> SimulationEvent:
        self._sequence += 1
        event = SimulationEvent(sequence=self._sequence, type=event_type, data=data)
        self._events.append(event)
        logger.debug("Event recorded", type=event_type.value, sequence=self._sequence)
        return event

    def recent(self, limit: Optional[int] = None) -> List[SimulationEvent]:
        """Newest events last; all kept events when no limit is given."""
        events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
