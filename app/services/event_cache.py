"""
In-process event cache keyed by event id
"""

import time
from typing import Dict, Optional, Tuple

from app.core.config import settings
from app.schemas import Event

class EventCache:
    """Read-through cache with explicit invalidation.

    Every write through the event store drops the touched event, so the next
    read reloads it from the backend. The TTL bounds staleness for writes made
    by other processes.
    """

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = settings.EVENT_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._entries: Dict[str, Tuple[float, Event]] = {}

    def get(self, event_id: str) -> Optional[Event]:
        entry = self._entries.get(event_id)
        if not entry:
            return None
        stored_at, event = entry
        if time.monotonic() - stored_at > self.ttl_seconds:
            del self._entries[event_id]
            return None
        return event.model_copy(deep=True)

    def put(self, event: Event) -> None:
        if self.ttl_seconds <= 0:
            return
        now = time.monotonic()
        self._prune(now)
        self._entries[event.id] = (now, event)

    def _prune(self, now: float) -> None:
        """Drop every expired entry"""
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at > self.ttl_seconds]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self, event_id: str) -> None:
        self._entries.pop(event_id, None)

    def clear(self) -> None:
        self._entries.clear()

# Global event cache instance
event_cache = EventCache()
