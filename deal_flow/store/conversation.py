"""Per-actor conversational state with caller-owned expiry.

Chat front-ends keep short-lived state per user (for example a
half-finished offer being collected over several messages). Entries are
keyed by actor id; the TTL is supplied by the owner of the store and
expired entries are dropped lazily on access or explicitly via ``sweep``.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class ConversationEntry:
    actor_id: str
    state: dict[str, Any]
    updated_at: float


@dataclass
class ConversationStore:
    """Conversation state table keyed by actor id.

    Parameters
    ----------
    ttl_seconds : float
        How long an entry survives without being touched.
    clock : Callable[[], float]
        Monotonic time source, injectable for tests.
    """

    ttl_seconds: float
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, ConversationEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _expired(self, entry: ConversationEntry, now: float) -> bool:
        return now - entry.updated_at > self.ttl_seconds

    def get(self, actor_id: str) -> dict[str, Any] | None:
        """Return a copy of the actor's state, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(actor_id)
            if entry is None:
                return None
            if self._expired(entry, self.clock()):
                del self._entries[actor_id]
                return None
            return dict(entry.state)

    def put(self, actor_id: str, state: dict[str, Any]) -> None:
        """Replace the actor's state and refresh its expiry."""
        with self._lock:
            self._entries[actor_id] = ConversationEntry(actor_id, dict(state), self.clock())

    def update(self, actor_id: str, **changes: Any) -> dict[str, Any]:
        """Merge ``changes`` into the actor's live state, starting fresh if expired."""
        with self._lock:
            now = self.clock()
            entry = self._entries.get(actor_id)
            state = {} if entry is None or self._expired(entry, now) else entry.state
            state = {**state, **changes}
            self._entries[actor_id] = ConversationEntry(actor_id, state, now)
            return dict(state)

    def delete(self, actor_id: str) -> None:
        with self._lock:
            self._entries.pop(actor_id, None)

    def sweep(self) -> int:
        """Drop all expired entries and return how many were removed."""
        with self._lock:
            now = self.clock()
            expired = [a for a, e in self._entries.items() if self._expired(e, now)]
            for actor_id in expired:
                del self._entries[actor_id]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
