"""In-process sink that keeps every notification it receives."""

import threading
from dataclasses import dataclass
from typing import Any

from deal_flow.models import NotificationEvent, Role


@dataclass(frozen=True)
class Delivered:
    recipient_id: str
    role: Role
    event: NotificationEvent


class MemorySink:
    """Collect notifications and record batches in memory."""

    def __init__(self) -> None:
        self.delivered: list[Delivered] = []
        self.batches: dict[str, list[Any]] = {}
        self._lock = threading.Lock()

    def emit(self, recipient_id: str, role: Role, event: NotificationEvent) -> None:
        with self._lock:
            self.delivered.append(Delivered(recipient_id, role, event))

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        with self._lock:
            self.batches.setdefault(entity_type, []).extend(records)

    def for_recipient(self, recipient_id: str) -> list[NotificationEvent]:
        """Events delivered to one recipient, oldest first."""
        with self._lock:
            return [d.event for d in self.delivered if d.recipient_id == recipient_id]

    def event_types(self) -> list[str]:
        with self._lock:
            return [d.event.event_type for d in self.delivered]

    def close(self) -> None:
        pass
