"""Base models shared across workflow records."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from deal_flow.models.enums import NotificationLevel, ReferenceType


def new_id() -> str:
    """Generate a record identifier."""
    return uuid.uuid4().hex


@dataclass
class Location:
    """Where an asset sits, as shown in drafts and notifications."""

    city: str = ""
    area: str = ""

    def label(self) -> str:
        """Return ``"<city> <area>"`` with empty parts dropped."""
        return f"{self.city} {self.area}".strip()


@dataclass
class NotificationEvent:
    """Outbound notification emitted after a state change commits.

    The recipient and its role travel alongside the event
    (``sink.emit(recipient, role, event)``).
    """

    event_type: str  # entity.action (e.g., negotiation.started)
    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    event_id: str = field(default_factory=new_id)
    event_time: datetime = field(default_factory=datetime.now)
