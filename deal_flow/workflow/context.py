"""Collaborators shared by the workflow services."""

import logging
from dataclasses import dataclass, field

from deal_flow.config import WorkflowConfig
from deal_flow.models import Asset, NotificationEvent, Role
from deal_flow.sinks.dispatcher import NotificationDispatcher
from deal_flow.store import ActorDirectory, AssetStore, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class WorkflowContext:
    """Stores, directories and the notification channel a service needs.

    Lookups used only to word a notification (names, titles, the owner's
    role) fall back to defaults when a collaborator fails; by then the
    state change has already been stored.
    """

    store: RecordStore
    assets: AssetStore
    actors: ActorDirectory
    dispatcher: NotificationDispatcher = field(default_factory=NotificationDispatcher)
    config: WorkflowConfig = field(default_factory=WorkflowConfig)

    def is_admin(self, actor_id: str) -> bool:
        return self.actors.role_of(actor_id) == Role.ADMIN

    def owner_role(self, owner_id: str) -> Role:
        """Developers receive owner notifications under their own role."""
        try:
            role = self.actors.role_of(owner_id)
        except Exception:
            logger.exception("Could not resolve role of %s; notifying as seller", owner_id)
            return Role.SELLER
        return Role.DEVELOPER if role == Role.DEVELOPER else Role.SELLER

    def actor_name(self, actor_id: str) -> str:
        try:
            return self.actors.name_of(actor_id) or actor_id
        except Exception:
            logger.exception("Could not resolve name of %s", actor_id)
            return actor_id

    def asset_title(self, asset_id: str, fallback: str = "Property") -> str:
        try:
            asset = self.assets.get_by_id(asset_id)
        except Exception:
            logger.exception("Could not resolve title of asset %s", asset_id)
            return fallback
        return asset.title if asset is not None and asset.title else fallback

    def get_asset(self, asset_id: str) -> Asset | None:
        return self.assets.get_by_id(asset_id)

    def notify_owner(self, owner_id: str, event: NotificationEvent) -> None:
        self.dispatcher.notify(owner_id, self.owner_role(owner_id), event)

    def notify_buyer(self, buyer_id: str, event: NotificationEvent) -> None:
        self.dispatcher.notify(buyer_id, Role.BUYER, event)

    def notify_parties(self, buyer_id: str, owner_id: str, event: NotificationEvent) -> None:
        self.notify_buyer(buyer_id, event)
        self.notify_owner(owner_id, event)

    @property
    def attempts(self) -> int:
        return self.config.max_update_attempts
