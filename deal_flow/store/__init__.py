"""Backing stores for workflow records and their collaborators."""

from deal_flow.store.assets import (
    ActorDirectory,
    AssetStore,
    InMemoryActorDirectory,
    InMemoryAssetStore,
)
from deal_flow.store.conversation import ConversationStore
from deal_flow.store.records import ACTIVE_NEGOTIATION_STATUSES, RecordStore

__all__ = [
    "ACTIVE_NEGOTIATION_STATUSES",
    "ActorDirectory",
    "AssetStore",
    "ConversationStore",
    "InMemoryActorDirectory",
    "InMemoryAssetStore",
    "RecordStore",
]
