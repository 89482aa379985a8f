"""Collaborator stores: listings and the actor directory.

The workflow only needs ``get_by_id`` / ``set_availability`` from the
listings subsystem and ``role_of`` from user management. The in-memory
implementations back tests, the walkthrough scenario and local runs.
"""

import copy
import threading
from abc import ABC, abstractmethod

from deal_flow.exceptions import NotFoundError
from deal_flow.models import Actor, Asset, AvailabilityStatus, Role


class AssetStore(ABC):
    """Listing lookups and the single availability write the workflow makes."""

    @abstractmethod
    def get_by_id(self, asset_id: str) -> Asset | None:
        """Return the asset, or None if it does not exist."""

    @abstractmethod
    def set_availability(self, asset_id: str, status: AvailabilityStatus) -> None:
        """Set the availability status of an asset."""


class ActorDirectory(ABC):
    """Role lookups for marketplace users."""

    @abstractmethod
    def role_of(self, actor_id: str) -> Role | None:
        """Return the actor's role, or None for unknown actors."""

    def name_of(self, actor_id: str) -> str:
        return actor_id


class InMemoryAssetStore(AssetStore):
    """Thread-safe dict-backed asset store."""

    def __init__(self, assets: list[Asset] | None = None) -> None:
        self._assets: dict[str, Asset] = {}
        self._lock = threading.Lock()
        for asset in assets or []:
            self.add(asset)

    def add(self, asset: Asset) -> None:
        """Add or replace an asset."""
        with self._lock:
            self._assets[asset.asset_id] = copy.deepcopy(asset)

    def get_by_id(self, asset_id: str) -> Asset | None:
        with self._lock:
            asset = self._assets.get(asset_id)
            return copy.deepcopy(asset) if asset is not None else None

    def set_availability(self, asset_id: str, status: AvailabilityStatus) -> None:
        with self._lock:
            asset = self._assets.get(asset_id)
            if asset is None:
                raise NotFoundError(f"Asset {asset_id} not found")
            asset.availability_status = status

    def __len__(self) -> int:
        return len(self._assets)


class InMemoryActorDirectory(ActorDirectory):
    """Dict-backed actor directory."""

    def __init__(self, actors: list[Actor] | None = None) -> None:
        self._actors: dict[str, Actor] = {}
        for actor in actors or []:
            self.add(actor)

    def add(self, actor: Actor) -> None:
        self._actors[actor.actor_id] = actor

    def get(self, actor_id: str) -> Actor | None:
        return self._actors.get(actor_id)

    def role_of(self, actor_id: str) -> Role | None:
        actor = self._actors.get(actor_id)
        return actor.role if actor else None

    def name_of(self, actor_id: str) -> str:
        actor = self._actors.get(actor_id)
        return actor.name if actor and actor.name else actor_id
