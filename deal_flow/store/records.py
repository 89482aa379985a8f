"""Workflow record store with conditional writes.

Every state change goes through :meth:`RecordStore.compare_and_swap`, which
accepts a record only if the stored copy still has the status and version
the caller read. Find-or-create paths are single upserts keyed by their
natural uniqueness tuple, executed under the store lock.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, TypeVar

from deal_flow.exceptions import ConcurrentUpdateError, NotFoundError
from deal_flow.models import (
    Contract,
    ContractStatus,
    Deal,
    DealDraft,
    NegotiationSession,
    NegotiationStatus,
    ReferenceType,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

ACTIVE_NEGOTIATION_STATUSES = frozenset(
    {
        NegotiationStatus.PENDING,
        NegotiationStatus.APPROVED,
        NegotiationStatus.DRAFT_REQUESTED,
        NegotiationStatus.DRAFT_GENERATED,
        NegotiationStatus.DRAFT_SENT,
    }
)

RECORD_KINDS: dict[type, ReferenceType] = {
    NegotiationSession: ReferenceType.NEGOTIATION,
    DealDraft: ReferenceType.DRAFT,
    Deal: ReferenceType.DEAL,
    Contract: ReferenceType.CONTRACT,
}


@dataclass
class RecordStore:
    """In-memory backing store for sessions, drafts, deals and contracts.

    Records handed out are deep copies, so callers never share mutable
    state with the store or with each other.
    """

    sessions: dict[str, NegotiationSession] = field(default_factory=dict)
    drafts: dict[str, DealDraft] = field(default_factory=dict)
    deals: dict[str, Deal] = field(default_factory=dict)
    contracts: dict[str, Contract] = field(default_factory=dict)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def _collection(self, kind: ReferenceType) -> dict[str, Any]:
        return {
            ReferenceType.NEGOTIATION: self.sessions,
            ReferenceType.DRAFT: self.drafts,
            ReferenceType.DEAL: self.deals,
            ReferenceType.CONTRACT: self.contracts,
        }[kind]

    @staticmethod
    def kind_of(record: Any) -> ReferenceType:
        """Return the record kind for a workflow record instance."""
        return RECORD_KINDS[type(record)]

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock across several reads and writes.

        The lock is reentrant, so store methods may be called inside the block.
        """
        with self._lock:
            yield

    # Basic reads and writes
    def find(self, kind: ReferenceType, record_id: str) -> Any | None:
        """Return a copy of the record, or None if absent."""
        with self._lock:
            record = self._collection(kind).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def get(self, kind: ReferenceType, record_id: str) -> Any:
        """Return a copy of the record or raise ``NotFoundError``."""
        record = self.find(kind, record_id)
        if record is None:
            raise NotFoundError(f"{kind.value.capitalize()} {record_id} not found")
        return record

    def insert(self, record: R) -> R:
        """Insert a new record; its key must not exist yet."""
        kind = self.kind_of(record)
        with self._lock:
            collection = self._collection(kind)
            if record.key in collection:
                raise ConcurrentUpdateError(f"{kind.value.capitalize()} {record.key} already exists")
            collection[record.key] = copy.deepcopy(record)
            return copy.deepcopy(record)

    def compare_and_swap(self, record: R, expected_status: Any, expected_version: int) -> R:
        """Replace the stored record if its status and version are unchanged.

        Raises
        ------
        NotFoundError
            If the record does not exist.
        ConcurrentUpdateError
            If another writer changed the record since it was read.
        """
        kind = self.kind_of(record)
        with self._lock:
            collection = self._collection(kind)
            current = collection.get(record.key)
            if current is None:
                raise NotFoundError(f"{kind.value.capitalize()} {record.key} not found")
            if current.status != expected_status or current.version != expected_version:
                raise ConcurrentUpdateError(
                    f"{kind.value.capitalize()} {record.key} changed concurrently "
                    f"(expected {expected_status.value}@{expected_version}, "
                    f"found {current.status.value}@{current.version})"
                )
            stored = copy.deepcopy(record)
            stored.version = expected_version + 1
            stored.updated_at = datetime.now()
            collection[record.key] = stored
            return copy.deepcopy(stored)

    def update(
        self,
        kind: ReferenceType,
        record_id: str,
        mutate: Callable[[Any], None],
        attempts: int = 3,
    ) -> Any:
        """Read, mutate and conditionally write a record, retrying lost races.

        ``mutate`` receives a fresh copy on every attempt, so the guards it
        checks (and the domain errors it raises) always see current state.
        """
        for attempt in range(1, attempts + 1):
            record = self.get(kind, record_id)
            expected_status, expected_version = record.status, record.version
            mutate(record)
            try:
                return self.compare_and_swap(record, expected_status, expected_version)
            except ConcurrentUpdateError:
                logger.debug(
                    "Conditional write lost on %s %s (attempt %d/%d)",
                    kind.value, record_id, attempt, attempts,
                )
        raise ConcurrentUpdateError(
            f"{kind.value.capitalize()} {record_id} kept changing; gave up after {attempts} attempts"
        )

    # Atomic find-or-create
    def upsert_active_session(
        self,
        asset_id: str,
        buyer_id: str,
        create: Callable[[], NegotiationSession],
        merge: Callable[[NegotiationSession], None],
    ) -> tuple[NegotiationSession, bool]:
        """Merge into the active session for (asset, buyer) or create one.

        Returns
        -------
        tuple[NegotiationSession, bool]
            The stored session and whether it was newly created.
        """
        with self._lock:
            existing = self._latest(
                s for s in self.sessions.values()
                if s.asset_id == asset_id
                and s.buyer_id == buyer_id
                and s.status in ACTIVE_NEGOTIATION_STATUSES
            )
            if existing is not None:
                merged = copy.deepcopy(existing)
                merge(merged)
                return self.compare_and_swap(merged, existing.status, existing.version), False
            return self.insert(create()), True

    def get_or_create_draft(
        self,
        negotiation_id: str,
        create: Callable[[], DealDraft],
    ) -> tuple[DealDraft, bool]:
        """Return the draft of a negotiation, creating it if absent."""
        with self._lock:
            existing = self._draft_for(negotiation_id)
            if existing is not None:
                return copy.deepcopy(existing), False
            return self.insert(create()), True

    def get_or_create_contract(
        self,
        deal_id: str,
        create: Callable[[], Contract],
    ) -> tuple[Contract, bool]:
        """Return the live contract of a deal, creating it if absent."""
        with self._lock:
            existing = self._latest(
                c for c in self.contracts.values()
                if c.deal_id == deal_id and c.status != ContractStatus.CANCELLED
            )
            if existing is not None:
                return copy.deepcopy(existing), False
            return self.insert(create()), True

    def upsert_deal(
        self,
        negotiation_id: str | None,
        asset_id: str,
        buyer_id: str,
        owner_id: str,
        create: Callable[[], Deal],
        merge: Callable[[Deal], None] | None = None,
    ) -> tuple[Deal, bool]:
        """Find the deal for a negotiation (or legacy triple) or create one."""
        with self._lock:
            existing = self._deal_for(negotiation_id, asset_id, buyer_id, owner_id)
            if existing is None:
                return self.insert(create()), True
            if merge is None:
                return copy.deepcopy(existing), False
            merged = copy.deepcopy(existing)
            merge(merged)
            return self.compare_and_swap(merged, existing.status, existing.version), False

    # Queries
    def find_draft_for_negotiation(self, negotiation_id: str) -> DealDraft | None:
        with self._lock:
            draft = self._draft_for(negotiation_id)
            return copy.deepcopy(draft) if draft is not None else None

    def find_deal(
        self,
        negotiation_id: str | None,
        asset_id: str,
        buyer_id: str,
        owner_id: str,
    ) -> Deal | None:
        """Look up a deal by negotiation, falling back to the (asset, buyer, owner) triple."""
        with self._lock:
            deal = self._deal_for(negotiation_id, asset_id, buyer_id, owner_id)
            return copy.deepcopy(deal) if deal is not None else None

    def find_contract_for_deal(self, deal_id: str) -> Contract | None:
        with self._lock:
            contract = self._latest(c for c in self.contracts.values() if c.deal_id == deal_id)
            return copy.deepcopy(contract) if contract is not None else None

    def list_records(
        self,
        kind: ReferenceType,
        predicate: Callable[[Any], bool] | None = None,
    ) -> list[Any]:
        """Return copies of matching records, newest first."""
        with self._lock:
            records = [
                r for r in self._collection(kind).values()
                if predicate is None or predicate(r)
            ]
            records.sort(key=lambda r: r.created_at, reverse=True)
            return copy.deepcopy(records)

    def summary(self) -> dict[str, int]:
        """Return counts of all stored records."""
        with self._lock:
            return {
                "sessions": len(self.sessions),
                "drafts": len(self.drafts),
                "deals": len(self.deals),
                "contracts": len(self.contracts),
            }

    # Internal lookups; callers hold the lock
    @staticmethod
    def _latest(records: Iterable[R]) -> R | None:
        return max(records, key=lambda r: r.created_at, default=None)

    def _draft_for(self, negotiation_id: str) -> DealDraft | None:
        return self._latest(d for d in self.drafts.values() if d.negotiation_id == negotiation_id)

    def _deal_for(
        self,
        negotiation_id: str | None,
        asset_id: str,
        buyer_id: str,
        owner_id: str,
    ) -> Deal | None:
        if negotiation_id:
            deal = self._latest(d for d in self.deals.values() if d.negotiation_id == negotiation_id)
            if deal is not None:
                return deal
        # Legacy deals carry no negotiation link
        return self._latest(
            d for d in self.deals.values()
            if d.negotiation_id is None
            and d.asset_id == asset_id
            and d.buyer_id == buyer_id
            and d.owner_id == owner_id
        )
