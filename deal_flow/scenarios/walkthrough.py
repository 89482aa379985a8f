"""End-to-end walkthrough of the negotiation-to-contract workflow."""

from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Any

from deal_flow.config import DealFlowConfig
from deal_flow.exceptions import DealFlowError, UnavailableAssetError
from deal_flow.generators import ActorGenerator, AssetGenerator, OfferGenerator
from deal_flow.models import (
    Asset,
    AvailabilityStatus,
    ContractStatus,
    DealStatus,
    Decision,
    ReferenceType,
    Role,
)
from deal_flow.sinks.dispatcher import NotificationDispatcher
from deal_flow.sinks.memory import MemorySink
from deal_flow.store import InMemoryActorDirectory, InMemoryAssetStore, RecordStore
from deal_flow.workflow.service import DealFlowService

logger = logging.getLogger(__name__)


class ReservationWalkthroughScenario:
    """Drive many buyers through the workflow against a seeded marketplace.

    This scenario creates:
    - Sellers and developers, each owning a few listings
    - Buyers that each make one offer on a random listing
    - Owner decisions (some offers are declined)
    - Reservations, deal acceptance and the automatic contract
    - Signatures from both parties for a share of contracts, which
      marks the asset sold or rented
    """

    def __init__(
        self,
        num_buyers: int = 20,
        num_owners: int = 4,
        assets_per_owner: int = 3,
        developer_rate: float = 0.25,
        decline_rate: float = 0.20,
        draft_handoff_rate: float = 0.50,
        completion_rate: float = 0.60,
        seed: int | None = None,
        *,
        config: DealFlowConfig | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize walkthrough scenario.

        Parameters
        ----------
        num_buyers : int
            Number of buyers, each making one offer.
        num_owners : int
            Number of listing owners.
        assets_per_owner : int
            Listings per owner.
        developer_rate : float
            Share of owners that are real-estate developers.
        decline_rate : float
            Share of offers the owner declines.
        draft_handoff_rate : float
            Share of approved offers that go through request/generate/send
            before confirmation.
        completion_rate : float
            Share of contracts signed by both parties.
        seed : int | None
            Random seed for reproducibility.
        config : DealFlowConfig | None
            Workflow settings; sinks come from ``dispatcher``.
        dispatcher : NotificationDispatcher | None
            Notification channel. An in-memory sink is always added so the
            summary can count deliveries.
        """
        self.num_buyers = num_buyers
        self.num_owners = num_owners
        self.assets_per_owner = assets_per_owner
        self.developer_rate = developer_rate
        self.decline_rate = decline_rate
        self.draft_handoff_rate = draft_handoff_rate
        self.completion_rate = completion_rate
        self.seed = seed
        self.config = config or DealFlowConfig(seed=seed)

        if seed is not None:
            random.seed(seed)

        self.memory_sink = MemorySink()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.dispatcher.add_sink(self.memory_sink)
        self.assets = InMemoryAssetStore()
        self.actors = InMemoryActorDirectory()
        self.store = RecordStore()
        self.outcomes: Counter[str] = Counter()

        self._actor_gen = ActorGenerator(seed=seed)
        self._asset_gen = AssetGenerator(seed=seed)
        self._offer_gen = OfferGenerator(seed=seed)
        self._asset_ids: list[str] = []
        self._buyer_ids: list[str] = []

    def _build_service(self) -> DealFlowService:
        return DealFlowService(
            assets=self.assets,
            actors=self.actors,
            store=self.store,
            dispatcher=self.dispatcher,
            config=self.config.workflow,
        )

    def _seed_marketplace(self) -> None:
        for _ in range(self.num_owners):
            role = Role.DEVELOPER if random.random() < self.developer_rate else Role.SELLER
            owner = self._actor_gen.generate(role)
            self.actors.add(owner)
            for _ in range(self.assets_per_owner):
                asset = self._asset_gen.generate(owner.actor_id)
                self.assets.add(asset)
                self._asset_ids.append(asset.asset_id)

        for buyer in self._actor_gen.generate_batch(self.num_buyers, Role.BUYER):
            self.actors.add(buyer)
            self._buyer_ids.append(buyer.actor_id)

        logger.info(
            "Seeded marketplace: %d owners, %d assets, %d buyers",
            self.num_owners, len(self._asset_ids), len(self._buyer_ids),
        )

    def generate(self) -> RecordStore:
        """Run every buyer through the workflow.

        Returns
        -------
        RecordStore
            Store holding all sessions, drafts, deals and contracts.
        """
        self._seed_marketplace()
        self.service = self._build_service()

        for buyer_id in self._buyer_ids:
            asset = self.assets.get_by_id(random.choice(self._asset_ids))
            try:
                self._walk(buyer_id, asset)
            except UnavailableAssetError:
                self.outcomes["unavailable"] += 1
            except DealFlowError:
                logger.exception("Walkthrough failed for buyer %s", buyer_id)
                self.outcomes["failed"] += 1

        logger.info("Walkthrough complete: %s", dict(self.outcomes))
        return self.store

    def _walk(self, buyer_id: str, asset: Asset) -> None:
        service = self.service
        owner_id = asset.owner_id

        result = service.start_negotiation(asset.asset_id, buyer_id, self._offer_gen.generate(asset))
        session_id = result.session.session_id
        service.conversations.put(buyer_id, {"session_id": session_id, "step": "offer_sent"})

        if random.random() < self.decline_rate:
            service.decide(session_id, owner_id, Decision.DECLINED)
            self.outcomes["declined"] += 1
            return
        service.decide(session_id, owner_id, Decision.APPROVED)

        if random.random() < self.draft_handoff_rate:
            service.request_draft(session_id, buyer_id)
            service.generate_draft(session_id, owner_id)
            service.send_draft(session_id, owner_id)

        method = random.choice(["bank_transfer", "manual", "cash"])
        reservation = service.confirm_reservation(buyer_id, method, session_id=session_id)
        service.conversations.update(buyer_id, step="reserved", deal_id=reservation.deal.deal_id)
        self.outcomes["reserved"] += 1

        deal = service.update_deal_status(reservation.deal.deal_id, owner_id, DealStatus.ACCEPTED)
        if deal.contract_id is None:
            return

        if random.random() < self.completion_rate:
            service.sign(deal.contract_id, buyer_id)
            service.sign(deal.contract_id, owner_id)
            service.mark_installment_paid(deal.contract_id, 0, buyer_id)
            self.outcomes["completed"] += 1
        service.conversations.delete(buyer_id)

    def export(self, sinks: list[Any]) -> None:
        """Export generated records to sinks.

        Parameters
        ----------
        sinks : list[Any]
            List of sink instances (ConsoleSink, JsonFileSink, etc.).
        """
        for sink in sinks:
            sink.write_batch("negotiations", self.store.list_records(ReferenceType.NEGOTIATION))
            sink.write_batch("drafts", self.store.list_records(ReferenceType.DRAFT))
            sink.write_batch("deals", self.store.list_records(ReferenceType.DEAL))
            sink.write_batch("contracts", self.store.list_records(ReferenceType.CONTRACT))

        logger.info("Exported walkthrough records to %d sinks", len(sinks))

    def get_summary(self) -> dict[str, Any]:
        """Get summary statistics for the walkthrough.

        Returns
        -------
        dict[str, Any]
            Record counts, outcome counts and asset availability.
        """
        contracts = self.store.list_records(ReferenceType.CONTRACT)
        availability = Counter(
            self.assets.get_by_id(asset_id).availability_status.value
            for asset_id in self._asset_ids
        )
        return {
            **self.store.summary(),
            "outcomes": dict(self.outcomes),
            "completed_contracts": sum(1 for c in contracts if c.status == ContractStatus.COMPLETED),
            "assets_sold": availability.get(AvailabilityStatus.SOLD.value, 0),
            "assets_rented": availability.get(AvailabilityStatus.RENTED.value, 0),
            "notifications": len(self.memory_sink.delivered),
        }
