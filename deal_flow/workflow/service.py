"""Entry point that wires the workflow services together."""

import logging
from decimal import Decimal

from deal_flow.config import DealFlowConfig, WorkflowConfig
from deal_flow.exceptions import NotFoundError, ValidationError
from deal_flow.models import (
    Contract,
    Deal,
    DealDraft,
    DealStatus,
    Decision,
    NegotiationSession,
    Offer,
    PlanEntry,
    ReferenceType,
)
from deal_flow.sinks.dispatcher import NotificationDispatcher, build_sinks
from deal_flow.store import ActorDirectory, AssetStore, ConversationStore, RecordStore
from deal_flow.workflow.cancellation import CancellationResult, CancellationService
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.deals import DealService
from deal_flow.workflow.drafts import DraftContractService
from deal_flow.workflow.negotiation import NegotiationEngine, NegotiationResult
from deal_flow.workflow.reservation import ReservationResult, ReservationService
from deal_flow.workflow.signing import ContractSigningService

logger = logging.getLogger(__name__)


class DealFlowService:
    """Operations exposed to controller and chat layers.

    Inputs are already-validated domain values. Each method delegates to
    the service that owns the record being changed.
    """

    def __init__(
        self,
        assets: AssetStore,
        actors: ActorDirectory,
        store: RecordStore | None = None,
        dispatcher: NotificationDispatcher | None = None,
        config: WorkflowConfig | None = None,
        conversations: ConversationStore | None = None,
    ) -> None:
        self.context = WorkflowContext(
            store=store or RecordStore(),
            assets=assets,
            actors=actors,
            dispatcher=dispatcher or NotificationDispatcher(),
            config=config or WorkflowConfig(),
        )
        self.conversations = conversations or ConversationStore(ttl_seconds=1800.0)
        self.drafts = DraftContractService(self.context)
        self.reservations = ReservationService(self.context)
        self.negotiations = NegotiationEngine(self.context, self.drafts, self.reservations)
        self.deals = DealService(self.context)
        self.signing = ContractSigningService(self.context, self.deals)
        self.cancellations = CancellationService(self.context)

    @classmethod
    def build(
        cls,
        assets: AssetStore,
        actors: ActorDirectory,
        config: DealFlowConfig | None = None,
    ) -> "DealFlowService":
        """Create a service with sinks and settings taken from ``config``."""
        config = (config or DealFlowConfig()).validate()
        dispatcher = NotificationDispatcher(build_sinks(config))
        logger.info(
            "Deal flow service built with sinks: %s", ", ".join(config.notifications.sinks) or "none"
        )
        return cls(
            assets=assets,
            actors=actors,
            dispatcher=dispatcher,
            config=config.workflow,
            conversations=ConversationStore(ttl_seconds=config.conversation_ttl_seconds),
        )

    @property
    def store(self) -> RecordStore:
        return self.context.store

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self.context.dispatcher

    # Negotiation
    def start_negotiation(self, asset_id: str, buyer_id: str, offer: Offer) -> NegotiationResult:
        return self.negotiations.start_negotiation(asset_id, buyer_id, offer)

    def decide(
        self,
        session_id: str,
        actor_id: str,
        decision: Decision | str,
        notes: str | None = None,
    ) -> NegotiationSession:
        return self.negotiations.decide(session_id, actor_id, decision, notes)

    def request_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        return self.negotiations.request_draft(session_id, actor_id)

    def generate_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        return self.negotiations.generate_draft(session_id, actor_id)

    def send_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        return self.negotiations.send_draft(session_id, actor_id)

    def create_draft(self, session_id: str, actor_id: str) -> DealDraft:
        """Buyer creates the draft of an approved negotiation."""
        session = self.negotiations.get(session_id)
        if session.buyer_id != actor_id:
            raise NotFoundError(f"Negotiation {session_id} not found")
        return self.drafts.create_draft_from_negotiation(session)

    # Reservation
    def confirm_reservation(
        self,
        actor_id: str,
        payment_method: str | None = None,
        session_id: str | None = None,
        draft_id: str | None = None,
    ) -> ReservationResult:
        """Confirm by negotiation (creating the draft if needed) or by draft."""
        if session_id:
            return self.negotiations.confirm_reservation(session_id, actor_id, payment_method)
        if draft_id:
            return self.reservations.confirm_reservation(draft_id, actor_id, payment_method)
        raise ValidationError("Either session_id or draft_id is required")

    # Deals and contracts
    def update_deal_status(self, deal_id: str, actor_id: str, status: DealStatus | str) -> Deal:
        return self.deals.update_status(deal_id, actor_id, status)

    def create_contract(
        self,
        deal_id: str,
        actor_id: str,
        total_price: Decimal | int | None = None,
        payment_plan: list[PlanEntry] | None = None,
    ) -> Contract:
        return self.deals.create_contract(deal_id, actor_id, total_price, payment_plan)

    def sign(self, contract_id: str, actor_id: str) -> Contract:
        return self.signing.sign(contract_id, actor_id)

    def mark_installment_paid(self, contract_id: str, index: int, actor_id: str) -> Contract:
        return self.signing.mark_installment_paid(contract_id, index, actor_id)

    def cancel(
        self,
        target_type: ReferenceType | str,
        target_id: str,
        actor_id: str,
    ) -> CancellationResult:
        return self.cancellations.cancel(target_type, target_id, actor_id)

    # Queries
    def list_negotiations(self, actor_id: str) -> list[NegotiationSession]:
        return self.negotiations.list_negotiations(actor_id)

    def list_drafts(self, actor_id: str) -> list[DealDraft]:
        """Drafts of the actor; reserved drafts missing a deal get one linked."""
        drafts = []
        for draft in self.drafts.list_for(actor_id):
            if draft.linked_deal_id is None:
                draft, _ = self.reservations.ensure_deal_for_reserved_draft(draft)
            drafts.append(draft)
        return drafts

    def list_deals(self, actor_id: str) -> list[Deal]:
        return self.deals.list_for(actor_id)

    def list_contracts(self, actor_id: str) -> list[Contract]:
        return self.signing.list_for(actor_id)

    def close(self) -> None:
        self.dispatcher.close()
