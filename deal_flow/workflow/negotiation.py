"""Negotiation state machine: offer, decision, draft hand-off, confirmation."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from deal_flow.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    UnavailableAssetError,
    ValidationError,
)
from deal_flow.models import (
    Asset,
    AssetSnapshot,
    Decision,
    NegotiationSession,
    NegotiationStatus,
    NotificationEvent,
    NotificationLevel,
    Offer,
    OfferType,
    ReferenceType,
    Role,
)
from deal_flow.pricing import (
    CounterOfferResult,
    build_owner_terms,
    compute_counter_offers,
    format_amount,
    to_decimal,
)
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.drafts import DraftContractService
from deal_flow.workflow.reservation import ReservationResult, ReservationService
from deal_flow.workflow.transitions import (
    NEGOTIATION_TRANSITIONS,
    authorize,
    check_status,
)

logger = logging.getLogger(__name__)

DEFAULT_DECISION_NOTES = {
    Decision.APPROVED: "Approved",
    Decision.DECLINED: "Declined",
}


@dataclass
class NegotiationResult:
    """A stored session plus what the caller needs to render it."""

    session: NegotiationSession
    duplicate: bool = False
    counter_offers: CounterOfferResult | None = None

    @property
    def estimated_reservation(self) -> Decimal | None:
        return self.counter_offers.estimated_reservation if self.counter_offers else None


class NegotiationEngine:
    """Drives a negotiation session through its statuses.

    Every status change is a conditional write through
    ``RecordStore.update``, so the guard of each operation is checked
    against the state that is actually replaced.
    """

    def __init__(
        self,
        context: WorkflowContext,
        drafts: DraftContractService,
        reservations: ReservationService,
    ) -> None:
        self.ctx = context
        self.drafts = drafts
        self.reservations = reservations

    # Offer
    def start_negotiation(self, asset_id: str, buyer_id: str, offer: Offer) -> NegotiationResult:
        """Open a negotiation, or refresh the buyer's active one on this asset.

        Raises
        ------
        ValidationError
            Missing asset id, missing asset price or out-of-range offer values.
        NotFoundError
            If the asset does not exist.
        AuthorizationError
            If the actor is not a buyer or owns the asset.
        UnavailableAssetError
            If the asset is already sold or rented.
        """
        if not asset_id:
            raise ValidationError("Asset id is required")
        asset = self.ctx.get_asset(asset_id)
        if asset is None:
            raise NotFoundError(f"Asset {asset_id} not found")

        if self.ctx.actors.role_of(buyer_id) != Role.BUYER:
            raise AuthorizationError("Only buyers can start a negotiation")
        if asset.owner_id == buyer_id:
            raise AuthorizationError("Owners cannot negotiate on their own listing")
        if asset.is_unavailable:
            raise UnavailableAssetError(
                f"Asset {asset_id} is no longer available ({asset.availability_status.value})"
            )
        if not asset.price or asset.price <= 0:
            raise ValidationError(f"Asset {asset_id} has no price")

        buyer_offer = offer.normalized()
        self._validate_offer(buyer_offer, asset)

        owner_terms = build_owner_terms(asset)
        counters = compute_counter_offers(buyer_offer, owner_terms, asset.price)
        snapshot = AssetSnapshot(
            title=asset.title,
            price=asset.price,
            location=asset.location,
            listing_status=asset.listing_status,
        )

        def create() -> NegotiationSession:
            return NegotiationSession(
                asset_id=asset.asset_id,
                buyer_id=buyer_id,
                owner_id=asset.owner_id,
                asset_snapshot=snapshot,
                buyer_offer=buyer_offer,
                owner_terms=owner_terms,
                buyer_counter_offer=counters.buyer_counter_offer,
                owner_counter_offer=counters.owner_counter_offer,
            )

        def merge(session: NegotiationSession) -> None:
            session.buyer_offer = buyer_offer
            session.owner_terms = owner_terms
            session.asset_snapshot = snapshot
            session.buyer_counter_offer = counters.buyer_counter_offer
            session.owner_counter_offer = counters.owner_counter_offer

        session, created = self.ctx.store.upsert_active_session(asset_id, buyer_id, create, merge)

        if not created:
            logger.info(
                "Merged offer into active negotiation %s (%s)", session.session_id, session.status.value
            )
            return NegotiationResult(session=session, duplicate=True, counter_offers=counters)

        logger.info(
            "Negotiation %s started on asset %s by %s", session.session_id, asset_id, buyer_id,
            extra={"extra": {"session_id": session.session_id, "offer_type": buyer_offer.offer_type.value}},
        )
        buyer_name = self.ctx.actor_name(buyer_id)
        self.ctx.notify_owner(
            session.owner_id,
            NotificationEvent(
                event_type="negotiation.started",
                title="New Negotiation Offer",
                message=(
                    f"{buyer_name} sent a {buyer_offer.offer_type.value} offer on {asset.title}. "
                    f"Estimated reservation: {format_amount(counters.estimated_reservation)} "
                    f"{self.ctx.config.currency}."
                ),
                reference_type=ReferenceType.NEGOTIATION,
                reference_id=session.session_id,
            ),
        )
        return NegotiationResult(session=session, counter_offers=counters)

    def _validate_offer(self, offer: Offer, asset: Asset) -> None:
        def positive(name: str, value) -> None:
            if value is not None and to_decimal(value) <= 0:
                raise ValidationError(f"{name} must be positive")

        if offer.offer_type == OfferType.CASH:
            positive("Cash offer price", offer.cash_offer_price)
            ratio = self.ctx.config.min_cash_offer_ratio
            if ratio is not None and offer.cash_offer_price is not None:
                minimum = asset.price * ratio
                if offer.cash_offer_price < minimum:
                    raise ValidationError(
                        f"Cash offer {format_amount(offer.cash_offer_price)} is below the "
                        f"minimum of {format_amount(minimum)}"
                    )
        elif offer.offer_type == OfferType.INSTALLMENTS:
            down = offer.down_payment_percent
            if down is not None and not (0 < to_decimal(down) <= 100):
                raise ValidationError("Down payment percent must be in (0, 100]")
            positive("Installment years", offer.installment_years)
        else:
            positive("Rent budget", offer.rent_budget)
            positive("Rent duration", offer.rent_duration_months)

    # Owner decision
    def decide(
        self,
        session_id: str,
        actor_id: str,
        decision: Decision | str,
        notes: str | None = None,
    ) -> NegotiationSession:
        """Approve or decline a pending negotiation.

        Raises
        ------
        AuthorizationError
            Unless the actor owns the asset (or is an admin).
        InvalidStateError
            Unless the session is pending.
        """
        try:
            decision = Decision(decision)
        except ValueError as e:
            raise ValidationError(f"Unknown decision: {decision}") from e

        action = "approve" if decision == Decision.APPROVED else "decline"
        is_admin = self.ctx.is_admin(actor_id)

        def mutate(session: NegotiationSession) -> None:
            transition = NEGOTIATION_TRANSITIONS[action]
            authorize(transition, action, actor_id, session.buyer_id, session.owner_id, is_admin)
            check_status(transition, action, session.status)
            session.status = transition.target
            session.decision_by = actor_id
            session.decision_at = datetime.now()
            session.decision_notes = notes or DEFAULT_DECISION_NOTES[decision]

        session = self.ctx.store.update(
            ReferenceType.NEGOTIATION, session_id, mutate, attempts=self.ctx.attempts
        )
        logger.info("Negotiation %s %s by %s", session_id, session.status.value, actor_id)

        approved = decision == Decision.APPROVED
        title = session.asset_snapshot.title
        self.ctx.notify_buyer(
            session.buyer_id,
            NotificationEvent(
                event_type=f"negotiation.{session.status.value}",
                title="Offer Approved" if approved else "Offer Declined",
                message=(
                    f"The owner {'approved' if approved else 'declined'} your offer on {title}. "
                    f"{session.decision_notes}"
                ),
                level=NotificationLevel.SUCCESS if approved else NotificationLevel.WARNING,
                reference_type=ReferenceType.NEGOTIATION,
                reference_id=session_id,
            ),
        )
        return session

    # Draft hand-off
    def request_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        """Buyer asks the owner for a draft agreement."""
        session = self._advance(session_id, actor_id, "request_draft")
        self.ctx.notify_owner(
            session.owner_id,
            NotificationEvent(
                event_type="negotiation.draft_requested",
                title="Draft Requested",
                message=f"The buyer requested a draft agreement for {session.asset_snapshot.title}.",
                reference_type=ReferenceType.NEGOTIATION,
                reference_id=session_id,
            ),
        )
        return session

    def generate_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        return self._advance(session_id, actor_id, "generate_draft")

    def send_draft(self, session_id: str, actor_id: str) -> NegotiationSession:
        """Owner sends the generated draft to the buyer."""
        session = self._advance(session_id, actor_id, "send_draft")
        self.ctx.notify_buyer(
            session.buyer_id,
            NotificationEvent(
                event_type="negotiation.draft_sent",
                title="Draft Ready",
                message=f"The draft agreement for {session.asset_snapshot.title} is ready for review.",
                reference_type=ReferenceType.NEGOTIATION,
                reference_id=session_id,
            ),
        )
        return session

    def _advance(self, session_id: str, actor_id: str, action: str) -> NegotiationSession:
        transition = NEGOTIATION_TRANSITIONS[action]
        is_admin = self.ctx.is_admin(actor_id)

        def mutate(session: NegotiationSession) -> None:
            authorize(transition, action, actor_id, session.buyer_id, session.owner_id, is_admin)
            check_status(transition, action, session.status)
            session.status = transition.target

        session = self.ctx.store.update(
            ReferenceType.NEGOTIATION, session_id, mutate, attempts=self.ctx.attempts
        )
        logger.info("Negotiation %s -> %s by %s", session_id, session.status.value, actor_id)
        return session

    # Confirmation
    def confirm_reservation(
        self,
        session_id: str,
        actor_id: str,
        payment_method: str | None = None,
    ) -> ReservationResult:
        """Buyer confirms the deal: ensure the draft, pay the deposit, confirm.

        A session that is already confirmed returns its existing draft and
        deal with ``duplicate=True``.
        """
        transition = NEGOTIATION_TRANSITIONS["confirm"]
        session = self.ctx.store.get(ReferenceType.NEGOTIATION, session_id)
        authorize(transition, "confirm", actor_id, session.buyer_id, session.owner_id)

        if session.status == NegotiationStatus.CONFIRMED:
            draft = self.ctx.store.find_draft_for_negotiation(session_id)
            if draft is None:
                raise InvalidStateError(f"Negotiation {session_id} is confirmed but has no draft")
            result = self.reservations.confirm_reservation(draft.draft_id, actor_id, payment_method)
            result.duplicate = True
            result.session = session
            return result

        check_status(transition, "confirm", session.status)
        draft = self.drafts.create_draft_from_negotiation(session, transition.sources)
        result = self.reservations.confirm_reservation(draft.draft_id, actor_id, payment_method)

        def mutate(s: NegotiationSession) -> None:
            if s.status == transition.target:
                return
            check_status(transition, "confirm", s.status)
            s.status = transition.target

        result.session = self.ctx.store.update(
            ReferenceType.NEGOTIATION, session_id, mutate, attempts=self.ctx.attempts
        )
        logger.info("Negotiation %s confirmed by %s", session_id, actor_id)
        return result

    # Queries
    def get(self, session_id: str) -> NegotiationSession:
        return self.ctx.store.get(ReferenceType.NEGOTIATION, session_id)

    def list_negotiations(self, actor_id: str) -> list[NegotiationSession]:
        """Sessions the actor takes part in: as buyer, or as owner of the asset."""
        return self.ctx.store.list_records(
            ReferenceType.NEGOTIATION,
            lambda s: actor_id in (s.buyer_id, s.owner_id),
        )
