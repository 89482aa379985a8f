"""Reservation (deposit) confirmation for draft agreements.

Concurrent or repeated confirmations of the same draft converge on one
deposit and one deal: the draft -> reserved write is a compare-and-swap,
and the losing caller takes the already-reserved path instead.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from deal_flow.exceptions import ConcurrentUpdateError, InvalidStateError, NotFoundError
from deal_flow.models import (
    Deal,
    DealDraft,
    DealStatus,
    DraftStatus,
    NegotiationSession,
    NegotiationStatus,
    NotificationEvent,
    NotificationLevel,
    PaymentRecord,
    PaymentStatus,
    ReferenceType,
    new_id,
)
from deal_flow.pricing import format_amount, round_currency
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.transitions import DRAFT_TRANSITIONS, check_status

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "bank_transfer"

PAYMENT_INSTRUCTIONS = {
    "bank_transfer": (
        "Transfer the deposit to the owner's bank account, then upload the "
        "transfer receipt from your dashboard within 24 hours."
    ),
    "manual": (
        "The deposit has been recorded. Please share the payment receipt with "
        "the owner by chat or email."
    ),
    "cash": (
        "Arrange with the owner to hand over the deposit in cash within 24 hours "
        "and attach the receipt."
    ),
}


def payment_instructions(method: str | None) -> str:
    """Instructions for a payment method, falling back to bank transfer."""
    return PAYMENT_INSTRUCTIONS.get(method or "", PAYMENT_INSTRUCTIONS[DEFAULT_PAYMENT_METHOD])


def reservation_reference(prefix: str = "RSV") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{new_id()[:6].upper()}"


@dataclass
class ReservationResult:
    """Outcome of a reservation confirmation.

    ``duplicate`` is True when the draft was already reserved and the
    existing deal is returned unchanged.
    """

    draft: DealDraft
    deal: Deal | None
    payment: PaymentRecord | None
    instructions: str
    duplicate: bool = False
    session: NegotiationSession | None = None


class ReservationService:
    """Records the deposit on a draft and links it to a deal."""

    def __init__(self, context: WorkflowContext) -> None:
        self.ctx = context

    def deposit_amount(self, draft: DealDraft) -> Decimal:
        scheduled = draft.payment_schedule.down_payment_amount if draft.payment_schedule else None
        if scheduled:
            return scheduled
        return round_currency(draft.price * self.ctx.config.reservation_ratio)

    def confirm_reservation(
        self,
        draft_id: str,
        buyer_id: str,
        payment_method: str | None = None,
    ) -> ReservationResult:
        """Pay the reservation deposit for a draft.

        Raises
        ------
        NotFoundError
            If the draft does not exist or belongs to another buyer.
        InvalidStateError
            If the draft was cancelled.
        """
        method = payment_method or self.ctx.config.default_payment_method
        draft = self.ctx.store.find(ReferenceType.DRAFT, draft_id)
        if draft is None or draft.buyer_id != buyer_id:
            raise NotFoundError(f"Draft {draft_id} not found")

        if draft.status == DraftStatus.RESERVED:
            return self._already_reserved(draft)

        transition = DRAFT_TRANSITIONS["reserve"]
        check_status(transition, "reserve", draft.status)

        now = datetime.now()
        payment = PaymentRecord(
            amount=self.deposit_amount(draft),
            method=method,
            currency=self.ctx.config.currency,
            reference=reservation_reference(),
            status=PaymentStatus.PAID,
            paid_at=now,
        )
        expected_status, expected_version = draft.status, draft.version
        draft.status = transition.target
        draft.reservation_payment = payment
        draft.reserved_at = now
        try:
            with self.ctx.store.locked():
                self._check_negotiation_open(draft.negotiation_id)
                draft = self.ctx.store.compare_and_swap(draft, expected_status, expected_version)
        except ConcurrentUpdateError:
            current = self.ctx.store.get(ReferenceType.DRAFT, draft_id)
            if current.status == DraftStatus.RESERVED:
                logger.info("Draft %s was reserved concurrently; returning existing deal", draft_id)
                return self._already_reserved(current)
            check_status(transition, "reserve", current.status)
            raise

        deal = self._upsert_deal(draft, payment)
        draft = self._link(draft, deal)
        logger.info(
            "Reservation confirmed for draft %s: deal %s, deposit %s %s",
            draft_id, deal.deal_id, payment.amount, payment.currency,
            extra={"extra": {"draft_id": draft_id, "deal_id": deal.deal_id, "reference": payment.reference}},
        )

        self._notify_reserved(draft, deal, payment)
        return ReservationResult(
            draft=draft,
            deal=deal,
            payment=payment,
            instructions=payment_instructions(method),
        )

    def ensure_deal_for_reserved_draft(self, draft: DealDraft) -> tuple[DealDraft, Deal | None]:
        """Make sure a reserved draft has a deal and points at it.

        Drafts reserved before deals were linked carry only their
        reservation payment; a deal is created from that payment.
        """
        if draft.status != DraftStatus.RESERVED:
            return draft, None
        payment = draft.reservation_payment or PaymentRecord(
            amount=self.deposit_amount(draft),
            method=self.ctx.config.default_payment_method,
            currency=self.ctx.config.currency,
            reference=reservation_reference("AUTO-RSV"),
            status=PaymentStatus.PAID,
            paid_at=draft.reserved_at or datetime.now(),
        )
        deal, created = self.ctx.store.upsert_deal(
            draft.negotiation_id,
            draft.asset_id,
            draft.buyer_id,
            draft.owner_id,
            create=lambda: self._new_deal(draft, payment),
        )
        if created:
            logger.info("Created missing deal %s for reserved draft %s", deal.deal_id, draft.draft_id)
        if draft.linked_deal_id != deal.deal_id:
            draft = self._link(draft, deal)
            logger.info("Linked draft %s to deal %s", draft.draft_id, deal.deal_id)
        return draft, deal

    def _check_negotiation_open(self, negotiation_id: str) -> None:
        # Drafts without a stored session come from before sessions were kept
        session = self.ctx.store.find(ReferenceType.NEGOTIATION, negotiation_id)
        if session is not None and session.status == NegotiationStatus.DECLINED:
            raise InvalidStateError(f"Negotiation {negotiation_id} was cancelled")

    def _already_reserved(self, draft: DealDraft) -> ReservationResult:
        draft, deal = self.ensure_deal_for_reserved_draft(draft)
        payment = (deal.deposit_payment if deal else None) or draft.reservation_payment
        return ReservationResult(
            draft=draft,
            deal=deal,
            payment=payment,
            instructions=payment_instructions(payment.method if payment else None),
            duplicate=True,
        )

    def _new_deal(self, draft: DealDraft, payment: PaymentRecord) -> Deal:
        return Deal(
            asset_id=draft.asset_id,
            buyer_id=draft.buyer_id,
            owner_id=draft.owner_id,
            negotiation_id=draft.negotiation_id,
            offer_price=draft.price,
            final_price=draft.price,
            deposit_payment=payment,
            status=DealStatus.PENDING,
        )

    def _upsert_deal(self, draft: DealDraft, payment: PaymentRecord) -> Deal:
        def merge(deal: Deal) -> None:
            deal.deposit_payment = payment
            deal.status = DealStatus.PENDING
            if deal.negotiation_id is None:
                deal.negotiation_id = draft.negotiation_id

        deal, _ = self.ctx.store.upsert_deal(
            draft.negotiation_id,
            draft.asset_id,
            draft.buyer_id,
            draft.owner_id,
            create=lambda: self._new_deal(draft, payment),
            merge=merge,
        )
        return deal

    def _link(self, draft: DealDraft, deal: Deal) -> DealDraft:
        def mutate(d: DealDraft) -> None:
            d.linked_deal_id = deal.deal_id

        return self.ctx.store.update(
            ReferenceType.DRAFT, draft.draft_id, mutate, attempts=self.ctx.attempts
        )

    def _notify_reserved(self, draft: DealDraft, deal: Deal, payment: PaymentRecord) -> None:
        title = draft.summary.title or self.ctx.asset_title(draft.asset_id)
        amount = f"{format_amount(payment.amount)} {payment.currency}"
        buyer_name = self.ctx.actor_name(draft.buyer_id)

        self.ctx.notify_owner(
            draft.owner_id,
            NotificationEvent(
                event_type="reservation.confirmed",
                title="Property Reserved",
                message=f"{buyer_name} reserved {title} and paid {amount}.",
                level=NotificationLevel.SUCCESS,
                reference_type=ReferenceType.DEAL,
                reference_id=deal.deal_id,
            ),
        )
        self.ctx.notify_buyer(
            draft.buyer_id,
            NotificationEvent(
                event_type="reservation.confirmed",
                title="Reservation Confirmed",
                message=f"Your reservation for {title} has been confirmed. You paid {amount}.",
                level=NotificationLevel.SUCCESS,
                reference_type=ReferenceType.DEAL,
                reference_id=deal.deal_id,
            ),
        )
