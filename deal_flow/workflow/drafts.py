"""Draft agreement creation from an approved negotiation."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from deal_flow.exceptions import InvalidStateError, ValidationError
from deal_flow.models import (
    DealDraft,
    DraftSummary,
    NegotiationSession,
    NegotiationStatus,
    Offer,
    OfferType,
    ReferenceType,
)
from deal_flow.pricing import derive_payment_schedule, to_decimal
from deal_flow.workflow.context import WorkflowContext

logger = logging.getLogger(__name__)

DRAFT_NOTES = "Generated automatically after both parties agreed on terms."


def agreed_price(offer: Offer, asset_price: Decimal) -> Decimal:
    """Price printed on the draft for the buyer's accepted offer."""
    if offer.offer_type == OfferType.CASH and offer.cash_offer_price:
        return to_decimal(offer.cash_offer_price)
    if offer.offer_type == OfferType.RENT and offer.rent_budget:
        return to_decimal(offer.rent_budget)
    return to_decimal(asset_price)


class DraftContractService:
    """Creates the single draft agreement that belongs to a negotiation."""

    def __init__(self, context: WorkflowContext) -> None:
        self.ctx = context

    def create_draft_from_negotiation(
        self,
        session: NegotiationSession,
        allowed_statuses: Iterable[NegotiationStatus] = (NegotiationStatus.APPROVED,),
    ) -> DealDraft:
        """Return the session's draft, creating it on first call.

        Parameters
        ----------
        session : NegotiationSession
            The negotiation to draft from.
        allowed_statuses : Iterable[NegotiationStatus]
            Statuses the session may be in. Only ``approved`` by default;
            reservation confirmation widens this to its own source statuses.

        Raises
        ------
        InvalidStateError
            If the session is in any other status.
        ValidationError
            If no asset price is known for the session.
        """
        allowed = frozenset(allowed_statuses)
        if session.status not in allowed:
            raise InvalidStateError(
                f"Cannot create a draft before the owner approves (status {session.status.value})"
            )

        draft, created = self.ctx.store.get_or_create_draft(
            session.session_id, lambda: self._build_draft(session)
        )
        if created:
            logger.info(
                "Draft %s created for negotiation %s", draft.draft_id, session.session_id,
                extra={"extra": {"draft_id": draft.draft_id, "price": draft.price}},
            )
        else:
            logger.info("Draft %s already exists for negotiation %s", draft.draft_id, session.session_id)
        return draft

    def _build_draft(self, session: NegotiationSession) -> DealDraft:
        asset = self.ctx.get_asset(session.asset_id)
        snapshot = session.asset_snapshot
        price = asset.price if asset is not None and asset.price else snapshot.price
        if not price:
            raise ValidationError(f"No price known for asset {session.asset_id}")

        title = asset.title if asset is not None else snapshot.title
        location = asset.location if asset is not None else snapshot.location
        meeting = datetime.now() + timedelta(days=self.ctx.config.meeting_lead_days)

        return DealDraft(
            buyer_id=session.buyer_id,
            owner_id=session.owner_id,
            asset_id=session.asset_id,
            negotiation_id=session.session_id,
            summary=DraftSummary(
                title=title or "Property",
                location=location.label(),
                meeting_date=meeting,
                notes=DRAFT_NOTES,
            ),
            price=agreed_price(session.buyer_offer, price),
            payment_schedule=derive_payment_schedule(price, session.buyer_offer),
        )

    def get(self, draft_id: str) -> DealDraft:
        return self.ctx.store.get(ReferenceType.DRAFT, draft_id)

    def list_for(self, actor_id: str) -> list[DealDraft]:
        """Drafts where the actor is buyer or owner, newest first."""
        return self.ctx.store.list_records(
            ReferenceType.DRAFT,
            lambda d: actor_id in (d.buyer_id, d.owner_id),
        )
