"""Negotiation session models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from deal_flow.models.base import Location, new_id
from deal_flow.models.enums import ListingStatus, NegotiationStatus, OfferType


@dataclass
class Offer:
    """Buyer offer or owner terms.

    Only the fields of ``offer_type`` are meaningful: ``cash_offer_price``
    for cash, ``down_payment_percent`` + ``installment_years`` for
    installments, ``rent_budget`` + ``rent_duration_months`` for rent.
    """

    offer_type: OfferType = OfferType.INSTALLMENTS
    cash_offer_price: Decimal | None = None
    down_payment_percent: Decimal | None = None
    installment_years: int | None = None
    rent_budget: Decimal | None = None
    rent_duration_months: int | None = None
    notes: str = ""

    def normalized(self) -> "Offer":
        """Return a copy with the fields of other offer types cleared."""
        is_cash = self.offer_type == OfferType.CASH
        is_installments = self.offer_type == OfferType.INSTALLMENTS
        is_rent = self.offer_type == OfferType.RENT
        return replace(
            self,
            cash_offer_price=self.cash_offer_price if is_cash else None,
            down_payment_percent=self.down_payment_percent if is_installments else None,
            installment_years=self.installment_years if is_installments else None,
            rent_budget=self.rent_budget if is_rent else None,
            rent_duration_months=self.rent_duration_months if is_rent else None,
        )


@dataclass
class CounterOffer:
    """Computed, informational suggestion shown to one side."""

    label: str
    offer_type: OfferType
    message: str
    cash_amount: Decimal | None = None
    down_payment_percent: Decimal | None = None
    installment_years: int | None = None
    rent_budget: Decimal | None = None
    rent_duration_months: int | None = None


@dataclass(frozen=True)
class AssetSnapshot:
    """Asset details captured when the session was opened."""

    title: str
    price: Decimal | None
    location: Location
    listing_status: ListingStatus | None


@dataclass
class NegotiationSession:
    """One buyer's offer thread on one asset."""

    asset_id: str
    buyer_id: str
    owner_id: str
    asset_snapshot: AssetSnapshot
    buyer_offer: Offer
    owner_terms: Offer
    buyer_counter_offer: CounterOffer | None = None
    owner_counter_offer: CounterOffer | None = None
    status: NegotiationStatus = NegotiationStatus.PENDING
    decision_by: str | None = None
    decision_at: datetime | None = None
    decision_notes: str | None = None
    session_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.session_id
