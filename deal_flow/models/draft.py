"""Deal draft and payment schedule models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from deal_flow.models.base import new_id
from deal_flow.models.enums import DraftStatus, OfferType, PaymentStatus


@dataclass
class PaymentSchedule:
    """Payment schedule derived from an agreed offer."""

    payment_type: OfferType
    down_payment_percent: Decimal
    down_payment_amount: Decimal
    remaining_amount: Decimal
    installment_years: Decimal
    monthly_installment: Decimal
    original_price: Decimal | None = None  # cash only
    agreed_price: Decimal | None = None  # cash only


@dataclass
class PaymentRecord:
    """Deposit (reservation) payment."""

    amount: Decimal
    method: str
    currency: str
    reference: str
    status: PaymentStatus
    paid_at: datetime | None


@dataclass
class DraftSummary:
    """Human-facing summary printed on the draft agreement."""

    title: str
    location: str
    meeting_date: datetime
    notes: str = ""


@dataclass
class DealDraft:
    """Pre-contract summary created after the owner approves a negotiation."""

    buyer_id: str
    owner_id: str
    asset_id: str
    negotiation_id: str
    summary: DraftSummary
    price: Decimal
    payment_schedule: PaymentSchedule
    reservation_payment: PaymentRecord | None = None
    reserved_at: datetime | None = None
    linked_deal_id: str | None = None
    status: DraftStatus = DraftStatus.DRAFT
    draft_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.draft_id
