"""Deal model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from deal_flow.models.base import new_id
from deal_flow.models.draft import PaymentRecord
from deal_flow.models.enums import DealStatus, PaymentStatus


@dataclass
class Deal:
    """Accepted-transaction record holding the deposit payment."""

    asset_id: str
    buyer_id: str
    owner_id: str
    offer_price: Decimal
    final_price: Decimal
    negotiation_id: str | None = None
    deposit_payment: PaymentRecord | None = None
    status: DealStatus = DealStatus.PENDING
    contract_id: str | None = None
    deal_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.deal_id

    @property
    def deposit_paid(self) -> bool:
        return self.deposit_payment is not None and self.deposit_payment.status == PaymentStatus.PAID
