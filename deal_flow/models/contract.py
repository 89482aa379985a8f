"""Contract model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from deal_flow.models.base import new_id
from deal_flow.models.enums import ContractStatus, InstallmentStatus


@dataclass
class PlanEntry:
    """One installment of a contract payment plan."""

    amount: Decimal
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: datetime | None = None


@dataclass
class Signatures:
    buyer: bool = False
    seller: bool = False

    @property
    def complete(self) -> bool:
        return self.buyer and self.seller


@dataclass
class Contract:
    """Binding, dual-signed agreement with its amortization plan."""

    deal_id: str
    asset_id: str
    buyer_id: str
    owner_id: str
    total_price: Decimal
    contract_number: str
    payment_plan: list[PlanEntry] = field(default_factory=list)
    signed: Signatures = field(default_factory=Signatures)
    status: ContractStatus = ContractStatus.DRAFT
    contract_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.contract_id
