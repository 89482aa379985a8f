"""Asset (listing) model and the actors that trade it."""

from dataclasses import dataclass, field
from decimal import Decimal

from deal_flow.models.base import Location
from deal_flow.models.enums import (
    AvailabilityStatus,
    ListingStatus,
    PolicyPaymentType,
    Role,
)


@dataclass
class PaymentPolicy:
    """Payment terms an owner states on a listing."""

    payment_type: PolicyPaymentType | None = None
    min_down_payment_percent: Decimal | None = None
    max_installment_years: int | None = None
    rent_budget: Decimal | None = None
    rent_duration_months: int | None = None
    notes: str = ""


@dataclass
class Asset:
    """Property or unit being negotiated over.

    Owned by the listings subsystem; only ``availability_status`` is
    written by the workflow, on contract completion.
    """

    asset_id: str
    title: str
    price: Decimal | None
    listing_status: ListingStatus
    owner_id: str
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    location: Location = field(default_factory=Location)
    rent_price: Decimal | None = None
    payment_policy: PaymentPolicy | None = None

    @property
    def is_unavailable(self) -> bool:
        return self.availability_status in (AvailabilityStatus.SOLD, AvailabilityStatus.RENTED)


@dataclass
class Actor:
    """Marketplace user as seen by the actor directory."""

    actor_id: str
    name: str
    role: Role
    email: str = ""
