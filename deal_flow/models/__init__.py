"""Domain models for the negotiation-to-contract workflow."""

from deal_flow.models.asset import Actor, Asset, PaymentPolicy
from deal_flow.models.base import Location, NotificationEvent, new_id
from deal_flow.models.contract import Contract, PlanEntry, Signatures
from deal_flow.models.deal import Deal
from deal_flow.models.draft import DealDraft, DraftSummary, PaymentRecord, PaymentSchedule
from deal_flow.models.enums import (
    AvailabilityStatus,
    ContractStatus,
    DealStatus,
    Decision,
    DraftStatus,
    InstallmentStatus,
    ListingStatus,
    NegotiationStatus,
    NotificationLevel,
    OfferType,
    PaymentStatus,
    PolicyPaymentType,
    ReferenceType,
    Role,
)
from deal_flow.models.negotiation import (
    AssetSnapshot,
    CounterOffer,
    NegotiationSession,
    Offer,
)

__all__ = [
    "Actor",
    "Asset",
    "AssetSnapshot",
    "AvailabilityStatus",
    "Contract",
    "ContractStatus",
    "CounterOffer",
    "Deal",
    "DealDraft",
    "DealStatus",
    "Decision",
    "DraftStatus",
    "DraftSummary",
    "InstallmentStatus",
    "ListingStatus",
    "Location",
    "NegotiationSession",
    "NegotiationStatus",
    "NotificationEvent",
    "NotificationLevel",
    "Offer",
    "OfferType",
    "PaymentPolicy",
    "PaymentRecord",
    "PaymentSchedule",
    "PaymentStatus",
    "PlanEntry",
    "PolicyPaymentType",
    "ReferenceType",
    "Role",
    "Signatures",
    "new_id",
]
