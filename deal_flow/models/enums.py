"""Enumeration types for workflow records."""

from enum import Enum


class OfferType(str, Enum):
    CASH = "cash"
    INSTALLMENTS = "installments"
    RENT = "rent"


class ListingStatus(str, Enum):
    SALE = "sale"
    RENT = "rent"
    BOTH = "both"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    UNDER_CONSTRUCTION = "under-construction"
    COMPLETED = "completed"
    PLANNED = "planned"


class PolicyPaymentType(str, Enum):
    """Payment policy an owner states on a listing."""

    CASH = "cash"
    INSTALLMENTS = "installments"
    BOTH = "both"


class NegotiationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    DRAFT_REQUESTED = "draft_requested"
    DRAFT_GENERATED = "draft_generated"
    DRAFT_SENT = "draft_sent"
    CONFIRMED = "confirmed"


class Decision(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"


class DraftStatus(str, Enum):
    DRAFT = "draft"
    RESERVED = "reserved"
    CANCELLED = "cancelled"


class DealStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CLOSED = "closed"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class Role(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    DEVELOPER = "real_estate_developer"
    ADMIN = "admin"


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ReferenceType(str, Enum):
    """Record kinds a notification or cancellation can point at."""

    NEGOTIATION = "negotiation"
    DRAFT = "draft"
    DEAL = "deal"
    CONTRACT = "contract"
