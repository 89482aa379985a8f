"""Pure negotiation and payment math."""

from deal_flow.pricing.counter_offer import (
    CounterOfferResult,
    build_owner_terms,
    compute_counter_offers,
)
from deal_flow.pricing.money import format_amount, midpoint, round_currency, to_decimal
from deal_flow.pricing.schedule import build_payment_plan, derive_payment_schedule

__all__ = [
    "CounterOfferResult",
    "build_owner_terms",
    "build_payment_plan",
    "compute_counter_offers",
    "derive_payment_schedule",
    "format_amount",
    "midpoint",
    "round_currency",
    "to_decimal",
]
