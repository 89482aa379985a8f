"""Counter-offer computation.

Single source of truth for negotiation math: owner terms derived from a
listing and the pair of counter-offers plus reservation estimate shown to
both sides. Everything here is pure.
"""

from dataclasses import dataclass
from decimal import Decimal

from deal_flow.models.asset import Asset
from deal_flow.models.enums import OfferType, PolicyPaymentType
from deal_flow.models.negotiation import CounterOffer, Offer
from deal_flow.pricing.money import format_amount, midpoint, round_currency, to_decimal

DEFAULT_DOWN_PAYMENT_PERCENT = Decimal("10")
DEFAULT_INSTALLMENT_YEARS = 3
DEFAULT_RENT_DURATION_MONTHS = 12
CASH_RESERVATION_RATIO = Decimal("0.10")


@dataclass
class CounterOfferResult:
    """Counter-offers for both sides and the reservation estimate."""

    buyer_counter_offer: CounterOffer
    owner_counter_offer: CounterOffer
    estimated_reservation: Decimal
    midpoint: Decimal | None = None
    suggested_down_payment_percent: Decimal | None = None
    suggested_installment_years: int | None = None


def build_owner_terms(asset: Asset) -> Offer:
    """Derive owner terms from the asset's payment policy, else defaults.

    Defaults are 10% down over 3 years, cash at list price, and rent at the
    listed rent price (or list price) for 12 months.
    """
    price = asset.price or Decimal("0")
    rent_fallback = asset.rent_price or price
    policy = asset.payment_policy

    if policy is None:
        return Offer(
            offer_type=OfferType.INSTALLMENTS,
            cash_offer_price=price,
            down_payment_percent=DEFAULT_DOWN_PAYMENT_PERCENT,
            installment_years=DEFAULT_INSTALLMENT_YEARS,
            rent_budget=rent_fallback,
            rent_duration_months=DEFAULT_RENT_DURATION_MONTHS,
        )

    is_cash = policy.payment_type == PolicyPaymentType.CASH
    return Offer(
        offer_type=OfferType.CASH if is_cash else OfferType.INSTALLMENTS,
        cash_offer_price=price,
        down_payment_percent=(
            policy.min_down_payment_percent
            if policy.min_down_payment_percent is not None
            else DEFAULT_DOWN_PAYMENT_PERCENT
        ),
        installment_years=(
            policy.max_installment_years
            if policy.max_installment_years is not None
            else DEFAULT_INSTALLMENT_YEARS
        ),
        rent_budget=policy.rent_budget or rent_fallback,
        rent_duration_months=policy.rent_duration_months or DEFAULT_RENT_DURATION_MONTHS,
        notes=policy.notes,
    )


def compute_counter_offers(
    buyer_offer: Offer,
    owner_terms: Offer,
    asset_price: Decimal | int,
) -> CounterOfferResult:
    """Compute the counter-offer pair for a buyer offer against owner terms.

    Parameters
    ----------
    buyer_offer : Offer
        Normalized buyer offer; its ``offer_type`` selects the math.
    owner_terms : Offer
        Owner terms as built by :func:`build_owner_terms`.
    asset_price : Decimal | int
        Current list price of the asset.

    Returns
    -------
    CounterOfferResult
        Buyer and owner counter-offers plus ``estimated_reservation``.
    """
    price = to_decimal(asset_price)

    if buyer_offer.offer_type == OfferType.CASH:
        return _cash_counter_offers(buyer_offer, owner_terms, price)
    if buyer_offer.offer_type == OfferType.RENT:
        return _rent_counter_offers(buyer_offer, owner_terms, price)
    return _installment_counter_offers(buyer_offer, owner_terms, price)


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _cash_counter_offers(buyer: Offer, owner: Offer, price: Decimal) -> CounterOfferResult:
    buyer_price = to_decimal(_first(buyer.cash_offer_price, price))
    owner_price = to_decimal(_first(owner.cash_offer_price, price))
    middle = midpoint(buyer_price, owner_price)

    return CounterOfferResult(
        buyer_counter_offer=CounterOffer(
            label="Buyer cash offer",
            offer_type=OfferType.CASH,
            cash_amount=buyer_price,
            message=(
                f"Cash offer of {format_amount(buyer_price)}, "
                f"negotiable up to {format_amount(middle)}."
            ),
        ),
        owner_counter_offer=CounterOffer(
            label="Owner cash target",
            offer_type=OfferType.CASH,
            cash_amount=owner_price,
            message=f"The owner targets {format_amount(owner_price)} for a cash payment.",
        ),
        estimated_reservation=round_currency(middle * CASH_RESERVATION_RATIO),
        midpoint=middle,
    )


def _rent_counter_offers(buyer: Offer, owner: Offer, price: Decimal) -> CounterOfferResult:
    buyer_budget = to_decimal(_first(buyer.rent_budget, owner.rent_budget, price))
    owner_budget = to_decimal(_first(owner.rent_budget, buyer_budget))
    months = _first(
        buyer.rent_duration_months,
        owner.rent_duration_months,
        DEFAULT_RENT_DURATION_MONTHS,
    )
    average = midpoint(buyer_budget, owner_budget)

    return CounterOfferResult(
        buyer_counter_offer=CounterOffer(
            label="Buyer rent offer",
            offer_type=OfferType.RENT,
            rent_budget=buyer_budget,
            rent_duration_months=months,
            message=f"Monthly rent of {format_amount(buyer_budget)} for {months} months.",
        ),
        owner_counter_offer=CounterOffer(
            label="Owner rent terms",
            offer_type=OfferType.RENT,
            rent_budget=owner_budget,
            rent_duration_months=months,
            message=(
                f"The owner prefers a monthly rent of {format_amount(owner_budget)} "
                f"for {months} months."
            ),
        ),
        estimated_reservation=average,
        midpoint=average,
    )


def _installment_counter_offers(buyer: Offer, owner: Offer, price: Decimal) -> CounterOfferResult:
    owner_down = to_decimal(_first(owner.down_payment_percent, DEFAULT_DOWN_PAYMENT_PERCENT))
    owner_years = _first(owner.installment_years, DEFAULT_INSTALLMENT_YEARS)

    # The buyer's own values are echoed as-is; the midpoint only feeds the estimate.
    buyer_down = buyer.down_payment_percent
    buyer_years = buyer.installment_years

    counter_down = midpoint(buyer_down, owner_down) if buyer_down is not None else owner_down
    counter_years = (
        int(midpoint(buyer_years, owner_years)) if buyer_years is not None else owner_years
    )

    shown_years = _first(buyer_years, owner_years)
    if buyer_down is not None:
        buyer_message = f"{buyer_down}% down payment with installments over {shown_years} years."
    else:
        buyer_message = f"Installments over up to {shown_years} years."

    return CounterOfferResult(
        buyer_counter_offer=CounterOffer(
            label="Your offer",
            offer_type=OfferType.INSTALLMENTS,
            down_payment_percent=buyer_down,
            installment_years=buyer_years,
            message=buyer_message,
        ),
        owner_counter_offer=CounterOffer(
            label="Owner terms",
            offer_type=OfferType.INSTALLMENTS,
            down_payment_percent=owner_down,
            installment_years=owner_years,
            message=(
                f"Minimum {owner_down}% down payment with installments "
                f"over up to {owner_years} years."
            ),
        ),
        estimated_reservation=price * _first(counter_down, owner_down) / 100,
        suggested_down_payment_percent=counter_down,
        suggested_installment_years=counter_years,
    )
