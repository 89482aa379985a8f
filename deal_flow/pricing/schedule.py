"""Payment schedule and contract payment plan derivation."""

from datetime import date, timedelta
from decimal import Decimal

from deal_flow.models.contract import PlanEntry
from deal_flow.models.draft import PaymentSchedule
from deal_flow.models.enums import OfferType
from deal_flow.models.negotiation import Offer
from deal_flow.pricing.counter_offer import (
    DEFAULT_DOWN_PAYMENT_PERCENT,
    DEFAULT_INSTALLMENT_YEARS,
    DEFAULT_RENT_DURATION_MONTHS,
)
from deal_flow.pricing.money import round_currency, to_decimal


def derive_payment_schedule(asset_price: Decimal | int, agreed_offer: Offer) -> PaymentSchedule:
    """Derive the draft payment schedule for an agreed offer.

    Parameters
    ----------
    asset_price : Decimal | int
        List price of the asset.
    agreed_offer : Offer
        The buyer's accepted offer.

    Returns
    -------
    PaymentSchedule
        Cash, installments or rent schedule depending on ``offer_type``.
    """
    price = to_decimal(asset_price)

    if agreed_offer.offer_type == OfferType.RENT:
        monthly_rent = to_decimal(
            agreed_offer.rent_budget if agreed_offer.rent_budget is not None else price
        )
        months = (
            agreed_offer.rent_duration_months
            if agreed_offer.rent_duration_months is not None
            else DEFAULT_RENT_DURATION_MONTHS
        )
        return PaymentSchedule(
            payment_type=OfferType.RENT,
            down_payment_percent=Decimal("0"),
            down_payment_amount=monthly_rent,
            remaining_amount=monthly_rent * months,
            installment_years=Decimal(months) / 12,
            monthly_installment=monthly_rent,
        )

    if agreed_offer.offer_type == OfferType.CASH:
        agreed_price = to_decimal(
            agreed_offer.cash_offer_price if agreed_offer.cash_offer_price is not None else price
        )
        return PaymentSchedule(
            payment_type=OfferType.CASH,
            down_payment_percent=Decimal("100"),
            down_payment_amount=agreed_price,
            remaining_amount=Decimal("0"),
            installment_years=Decimal("0"),
            monthly_installment=Decimal("0"),
            original_price=price,
            agreed_price=agreed_price,
        )

    down_percent = to_decimal(
        agreed_offer.down_payment_percent
        if agreed_offer.down_payment_percent is not None
        else DEFAULT_DOWN_PAYMENT_PERCENT
    )
    years = (
        agreed_offer.installment_years
        if agreed_offer.installment_years is not None
        else DEFAULT_INSTALLMENT_YEARS
    )
    down_payment_amount = round_currency(price * down_percent / 100)
    remaining_amount = price - down_payment_amount
    months = max(years * 12, 1)

    return PaymentSchedule(
        payment_type=OfferType.INSTALLMENTS,
        down_payment_percent=down_percent,
        down_payment_amount=down_payment_amount,
        remaining_amount=remaining_amount,
        installment_years=Decimal(years),
        monthly_installment=round_currency(remaining_amount / months),
    )


def build_payment_plan(
    total_price: Decimal,
    deposit_amount: Decimal,
    installments: int = 3,
    interval_days: int = 30,
    start: date | None = None,
) -> list[PlanEntry]:
    """Split what is left after the deposit into equal periodic installments.

    The last installment absorbs the rounding remainder so the plan sums
    exactly to ``total_price - deposit_amount``.
    """
    start = start or date.today()
    remaining = max(to_decimal(total_price) - to_decimal(deposit_amount), Decimal("0"))
    amount = round_currency(remaining / installments)

    plan = []
    for i in range(installments):
        is_last = i == installments - 1
        plan.append(
            PlanEntry(
                amount=remaining - amount * (installments - 1) if is_last else amount,
                due_date=start + timedelta(days=interval_days * (i + 1)),
            )
        )
    return plan
