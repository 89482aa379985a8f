"""Generators for listings, marketplace users and buyer offers."""

from __future__ import annotations

import random
from decimal import Decimal
from typing import Iterator

from deal_flow.generators.base import BaseGenerator
from deal_flow.models import (
    Actor,
    Asset,
    AvailabilityStatus,
    ListingStatus,
    Location,
    Offer,
    OfferType,
    PaymentPolicy,
    PolicyPaymentType,
    Role,
)
from deal_flow.pricing import round_currency

CITIES = {
    "Cairo": ["Nasr City", "Maadi", "Zamalek", "Heliopolis", "New Cairo"],
    "Giza": ["Sheikh Zayed", "6th of October", "Dokki", "Haram"],
    "Alexandria": ["Smouha", "Sidi Gaber", "Miami", "Stanley"],
}

PROPERTY_KINDS = ["Apartment", "Villa", "Duplex", "Studio", "Chalet", "Townhouse"]


class ActorGenerator(BaseGenerator):
    """Generate marketplace users."""

    def generate(self, role: Role) -> Actor:
        return Actor(
            actor_id=self.fake.uuid4(),
            name=self.fake.name(),
            role=role,
            email=self.fake.email(),
        )

    def generate_batch(self, count: int, role: Role) -> Iterator[Actor]:
        for _ in range(count):
            yield self.generate(role)


class AssetGenerator(BaseGenerator):
    """Generate listed assets with realistic prices and payment policies."""

    LISTING_STATUSES = list(ListingStatus)
    LISTING_WEIGHTS = [0.65, 0.25, 0.10]

    # Sale price ranges by property kind (EGP)
    PRICE_RANGES = {
        "Studio": (900_000, 2_000_000),
        "Apartment": (1_500_000, 6_000_000),
        "Chalet": (2_000_000, 5_000_000),
        "Duplex": (4_000_000, 10_000_000),
        "Townhouse": (6_000_000, 14_000_000),
        "Villa": (8_000_000, 30_000_000),
    }

    # Monthly rent as a share of sale price
    RENT_YIELD = (Decimal("0.004"), Decimal("0.007"))

    def generate(self, owner_id: str, listing_status: ListingStatus | None = None) -> Asset:
        """Generate a single available asset.

        Parameters
        ----------
        owner_id : str
            Seller or developer that owns the listing.
        listing_status : ListingStatus | None
            Force a listing status; drawn at random when omitted.
        """
        status = listing_status or random.choices(
            self.LISTING_STATUSES, weights=self.LISTING_WEIGHTS, k=1
        )[0]
        kind = random.choice(PROPERTY_KINDS)
        city = random.choice(list(CITIES))
        area = random.choice(CITIES[city])

        low, high = self.PRICE_RANGES[kind]
        price = Decimal(random.randrange(low, high, 10_000))
        rent_yield = Decimal(str(round(random.uniform(*map(float, self.RENT_YIELD)), 4)))
        rent_price = round_currency(price * rent_yield)

        return Asset(
            asset_id=self.fake.uuid4(),
            title=f"{kind} in {area}",
            price=price,
            listing_status=status,
            owner_id=owner_id,
            availability_status=AvailabilityStatus.AVAILABLE,
            location=Location(city=city, area=area),
            rent_price=rent_price if status != ListingStatus.SALE else None,
            payment_policy=self._generate_policy(),
        )

    def _generate_policy(self) -> PaymentPolicy | None:
        """About a third of listings state no policy and get default terms."""
        roll = random.random()
        if roll < 0.35:
            return None
        if roll < 0.50:
            return PaymentPolicy(payment_type=PolicyPaymentType.CASH, notes="Cash buyers only")
        return PaymentPolicy(
            payment_type=random.choice([PolicyPaymentType.INSTALLMENTS, PolicyPaymentType.BOTH]),
            min_down_payment_percent=Decimal(random.choice([5, 10, 15, 20, 25])),
            max_installment_years=random.choice([3, 5, 7, 8, 10]),
        )


class OfferGenerator(BaseGenerator):
    """Generate buyer offers that fit an asset's listing."""

    def generate(self, asset: Asset) -> Offer:
        if asset.listing_status == ListingStatus.RENT:
            return self._rent_offer(asset)
        if asset.payment_policy and asset.payment_policy.payment_type == PolicyPaymentType.CASH:
            return self._cash_offer(asset)
        if random.random() < 0.4:
            return self._cash_offer(asset)
        return self._installment_offer()

    def _cash_offer(self, asset: Asset) -> Offer:
        # Buyers usually open 5-15% under list price
        discount = Decimal(random.randint(5, 15)) / 100
        price = round_currency(asset.price * (1 - discount))
        return Offer(offer_type=OfferType.CASH, cash_offer_price=price)

    def _installment_offer(self) -> Offer:
        if random.random() < 0.2:
            return Offer(offer_type=OfferType.INSTALLMENTS)
        return Offer(
            offer_type=OfferType.INSTALLMENTS,
            down_payment_percent=Decimal(random.choice([5, 10, 15, 20])),
            installment_years=random.choice([2, 3, 4, 5]),
        )

    def _rent_offer(self, asset: Asset) -> Offer:
        listed = asset.rent_price or asset.price
        budget = round_currency(listed * Decimal(random.randint(85, 100)) / 100)
        return Offer(
            offer_type=OfferType.RENT,
            rent_budget=budget,
            rent_duration_months=random.choice([6, 12, 24]),
        )
