"""Faker-backed sample data generators."""

from deal_flow.generators.base import BaseGenerator
from deal_flow.generators.marketplace import ActorGenerator, AssetGenerator, OfferGenerator

__all__ = [
    "ActorGenerator",
    "AssetGenerator",
    "BaseGenerator",
    "OfferGenerator",
]
