"""Pytest configuration and fixtures."""

import logging
from decimal import Decimal

import pytest

from deal_flow.models import (
    Actor,
    Asset,
    Deal,
    DealStatus,
    Decision,
    ListingStatus,
    Location,
    Offer,
    OfferType,
    Role,
)
from deal_flow.sinks.dispatcher import NotificationDispatcher
from deal_flow.sinks.memory import MemorySink
from deal_flow.store import InMemoryActorDirectory, InMemoryAssetStore
from deal_flow.workflow.service import DealFlowService

OWNER_ID = "owner-001"
DEVELOPER_ID = "dev-001"
BUYER_ID = "buyer-001"
OTHER_BUYER_ID = "buyer-002"
ADMIN_ID = "admin-001"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sale_asset() -> Asset:
    """Sale listing at 3,000,000 with no stated payment policy."""
    return Asset(
        asset_id="asset-sale",
        title="Apartment in Maadi",
        price=Decimal("3000000"),
        listing_status=ListingStatus.SALE,
        owner_id=OWNER_ID,
        location=Location(city="Cairo", area="Maadi"),
    )


@pytest.fixture
def rent_asset() -> Asset:
    """Rent listing owned by a developer."""
    return Asset(
        asset_id="asset-rent",
        title="Studio in Smouha",
        price=Decimal("1200000"),
        listing_status=ListingStatus.RENT,
        owner_id=DEVELOPER_ID,
        location=Location(city="Alexandria", area="Smouha"),
        rent_price=Decimal("8000"),
    )


@pytest.fixture
def assets(sale_asset: Asset, rent_asset: Asset) -> InMemoryAssetStore:
    return InMemoryAssetStore([sale_asset, rent_asset])


@pytest.fixture
def actors() -> InMemoryActorDirectory:
    return InMemoryActorDirectory(
        [
            Actor(OWNER_ID, "Omar Seller", Role.SELLER),
            Actor(DEVELOPER_ID, "Nile Developments", Role.DEVELOPER),
            Actor(BUYER_ID, "Bella Buyer", Role.BUYER),
            Actor(OTHER_BUYER_ID, "Basel Buyer", Role.BUYER),
            Actor(ADMIN_ID, "Ada Admin", Role.ADMIN),
        ]
    )


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def service(
    assets: InMemoryAssetStore,
    actors: InMemoryActorDirectory,
    sink: MemorySink,
) -> DealFlowService:
    """Workflow service wired to in-memory stores and a memory sink."""
    return DealFlowService(assets=assets, actors=actors, dispatcher=NotificationDispatcher([sink]))


@pytest.fixture
def cash_offer() -> Offer:
    return Offer(offer_type=OfferType.CASH, cash_offer_price=Decimal("2700000"))


@pytest.fixture
def approved_session_id(service: DealFlowService) -> str:
    """Installments negotiation on the sale asset, approved by the owner."""
    result = service.start_negotiation("asset-sale", BUYER_ID, Offer())
    service.decide(result.session.session_id, OWNER_ID, Decision.APPROVED)
    return result.session.session_id


@pytest.fixture
def reserved(service: DealFlowService, approved_session_id: str):
    """Reservation confirmed on the approved session."""
    return service.confirm_reservation(BUYER_ID, "bank_transfer", session_id=approved_session_id)


@pytest.fixture
def contract_id(service: DealFlowService, reserved) -> str:
    """Contract created by the owner accepting the reserved deal."""
    deal = service.update_deal_status(reserved.deal.deal_id, OWNER_ID, "accepted")
    return deal.contract_id


@pytest.fixture
def unpaid_contract_id(service: DealFlowService) -> str:
    """Contract of an accepted deal recorded without a deposit."""
    deal = service.store.insert(
        Deal(
            asset_id="asset-sale",
            buyer_id=BUYER_ID,
            owner_id=OWNER_ID,
            offer_price=Decimal("2800000"),
            final_price=Decimal("2800000"),
            status=DealStatus.ACCEPTED,
        )
    )
    return service.create_contract(deal.deal_id, OWNER_ID).contract_id


@pytest.fixture
def restore_logging():
    """Restore root logger handlers and level changed by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
