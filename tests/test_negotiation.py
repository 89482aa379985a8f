"""Tests for the negotiation state machine."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import ADMIN_ID, BUYER_ID, DEVELOPER_ID, OTHER_BUYER_ID, OWNER_ID
from deal_flow.config import WorkflowConfig
from deal_flow.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    UnavailableAssetError,
    ValidationError,
)
from deal_flow.models import (
    Asset,
    AvailabilityStatus,
    Decision,
    ListingStatus,
    NegotiationStatus,
    NotificationLevel,
    Offer,
    OfferType,
    Role,
)
from deal_flow.sinks.dispatcher import NotificationDispatcher
from deal_flow.store import InMemoryActorDirectory
from deal_flow.workflow.service import DealFlowService


class TestStartNegotiation:
    """Tests for opening a negotiation."""

    def test_start_creates_pending_session(self, service, sink) -> None:
        result = service.start_negotiation("asset-sale", BUYER_ID, Offer())

        session = result.session
        assert result.duplicate is False
        assert session.status == NegotiationStatus.PENDING
        assert session.owner_id == OWNER_ID
        assert session.asset_snapshot.title == "Apartment in Maadi"
        assert session.asset_snapshot.price == Decimal("3000000")
        assert session.owner_terms.down_payment_percent == Decimal("10")
        assert result.estimated_reservation == Decimal("300000")

    def test_owner_notified(self, service, sink) -> None:
        result = service.start_negotiation("asset-sale", BUYER_ID, Offer())

        assert len(sink.delivered) == 1
        delivered = sink.delivered[0]
        assert delivered.recipient_id == OWNER_ID
        assert delivered.role == Role.SELLER
        assert delivered.event.title == "New Negotiation Offer"
        assert delivered.event.reference_id == result.session.session_id
        assert "Bella Buyer" in delivered.event.message
        assert "300,000 EGP" in delivered.event.message

    def test_developer_owner_notified_as_developer(self, service, sink) -> None:
        offer = Offer(offer_type=OfferType.RENT, rent_budget=Decimal("7500"))

        service.start_negotiation("asset-rent", BUYER_ID, offer)

        assert sink.delivered[0].recipient_id == DEVELOPER_ID
        assert sink.delivered[0].role == Role.DEVELOPER

    def test_repeat_offer_merges_into_active_session(self, service, sink, cash_offer) -> None:
        first = service.start_negotiation("asset-sale", BUYER_ID, Offer())
        second = service.start_negotiation("asset-sale", BUYER_ID, cash_offer)

        assert second.duplicate is True
        assert second.session.session_id == first.session.session_id
        assert second.session.buyer_offer.offer_type == OfferType.CASH
        assert second.session.buyer_offer.cash_offer_price == Decimal("2700000")
        assert second.estimated_reservation == Decimal("285000")
        assert len(service.store.sessions) == 1
        assert len(sink.for_recipient(OWNER_ID)) == 1

    def test_offer_fields_normalized(self, service) -> None:
        offer = Offer(
            offer_type=OfferType.CASH,
            cash_offer_price=Decimal("2900000"),
            down_payment_percent=Decimal("50"),
        )

        session = service.start_negotiation("asset-sale", BUYER_ID, offer).session

        assert session.buyer_offer.down_payment_percent is None

    def test_new_session_after_decline(self, service) -> None:
        first = service.start_negotiation("asset-sale", BUYER_ID, Offer())
        service.decide(first.session.session_id, OWNER_ID, Decision.DECLINED)

        second = service.start_negotiation("asset-sale", BUYER_ID, Offer())

        assert second.duplicate is False
        assert second.session.session_id != first.session.session_id

    def test_different_buyers_get_separate_sessions(self, service) -> None:
        first = service.start_negotiation("asset-sale", BUYER_ID, Offer())
        second = service.start_negotiation("asset-sale", OTHER_BUYER_ID, Offer())

        assert first.session.session_id != second.session.session_id

    def test_missing_asset_id(self, service) -> None:
        with pytest.raises(ValidationError):
            service.start_negotiation("", BUYER_ID, Offer())

    def test_unknown_asset(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.start_negotiation("missing", BUYER_ID, Offer())

    @pytest.mark.parametrize("actor_id", [OWNER_ID, ADMIN_ID, "stranger"])
    def test_only_buyers_may_start(self, service, actor_id) -> None:
        with pytest.raises(AuthorizationError):
            service.start_negotiation("asset-sale", actor_id, Offer())

    @pytest.mark.parametrize("status", [AvailabilityStatus.SOLD, AvailabilityStatus.RENTED])
    def test_unavailable_asset(self, service, assets, sink, status) -> None:
        assets.set_availability("asset-sale", status)

        with pytest.raises(UnavailableAssetError):
            service.start_negotiation("asset-sale", BUYER_ID, Offer())

        assert service.store.sessions == {}
        assert sink.delivered == []

    def test_asset_without_price(self, service, assets) -> None:
        assets.add(Asset("asset-free", "Plot", None, ListingStatus.SALE, OWNER_ID))

        with pytest.raises(ValidationError, match="no price"):
            service.start_negotiation("asset-free", BUYER_ID, Offer())

    @pytest.mark.parametrize(
        "offer",
        [
            Offer(down_payment_percent=Decimal("0")),
            Offer(down_payment_percent=Decimal("120")),
            Offer(installment_years=-1),
            Offer(offer_type=OfferType.CASH, cash_offer_price=Decimal("-5")),
            Offer(offer_type=OfferType.RENT, rent_budget=Decimal("0")),
            Offer(offer_type=OfferType.RENT, rent_duration_months=0),
        ],
    )
    def test_out_of_range_offer(self, service, offer) -> None:
        with pytest.raises(ValidationError):
            service.start_negotiation("asset-sale", BUYER_ID, offer)

    def test_minimum_cash_offer_ratio(self, assets, actors) -> None:
        service = DealFlowService(
            assets=assets,
            actors=actors,
            config=WorkflowConfig(min_cash_offer_ratio=Decimal("0.8")),
        )
        low = Offer(offer_type=OfferType.CASH, cash_offer_price=Decimal("2000000"))
        fair = Offer(offer_type=OfferType.CASH, cash_offer_price=Decimal("2400000"))

        with pytest.raises(ValidationError, match="below the minimum"):
            service.start_negotiation("asset-sale", BUYER_ID, low)
        assert service.start_negotiation("asset-sale", BUYER_ID, fair).session is not None


class TestDecide:
    """Tests for owner decisions."""

    @pytest.fixture
    def session_id(self, service) -> str:
        return service.start_negotiation("asset-sale", BUYER_ID, Offer()).session.session_id

    def test_approve(self, service, sink, session_id) -> None:
        session = service.decide(session_id, OWNER_ID, Decision.APPROVED)

        assert session.status == NegotiationStatus.APPROVED
        assert session.decision_by == OWNER_ID
        assert session.decision_at is not None
        assert session.decision_notes == "Approved"

        event = sink.for_recipient(BUYER_ID)[-1]
        assert event.title == "Offer Approved"
        assert event.level == NotificationLevel.SUCCESS

    def test_decline_with_notes(self, service, sink, session_id) -> None:
        session = service.decide(session_id, OWNER_ID, "declined", notes="Price too low")

        assert session.status == NegotiationStatus.DECLINED
        assert session.decision_notes == "Price too low"

        event = sink.for_recipient(BUYER_ID)[-1]
        assert event.title == "Offer Declined"
        assert event.level == NotificationLevel.WARNING
        assert "Price too low" in event.message

    @pytest.mark.parametrize("actor_id", [BUYER_ID, OTHER_BUYER_ID, DEVELOPER_ID])
    def test_only_owner_decides(self, service, session_id, actor_id) -> None:
        with pytest.raises(AuthorizationError):
            service.decide(session_id, actor_id, Decision.APPROVED)

        assert service.negotiations.get(session_id).status == NegotiationStatus.PENDING

    def test_admin_override(self, service, session_id) -> None:
        session = service.decide(session_id, ADMIN_ID, Decision.APPROVED)

        assert session.status == NegotiationStatus.APPROVED
        assert session.decision_by == ADMIN_ID

    def test_decide_twice(self, service, session_id) -> None:
        service.decide(session_id, OWNER_ID, Decision.APPROVED)

        with pytest.raises(InvalidStateError):
            service.decide(session_id, OWNER_ID, Decision.DECLINED)

    def test_unknown_decision(self, service, session_id) -> None:
        with pytest.raises(ValidationError):
            service.decide(session_id, OWNER_ID, "maybe")

    def test_unknown_session(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.decide("missing", OWNER_ID, Decision.APPROVED)


class TestDraftHandoff:
    """Tests for request, generate and send of the draft agreement."""

    def test_full_handoff(self, service, sink, approved_session_id) -> None:
        session = service.request_draft(approved_session_id, BUYER_ID)
        assert session.status == NegotiationStatus.DRAFT_REQUESTED
        assert sink.for_recipient(OWNER_ID)[-1].title == "Draft Requested"

        session = service.generate_draft(approved_session_id, OWNER_ID)
        assert session.status == NegotiationStatus.DRAFT_GENERATED

        session = service.send_draft(approved_session_id, OWNER_ID)
        assert session.status == NegotiationStatus.DRAFT_SENT
        assert sink.for_recipient(BUYER_ID)[-1].title == "Draft Ready"

    def test_owner_cannot_request(self, service, approved_session_id) -> None:
        with pytest.raises(AuthorizationError):
            service.request_draft(approved_session_id, OWNER_ID)

    def test_buyer_cannot_generate(self, service, approved_session_id) -> None:
        service.request_draft(approved_session_id, BUYER_ID)

        with pytest.raises(AuthorizationError):
            service.generate_draft(approved_session_id, BUYER_ID)

    def test_admin_can_generate_and_send(self, service, approved_session_id) -> None:
        service.request_draft(approved_session_id, BUYER_ID)
        service.generate_draft(approved_session_id, ADMIN_ID)

        assert service.send_draft(approved_session_id, ADMIN_ID).status == NegotiationStatus.DRAFT_SENT

    def test_send_before_generate(self, service, approved_session_id) -> None:
        service.request_draft(approved_session_id, BUYER_ID)

        with pytest.raises(InvalidStateError):
            service.send_draft(approved_session_id, OWNER_ID)

    def test_request_before_approval(self, service) -> None:
        session_id = service.start_negotiation("asset-sale", BUYER_ID, Offer()).session.session_id

        with pytest.raises(InvalidStateError):
            service.request_draft(session_id, BUYER_ID)

    def test_confirm_after_draft_sent(self, service, approved_session_id) -> None:
        service.request_draft(approved_session_id, BUYER_ID)
        service.generate_draft(approved_session_id, OWNER_ID)
        service.send_draft(approved_session_id, OWNER_ID)

        result = service.confirm_reservation(BUYER_ID, session_id=approved_session_id)

        assert result.session.status == NegotiationStatus.CONFIRMED

    def test_confirm_while_draft_requested(self, service, approved_session_id) -> None:
        service.request_draft(approved_session_id, BUYER_ID)

        with pytest.raises(InvalidStateError):
            service.confirm_reservation(BUYER_ID, session_id=approved_session_id)


class TestConfirm:
    """Tests for confirmation guards on the negotiation."""

    def test_confirm_pending_rejected(self, service, sink) -> None:
        session_id = service.start_negotiation("asset-sale", BUYER_ID, Offer()).session.session_id

        with pytest.raises(InvalidStateError):
            service.confirm_reservation(BUYER_ID, session_id=session_id)

        assert service.store.drafts == {}

    def test_owner_cannot_confirm(self, service, approved_session_id) -> None:
        with pytest.raises(AuthorizationError):
            service.confirm_reservation(OWNER_ID, session_id=approved_session_id)

    def test_unknown_session(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.confirm_reservation(BUYER_ID, session_id="missing")


class TestListNegotiations:
    """Tests for listing sessions per actor."""

    def test_visible_to_buyer_and_owner_only(self, service, approved_session_id) -> None:
        assert [s.session_id for s in service.list_negotiations(BUYER_ID)] == [approved_session_id]
        assert [s.session_id for s in service.list_negotiations(OWNER_ID)] == [approved_session_id]
        assert service.list_negotiations(OTHER_BUYER_ID) == []

    def test_dispatcher_failure_does_not_fail_operation(self, assets, actors) -> None:
        class BrokenSink:
            def emit(self, recipient_id, role, event):
                raise RuntimeError("smtp down")

            def close(self):
                pass

        dispatcher = NotificationDispatcher([BrokenSink()])
        service = DealFlowService(assets=assets, actors=actors, dispatcher=dispatcher)

        result = service.start_negotiation("asset-sale", BUYER_ID, Offer())

        assert result.session.status == NegotiationStatus.PENDING
        assert dispatcher.failures == 1


class FlakyDirectory(InMemoryActorDirectory):
    """Directory whose name lookups fail, and whose owner role lookup fails."""

    def name_of(self, actor_id: str) -> str:
        raise RuntimeError("directory unavailable")

    def role_of(self, actor_id: str) -> Role | None:
        if actor_id == OWNER_ID:
            raise RuntimeError("directory unavailable")
        return super().role_of(actor_id)


class TestNotificationLookups:
    """Tests for collaborator failures while wording notifications."""

    @pytest.fixture
    def flaky_service(self, assets, actors, sink) -> DealFlowService:
        directory = FlakyDirectory([actors.get(BUYER_ID), actors.get(OWNER_ID)])
        return DealFlowService(assets=assets, actors=directory, dispatcher=NotificationDispatcher([sink]))

    def test_offer_stored_and_owner_notified(self, flaky_service, sink) -> None:
        result = flaky_service.start_negotiation("asset-sale", BUYER_ID, Offer())

        assert flaky_service.negotiations.get(result.session.session_id).status == NegotiationStatus.PENDING
        delivered = [d for d in sink.delivered if d.recipient_id == OWNER_ID]
        assert len(delivered) == 1
        assert delivered[0].role == Role.SELLER
        assert delivered[0].event.message.startswith(f"{BUYER_ID} sent a installments offer")

    def test_asset_title_falls_back(self, service) -> None:
        service.context.assets = MagicMock()
        service.context.assets.get_by_id.side_effect = RuntimeError("asset service down")

        assert service.context.asset_title("asset-sale") == "Property"
