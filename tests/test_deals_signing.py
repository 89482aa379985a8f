"""Tests for deal decisions, contracts and signing."""

from decimal import Decimal

import pytest

from conftest import ADMIN_ID, BUYER_ID, DEVELOPER_ID, OTHER_BUYER_ID, OWNER_ID
from deal_flow.exceptions import (
    AuthorizationError,
    InvalidStateError,
    UnavailableAssetError,
    ValidationError,
)
from deal_flow.models import (
    AvailabilityStatus,
    ContractStatus,
    Deal,
    DealStatus,
    Decision,
    InstallmentStatus,
    NotificationLevel,
    Offer,
    OfferType,
    ReferenceType,
)


class TestUpdateDealStatus:
    """Tests for owner decisions on deals."""

    def test_accept_creates_contract(self, service, sink, reserved) -> None:
        deal = service.update_deal_status(reserved.deal.deal_id, OWNER_ID, "accepted")

        assert deal.status == DealStatus.ACCEPTED
        assert deal.contract_id is not None

        contract = service.signing.get(deal.contract_id)
        assert contract.deal_id == deal.deal_id
        assert contract.total_price == Decimal("3000000")
        assert contract.contract_number.startswith("CON-")
        assert contract.contract_number.endswith(deal.deal_id[-6:])
        assert contract.status == ContractStatus.DRAFT
        assert [entry.amount for entry in contract.payment_plan] == [Decimal("900000")] * 3
        assert all(entry.status == InstallmentStatus.PENDING for entry in contract.payment_plan)

        buyer_titles = [e.title for e in sink.for_recipient(BUYER_ID)]
        owner_titles = [e.title for e in sink.for_recipient(OWNER_ID)]
        assert "Deal Accepted" in buyer_titles
        assert "Contract Created" in buyer_titles
        assert "Contract Created" in owner_titles

    def test_reject(self, service, sink, reserved) -> None:
        deal = service.update_deal_status(reserved.deal.deal_id, OWNER_ID, DealStatus.REJECTED)

        assert deal.status == DealStatus.REJECTED
        assert deal.contract_id is None
        assert service.store.contracts == {}

        event = sink.for_recipient(BUYER_ID)[-1]
        assert event.title == "Deal Rejected"
        assert event.level == NotificationLevel.WARNING

    @pytest.mark.parametrize("status", ["closed", "cancelled", "pending", "bogus"])
    def test_invalid_status(self, service, reserved, status) -> None:
        with pytest.raises(ValidationError):
            service.update_deal_status(reserved.deal.deal_id, OWNER_ID, status)

    @pytest.mark.parametrize("actor_id", [BUYER_ID, OTHER_BUYER_ID, ADMIN_ID])
    def test_only_owner(self, service, reserved, actor_id) -> None:
        with pytest.raises(AuthorizationError):
            service.update_deal_status(reserved.deal.deal_id, actor_id, "accepted")

    def test_accept_twice(self, service, reserved) -> None:
        service.update_deal_status(reserved.deal.deal_id, OWNER_ID, "accepted")

        with pytest.raises(InvalidStateError):
            service.update_deal_status(reserved.deal.deal_id, OWNER_ID, "rejected")
        assert len(service.store.contracts) == 1

    def test_accept_without_deposit_creates_no_contract(self, service) -> None:
        deal = service.store.insert(
            Deal("asset-sale", BUYER_ID, OWNER_ID, Decimal("3000000"), Decimal("3000000"))
        )

        accepted = service.update_deal_status(deal.deal_id, OWNER_ID, "accepted")

        assert accepted.contract_id is None
        assert service.store.contracts == {}


class TestCreateContract:
    """Tests for explicit contract creation."""

    def test_returns_existing_contract(self, service, contract_id, reserved) -> None:
        contract = service.create_contract(reserved.deal.deal_id, BUYER_ID)

        assert contract.contract_id == contract_id
        assert len(service.store.contracts) == 1

    def test_manual_contract_for_accepted_deal(self, service) -> None:
        deal = service.store.insert(
            Deal("asset-sale", BUYER_ID, OWNER_ID, Decimal("3000000"), Decimal("2950000"))
        )
        service.update_deal_status(deal.deal_id, OWNER_ID, "accepted")

        contract = service.create_contract(deal.deal_id, BUYER_ID)

        assert contract.total_price == Decimal("2950000")
        assert contract.payment_plan == []
        assert service.deals.get(deal.deal_id).contract_id == contract.contract_id

    def test_explicit_price(self, service) -> None:
        deal = service.store.insert(
            Deal("asset-sale", BUYER_ID, OWNER_ID, Decimal("3000000"), Decimal("3000000"))
        )
        service.update_deal_status(deal.deal_id, OWNER_ID, "accepted")

        contract = service.create_contract(deal.deal_id, OWNER_ID, total_price=2800000)

        assert contract.total_price == Decimal("2800000")

    def test_non_positive_price(self, service) -> None:
        deal = service.store.insert(
            Deal("asset-sale", BUYER_ID, OWNER_ID, Decimal("3000000"), Decimal("3000000"))
        )
        service.update_deal_status(deal.deal_id, OWNER_ID, "accepted")

        with pytest.raises(ValidationError):
            service.create_contract(deal.deal_id, OWNER_ID, total_price=0)

    def test_deal_must_be_accepted(self, service, reserved) -> None:
        with pytest.raises(InvalidStateError):
            service.create_contract(reserved.deal.deal_id, OWNER_ID)

    def test_non_party(self, service, reserved) -> None:
        with pytest.raises(AuthorizationError):
            service.create_contract(reserved.deal.deal_id, OTHER_BUYER_ID)


class TestSign:
    """Tests for two-party signing."""

    def test_first_signature_activates(self, service, sink, contract_id) -> None:
        contract = service.sign(contract_id, BUYER_ID)

        assert contract.status == ContractStatus.ACTIVE
        assert contract.signed.buyer is True
        assert contract.signed.seller is False
        assert sink.for_recipient(OWNER_ID)[-1].title == "Contract Signed by Buyer"

    def test_owner_signature_notifies_buyer(self, service, sink, contract_id) -> None:
        service.sign(contract_id, OWNER_ID)

        assert sink.for_recipient(BUYER_ID)[-1].title == "Contract Signed by Seller"

    def test_signing_twice_is_noop(self, service, sink, contract_id) -> None:
        service.sign(contract_id, BUYER_ID)
        notifications = len(sink.delivered)

        contract = service.sign(contract_id, BUYER_ID)

        assert contract.status == ContractStatus.ACTIVE
        assert len(sink.delivered) == notifications

    def test_both_signatures_complete_sale(self, service, sink, assets, reserved, contract_id) -> None:
        service.sign(contract_id, BUYER_ID)
        contract = service.sign(contract_id, OWNER_ID)

        assert contract.status == ContractStatus.COMPLETED
        assert contract.signed.complete
        assert assets.get_by_id("asset-sale").availability_status == AvailabilityStatus.SOLD
        assert service.deals.get(reserved.deal.deal_id).status == DealStatus.CLOSED

        completed = [d for d in sink.delivered if d.event.event_type == "contract.completed"]
        assert {d.recipient_id for d in completed} == {BUYER_ID, OWNER_ID}
        assert "sold" in completed[0].event.message

    def test_completion_happens_once(self, service, sink, contract_id) -> None:
        service.sign(contract_id, BUYER_ID)
        service.sign(contract_id, OWNER_ID)
        service.sign(contract_id, OWNER_ID)
        service.sign(contract_id, BUYER_ID)

        assert sink.event_types().count("contract.completed") == 2

    def test_rent_completion_marks_rented(self, service, assets) -> None:
        offer = Offer(offer_type=OfferType.RENT, rent_budget=Decimal("7500"))
        session_id = service.start_negotiation("asset-rent", BUYER_ID, offer).session.session_id
        service.decide(session_id, DEVELOPER_ID, Decision.APPROVED)
        reserved = service.confirm_reservation(BUYER_ID, session_id=session_id)
        deal = service.update_deal_status(reserved.deal.deal_id, DEVELOPER_ID, "accepted")

        service.sign(deal.contract_id, DEVELOPER_ID)
        service.sign(deal.contract_id, BUYER_ID)

        assert reserved.payment.amount == Decimal("7500")
        assert assets.get_by_id("asset-rent").availability_status == AvailabilityStatus.RENTED

    def test_sold_asset_rejects_new_offers(self, service, contract_id) -> None:
        service.sign(contract_id, BUYER_ID)
        service.sign(contract_id, OWNER_ID)

        with pytest.raises(UnavailableAssetError):
            service.start_negotiation("asset-sale", OTHER_BUYER_ID, Offer())

    def test_non_party_cannot_sign(self, service, contract_id) -> None:
        with pytest.raises(AuthorizationError):
            service.sign(contract_id, OTHER_BUYER_ID)

    def test_cancelled_contract(self, service, unpaid_contract_id) -> None:
        service.cancel(ReferenceType.CONTRACT, unpaid_contract_id, OWNER_ID)

        with pytest.raises(InvalidStateError):
            service.sign(unpaid_contract_id, BUYER_ID)


class TestInstallments:
    """Tests for marking installments paid."""

    def test_buyer_marks_paid(self, service, contract_id) -> None:
        contract = service.mark_installment_paid(contract_id, 1, BUYER_ID)

        assert contract.payment_plan[1].status == InstallmentStatus.PAID
        assert contract.payment_plan[1].paid_at is not None
        assert contract.payment_plan[0].status == InstallmentStatus.PENDING

    def test_owner_cannot_mark_paid(self, service, contract_id) -> None:
        with pytest.raises(AuthorizationError, match="Only the buyer"):
            service.mark_installment_paid(contract_id, 0, OWNER_ID)

    def test_non_party(self, service, contract_id) -> None:
        with pytest.raises(AuthorizationError):
            service.mark_installment_paid(contract_id, 0, OTHER_BUYER_ID)

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_index_out_of_range(self, service, contract_id, index) -> None:
        with pytest.raises(ValidationError):
            service.mark_installment_paid(contract_id, index, BUYER_ID)

    def test_cancelled_contract(self, service, unpaid_contract_id) -> None:
        service.cancel("contract", unpaid_contract_id, BUYER_ID)

        with pytest.raises(InvalidStateError):
            service.mark_installment_paid(unpaid_contract_id, 0, BUYER_ID)

    @pytest.mark.parametrize("index", [-1, 3])
    def test_owner_with_bad_index_is_unauthorized(self, service, contract_id, index) -> None:
        with pytest.raises(AuthorizationError, match="Only the buyer"):
            service.mark_installment_paid(contract_id, index, OWNER_ID)

    def test_non_party_with_bad_index_is_unauthorized(self, service, contract_id) -> None:
        with pytest.raises(AuthorizationError):
            service.mark_installment_paid(contract_id, 99, OTHER_BUYER_ID)


class TestListing:
    """Tests for deal and contract listings."""

    def test_lists_for_parties(self, service, contract_id, reserved) -> None:
        assert [d.deal_id for d in service.list_deals(BUYER_ID)] == [reserved.deal.deal_id]
        assert [d.deal_id for d in service.list_deals(OWNER_ID)] == [reserved.deal.deal_id]
        assert [c.contract_id for c in service.list_contracts(OWNER_ID)] == [contract_id]
        assert service.list_contracts(OTHER_BUYER_ID) == []
