"""Two-party contract signing and installment bookkeeping."""

import logging
from datetime import datetime

from deal_flow.exceptions import AuthorizationError, InvalidStateError, ValidationError
from deal_flow.models import (
    AvailabilityStatus,
    Contract,
    ContractStatus,
    InstallmentStatus,
    ListingStatus,
    NotificationEvent,
    NotificationLevel,
    ReferenceType,
)
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.deals import DealService
from deal_flow.workflow.transitions import CONTRACT_TRANSITIONS, Party, check_status, party_of

logger = logging.getLogger(__name__)


class ContractSigningService:
    """Collects both signatures and completes the sale or rental.

    Completion happens in the same conditional write that records the
    second signature, so it runs exactly once per contract.
    """

    def __init__(self, context: WorkflowContext, deals: DealService) -> None:
        self.ctx = context
        self.deals = deals

    def get(self, contract_id: str) -> Contract:
        return self.ctx.store.get(ReferenceType.CONTRACT, contract_id)

    def sign(self, contract_id: str, actor_id: str) -> Contract:
        """Record the actor's signature.

        Signing twice is a no-op. When both parties have signed, the asset
        becomes ``rented`` (rent listings) or ``sold`` and the deal closes.

        Raises
        ------
        AuthorizationError
            If the actor is neither buyer nor owner.
        InvalidStateError
            If the contract was cancelled.
        """
        outcome = {}

        def mutate(contract: Contract) -> None:
            party = party_of(actor_id, contract.buyer_id, contract.owner_id)
            if party is None:
                raise AuthorizationError("Not authorized to sign this contract")
            if contract.status == ContractStatus.CANCELLED:
                raise InvalidStateError(f"Contract {contract_id} was cancelled")

            if party == Party.BUYER:
                outcome["newly_signed"] = not contract.signed.buyer
                contract.signed.buyer = True
            else:
                outcome["newly_signed"] = not contract.signed.seller
                contract.signed.seller = True
            outcome["party"] = party
            outcome["completed"] = False

            if contract.signed.complete:
                if contract.status != ContractStatus.COMPLETED:
                    check_status(CONTRACT_TRANSITIONS["complete"], "complete", contract.status)
                    contract.status = ContractStatus.COMPLETED
                    outcome["completed"] = True
            elif contract.status == ContractStatus.DRAFT:
                contract.status = CONTRACT_TRANSITIONS["activate"].target

        contract = self.ctx.store.update(
            ReferenceType.CONTRACT, contract_id, mutate, attempts=self.ctx.attempts
        )

        if outcome["newly_signed"]:
            self._notify_signed(contract, outcome["party"], actor_id)
        if outcome["completed"]:
            self._complete(contract)
        return contract

    def _notify_signed(self, contract: Contract, party: Party, actor_id: str) -> None:
        signer = "Buyer" if party == Party.BUYER else "Seller"
        logger.info("Contract %s signed by %s %s", contract.contract_id, signer.lower(), actor_id)
        event = NotificationEvent(
            event_type="contract.signed",
            title=f"Contract Signed by {signer}",
            message=f"{self.ctx.actor_name(actor_id)} signed the contract.",
            reference_type=ReferenceType.CONTRACT,
            reference_id=contract.contract_id,
        )
        if party == Party.BUYER:
            self.ctx.notify_owner(contract.owner_id, event)
        else:
            self.ctx.notify_buyer(contract.buyer_id, event)

    def _complete(self, contract: Contract) -> None:
        asset = self.ctx.get_asset(contract.asset_id)
        if asset is None:
            logger.warning(
                "Contract %s completed but asset %s no longer exists",
                contract.contract_id, contract.asset_id,
            )
            new_status = None
        else:
            new_status = (
                AvailabilityStatus.RENTED
                if asset.listing_status == ListingStatus.RENT
                else AvailabilityStatus.SOLD
            )
            self.ctx.assets.set_availability(asset.asset_id, new_status)
            logger.info("Asset %s marked as %s after contract signing", asset.asset_id, new_status.value)

        self.deals.close(contract.deal_id)

        outcome = f" The property is now {new_status.value}." if new_status else ""
        self.ctx.notify_parties(
            contract.buyer_id,
            contract.owner_id,
            NotificationEvent(
                event_type="contract.completed",
                title="Contract Completed",
                message=f"Contract has been fully signed.{outcome}",
                level=NotificationLevel.SUCCESS,
                reference_type=ReferenceType.CONTRACT,
                reference_id=contract.contract_id,
            ),
        )

    def mark_installment_paid(self, contract_id: str, index: int, actor_id: str) -> Contract:
        """Mark one payment-plan entry as paid.

        Raises
        ------
        AuthorizationError
            If the actor is not a party, or is the owner.
        ValidationError
            If ``index`` does not address a plan entry.
        """

        def mutate(contract: Contract) -> None:
            party = party_of(actor_id, contract.buyer_id, contract.owner_id)
            if party is None:
                raise AuthorizationError("Not authorized to update payments")
            if party != Party.BUYER:
                raise AuthorizationError("Only the buyer can mark payments as paid")
            if contract.status == ContractStatus.CANCELLED:
                raise InvalidStateError(f"Contract {contract_id} was cancelled")
            if not 0 <= index < len(contract.payment_plan):
                raise ValidationError(f"Payment item {index} not found")
            entry = contract.payment_plan[index]
            entry.status = InstallmentStatus.PAID
            entry.paid_at = datetime.now()

        contract = self.ctx.store.update(
            ReferenceType.CONTRACT, contract_id, mutate, attempts=self.ctx.attempts
        )
        logger.info("Installment %d of contract %s marked paid", index, contract_id)
        return contract

    def list_for(self, actor_id: str) -> list[Contract]:
        return self.ctx.store.list_records(
            ReferenceType.CONTRACT,
            lambda c: actor_id in (c.buyer_id, c.owner_id),
        )
