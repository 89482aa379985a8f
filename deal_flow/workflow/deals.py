"""Deal acceptance and contract creation."""

import logging
import time
from decimal import Decimal

from deal_flow.exceptions import AuthorizationError, InvalidStateError, ValidationError
from deal_flow.models import (
    Contract,
    Deal,
    DealStatus,
    NotificationEvent,
    NotificationLevel,
    PlanEntry,
    ReferenceType,
)
from deal_flow.pricing import build_payment_plan, to_decimal
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.transitions import (
    DEAL_TRANSITIONS,
    authorize,
    check_status,
    party_of,
)

logger = logging.getLogger(__name__)


def contract_number(deal_id: str) -> str:
    return f"CON-{int(time.time() * 1000)}-{deal_id[-6:]}"


class DealService:
    """Owner decisions on deals and the contracts that follow them."""

    def __init__(self, context: WorkflowContext) -> None:
        self.ctx = context

    def get(self, deal_id: str) -> Deal:
        return self.ctx.store.get(ReferenceType.DEAL, deal_id)

    def update_status(self, deal_id: str, actor_id: str, status: DealStatus | str) -> Deal:
        """Accept or reject a pending deal.

        Accepting a deal whose deposit is paid creates its contract with a
        default installment plan.

        Raises
        ------
        ValidationError
            If ``status`` is neither accepted nor rejected.
        AuthorizationError
            Unless the actor owns the asset.
        InvalidStateError
            Unless the deal is pending.
        """
        try:
            status = DealStatus(status)
        except ValueError as e:
            raise ValidationError(f"Invalid deal status: {status}") from e
        if status not in (DealStatus.ACCEPTED, DealStatus.REJECTED):
            raise ValidationError(f"Invalid deal status: {status.value}")

        action = "accept" if status == DealStatus.ACCEPTED else "reject"
        transition = DEAL_TRANSITIONS[action]

        def mutate(deal: Deal) -> None:
            authorize(transition, action, actor_id, deal.buyer_id, deal.owner_id)
            check_status(transition, action, deal.status)
            deal.status = transition.target

        deal = self.ctx.store.update(ReferenceType.DEAL, deal_id, mutate, attempts=self.ctx.attempts)
        logger.info("Deal %s %s by %s", deal_id, deal.status.value, actor_id)

        accepted = deal.status == DealStatus.ACCEPTED
        owner_name = self.ctx.actor_name(deal.owner_id)
        title = self.ctx.asset_title(deal.asset_id)
        self.ctx.notify_buyer(
            deal.buyer_id,
            NotificationEvent(
                event_type=f"deal.{deal.status.value}",
                title="Deal Accepted" if accepted else "Deal Rejected",
                message=f"{owner_name} {deal.status.value} your deal on {title}.",
                level=NotificationLevel.SUCCESS if accepted else NotificationLevel.WARNING,
                reference_type=ReferenceType.DEAL,
                reference_id=deal_id,
            ),
        )

        if accepted and deal.deposit_paid and not deal.contract_id:
            final_price = deal.final_price or deal.offer_price
            plan = build_payment_plan(
                final_price,
                deal.deposit_payment.amount,
                installments=self.ctx.config.contract_installments,
                interval_days=self.ctx.config.installment_interval_days,
            )
            contract = self._create_for_deal(deal, final_price, plan)
            deal = self.get(deal_id)
            logger.info("Contract %s created automatically for deal %s", contract.contract_number, deal_id)
        return deal

    def create_contract(
        self,
        deal_id: str,
        actor_id: str,
        total_price: Decimal | int | None = None,
        payment_plan: list[PlanEntry] | None = None,
    ) -> Contract:
        """Create the contract of an accepted deal on behalf of either party.

        Returns the deal's existing contract if it already has one.
        """
        deal = self.get(deal_id)
        if party_of(actor_id, deal.buyer_id, deal.owner_id) is None:
            raise AuthorizationError("Not authorized to create a contract for this deal")
        if deal.status != DealStatus.ACCEPTED:
            raise InvalidStateError("Deal must be accepted before creating a contract")

        price = to_decimal(total_price) if total_price is not None else deal.final_price
        if price <= 0:
            raise ValidationError("Contract total price must be positive")
        return self._create_for_deal(deal, price, list(payment_plan or []))

    def _create_for_deal(self, deal: Deal, total_price: Decimal, plan: list[PlanEntry]) -> Contract:
        contract, created = self.ctx.store.get_or_create_contract(
            deal.deal_id,
            lambda: Contract(
                deal_id=deal.deal_id,
                asset_id=deal.asset_id,
                buyer_id=deal.buyer_id,
                owner_id=deal.owner_id,
                total_price=total_price,
                contract_number=contract_number(deal.deal_id),
                payment_plan=plan,
            ),
        )
        if not created:
            logger.info("Deal %s already has contract %s", deal.deal_id, contract.contract_id)
            return contract

        def link(d: Deal) -> None:
            d.contract_id = contract.contract_id

        self.ctx.store.update(ReferenceType.DEAL, deal.deal_id, link, attempts=self.ctx.attempts)
        self.ctx.notify_parties(
            deal.buyer_id,
            deal.owner_id,
            NotificationEvent(
                event_type="contract.created",
                title="Contract Created",
                message=f"Contract {contract.contract_number} is ready for signature.",
                reference_type=ReferenceType.CONTRACT,
                reference_id=contract.contract_id,
            ),
        )
        return contract

    def close(self, deal_id: str) -> Deal | None:
        """Close an accepted deal once its contract completes."""
        transition = DEAL_TRANSITIONS["close"]

        def mutate(deal: Deal) -> None:
            check_status(transition, "close", deal.status)
            deal.status = transition.target

        try:
            deal = self.ctx.store.update(ReferenceType.DEAL, deal_id, mutate, attempts=self.ctx.attempts)
        except InvalidStateError as e:
            logger.warning("Deal %s left open after contract completion: %s", deal_id, e)
            return None
        logger.info("Deal %s closed", deal_id)
        return deal

    def list_for(self, actor_id: str) -> list[Deal]:
        return self.ctx.store.list_records(
            ReferenceType.DEAL,
            lambda d: actor_id in (d.buyer_id, d.owner_id),
        )
