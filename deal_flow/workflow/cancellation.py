"""Cancellation of workflow records and everything downstream of them."""

import logging
from dataclasses import dataclass, field
from typing import Any

from deal_flow.exceptions import AuthorizationError, InvalidStateError, ValidationError
from deal_flow.models import (
    Deal,
    DealDraft,
    NotificationEvent,
    NotificationLevel,
    PaymentStatus,
    ReferenceType,
)
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.transitions import (
    CONTRACT_TRANSITIONS,
    DEAL_TRANSITIONS,
    DRAFT_TRANSITIONS,
    NEGOTIATION_TRANSITIONS,
    Party,
    is_terminal,
    party_of,
)

logger = logging.getLogger(__name__)

CANCEL_TRANSITIONS = {
    ReferenceType.NEGOTIATION: NEGOTIATION_TRANSITIONS["cancel"],
    ReferenceType.DRAFT: DRAFT_TRANSITIONS["cancel"],
    ReferenceType.DEAL: DEAL_TRANSITIONS["cancel"],
    ReferenceType.CONTRACT: CONTRACT_TRANSITIONS["cancel"],
}

DEPOSIT_PAID_WARNING = (
    "A reservation deposit has already been paid. The booking was not cancelled; "
    "please contact the other party to arrange a refund first."
)


@dataclass
class CancellationResult:
    """Records cancelled by one request, and why anything was left alone."""

    cancelled: list[tuple[ReferenceType, str]] = field(default_factory=list)
    skipped: list[tuple[ReferenceType, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def refused(self) -> bool:
        return not self.cancelled and bool(self.warnings)


class CancellationService:
    """Cancels a record and its downstream chain.

    The chain runs negotiation -> draft -> deal -> contract. Nothing is
    cancelled once a deposit has been paid anywhere in the chain; the
    caller gets a warning instead.
    """

    def __init__(self, context: WorkflowContext) -> None:
        self.ctx = context

    def cancel(
        self,
        target_type: ReferenceType | str,
        target_id: str,
        actor_id: str,
    ) -> CancellationResult:
        """Cancel a record and the records downstream of it.

        The deposit check and every write happen under the store lock, so a
        reservation cannot commit between them.
        """
        try:
            target_type = ReferenceType(target_type)
        except ValueError as e:
            raise ValidationError(f"Unknown cancellation target: {target_type}") from e

        is_admin = self.ctx.is_admin(actor_id)
        result = CancellationResult()

        with self.ctx.store.locked():
            target = self.ctx.store.get(target_type, target_id)
            party = party_of(actor_id, target.buyer_id, target.owner_id)
            if party is None and not is_admin:
                raise AuthorizationError(f"Not authorized to cancel this {target_type.value}")

            chain = self._chain(target_type, target)
            if self._deposit_paid_anywhere(target_type, target, chain):
                logger.warning(
                    "Refused to cancel %s %s: deposit already paid", target_type.value, target_id
                )
                result.warnings.append(DEPOSIT_PAID_WARNING)
                return result

            for kind, record in chain:
                if self._cancel_one(kind, record):
                    result.cancelled.append((kind, record.key))
                else:
                    result.skipped.append((kind, record.key))

        if result.cancelled:
            logger.info(
                "Cancelled %s %s by %s (%d records)",
                target_type.value, target_id, actor_id, len(result.cancelled),
            )
            self._notify(target_type, target, party)
        return result

    def _chain(self, kind: ReferenceType, target: Any) -> list[tuple[ReferenceType, Any]]:
        store = self.ctx.store
        chain: list[tuple[ReferenceType, Any]] = [(kind, target)]

        draft: DealDraft | None = None
        deal: Deal | None = None
        if kind == ReferenceType.NEGOTIATION:
            draft = store.find_draft_for_negotiation(target.session_id)
            if draft is not None:
                chain.append((ReferenceType.DRAFT, draft))
            deal = store.find_deal(target.session_id, target.asset_id, target.buyer_id, target.owner_id)
        elif kind == ReferenceType.DRAFT:
            deal = (
                store.find(ReferenceType.DEAL, target.linked_deal_id)
                if target.linked_deal_id
                else store.find_deal(target.negotiation_id, target.asset_id, target.buyer_id, target.owner_id)
            )
        elif kind == ReferenceType.DEAL:
            deal = target

        if deal is not None:
            if deal is not target:
                chain.append((ReferenceType.DEAL, deal))
            contract = (
                store.find(ReferenceType.CONTRACT, deal.contract_id)
                if deal.contract_id
                else store.find_contract_for_deal(deal.deal_id)
            )
            if contract is not None:
                chain.append((ReferenceType.CONTRACT, contract))
        return chain

    def _deposit_paid_anywhere(
        self,
        kind: ReferenceType,
        target: Any,
        chain: list[tuple[ReferenceType, Any]],
    ) -> bool:
        """Check current copies of the chain, plus the records it hangs off."""
        store = self.ctx.store
        records = [store.find(k, record.key) for k, record in chain]
        if kind == ReferenceType.NEGOTIATION:
            records.append(store.find_draft_for_negotiation(target.session_id))
            records.append(
                store.find_deal(target.session_id, target.asset_id, target.buyer_id, target.owner_id)
            )
        records.extend(self._upstream(kind, target))
        return any(self._deposit_paid(record) for record in records if record is not None)

    def _upstream(self, kind: ReferenceType, target: Any) -> list[Any]:
        """Deal and draft above a deal or contract; checked, never cancelled."""
        if kind == ReferenceType.CONTRACT:
            deal = self.ctx.store.find(ReferenceType.DEAL, target.deal_id)
            if deal is None:
                return []
            return [deal, self._draft_for_deal(deal)]
        if kind == ReferenceType.DEAL:
            return [self._draft_for_deal(target)]
        return []

    def _draft_for_deal(self, deal: Deal) -> DealDraft | None:
        store = self.ctx.store
        if deal.negotiation_id:
            draft = store.find_draft_for_negotiation(deal.negotiation_id)
            if draft is not None:
                return draft
        linked = store.list_records(ReferenceType.DRAFT, lambda d: d.linked_deal_id == deal.deal_id)
        return linked[0] if linked else None

    @staticmethod
    def _deposit_paid(record: Any) -> bool:
        if isinstance(record, DealDraft):
            payment = record.reservation_payment
            return payment is not None and payment.status == PaymentStatus.PAID
        if isinstance(record, Deal):
            return record.deposit_paid
        return False

    def _cancel_one(self, kind: ReferenceType, record: Any) -> bool:
        if is_terminal(record.status):
            logger.debug("Skipping %s %s: already %s", kind.value, record.key, record.status.value)
            return False
        transition = CANCEL_TRANSITIONS[kind]
        if record.status not in transition.sources:
            logger.info(
                "Skipping %s %s: cannot cancel from %s", kind.value, record.key, record.status.value
            )
            return False

        def mutate(r: Any) -> None:
            if r.status not in transition.sources:
                raise InvalidStateError(f"{kind.value.capitalize()} {r.key} is {r.status.value}")
            r.status = transition.target

        try:
            self.ctx.store.update(kind, record.key, mutate, attempts=self.ctx.attempts)
        except InvalidStateError as e:
            logger.info("Not cancelling %s %s: %s", kind.value, record.key, e)
            return False
        return True

    def _notify(self, kind: ReferenceType, target: Any, party: Party | None) -> None:
        title = self.ctx.asset_title(target.asset_id)
        event = NotificationEvent(
            event_type=f"{kind.value}.cancelled",
            title=f"{kind.value.capitalize()} Cancelled",
            message=f"The {kind.value} for {title} has been cancelled.",
            level=NotificationLevel.WARNING,
            reference_type=kind,
            reference_id=target.key,
        )
        if party != Party.BUYER:
            self.ctx.notify_buyer(target.buyer_id, event)
        if party != Party.OWNER:
            self.ctx.notify_owner(target.owner_id, event)
