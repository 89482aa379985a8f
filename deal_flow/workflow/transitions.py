"""Status transition tables for every workflow record.

Each action maps to the statuses it may start from, the status it
produces and the party allowed to perform it. Services look transitions
up here instead of comparing status values inline.
"""

from dataclasses import dataclass
from enum import Enum

from deal_flow.exceptions import AuthorizationError, InvalidStateError
from deal_flow.models import (
    ContractStatus,
    DealStatus,
    DraftStatus,
    NegotiationStatus,
)
from deal_flow.store.records import ACTIVE_NEGOTIATION_STATUSES


class Party(str, Enum):
    BUYER = "buyer"
    OWNER = "owner"
    EITHER = "either"


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    target: Enum
    party: Party
    admin_override: bool = False


def _t(sources, target, party, admin_override=False) -> Transition:
    return Transition(frozenset(sources), target, party, admin_override)


N = NegotiationStatus

NEGOTIATION_TRANSITIONS = {
    "approve": _t({N.PENDING}, N.APPROVED, Party.OWNER, admin_override=True),
    "decline": _t({N.PENDING}, N.DECLINED, Party.OWNER, admin_override=True),
    "request_draft": _t({N.APPROVED}, N.DRAFT_REQUESTED, Party.BUYER),
    "generate_draft": _t({N.DRAFT_REQUESTED}, N.DRAFT_GENERATED, Party.OWNER, admin_override=True),
    "send_draft": _t({N.DRAFT_GENERATED}, N.DRAFT_SENT, Party.OWNER, admin_override=True),
    "confirm": _t({N.APPROVED, N.DRAFT_GENERATED, N.DRAFT_SENT}, N.CONFIRMED, Party.BUYER),
    "cancel": _t(ACTIVE_NEGOTIATION_STATUSES, N.DECLINED, Party.EITHER, admin_override=True),
}

DRAFT_TRANSITIONS = {
    "reserve": _t({DraftStatus.DRAFT}, DraftStatus.RESERVED, Party.BUYER),
    "cancel": _t({DraftStatus.DRAFT}, DraftStatus.CANCELLED, Party.EITHER, admin_override=True),
}

DEAL_TRANSITIONS = {
    "accept": _t({DealStatus.PENDING}, DealStatus.ACCEPTED, Party.OWNER),
    "reject": _t({DealStatus.PENDING}, DealStatus.REJECTED, Party.OWNER),
    "close": _t({DealStatus.ACCEPTED}, DealStatus.CLOSED, Party.EITHER),
    "cancel": _t(
        {DealStatus.PENDING, DealStatus.ACCEPTED},
        DealStatus.CANCELLED,
        Party.EITHER,
        admin_override=True,
    ),
}

CONTRACT_TRANSITIONS = {
    "activate": _t({ContractStatus.DRAFT}, ContractStatus.ACTIVE, Party.EITHER),
    "complete": _t(
        {ContractStatus.DRAFT, ContractStatus.ACTIVE}, ContractStatus.COMPLETED, Party.EITHER
    ),
    "cancel": _t(
        {ContractStatus.DRAFT, ContractStatus.ACTIVE},
        ContractStatus.CANCELLED,
        Party.EITHER,
        admin_override=True,
    ),
}

TERMINAL_STATUSES = frozenset(
    {
        N.DECLINED,
        N.CONFIRMED,
        DraftStatus.CANCELLED,
        DealStatus.REJECTED,
        DealStatus.CANCELLED,
        DealStatus.CLOSED,
        ContractStatus.COMPLETED,
        ContractStatus.CANCELLED,
    }
)


def party_of(actor_id: str, buyer_id: str, owner_id: str) -> Party | None:
    if actor_id == owner_id:
        return Party.OWNER
    if actor_id == buyer_id:
        return Party.BUYER
    return None


def authorize(
    transition: Transition,
    action: str,
    actor_id: str,
    buyer_id: str,
    owner_id: str,
    is_admin: bool = False,
) -> None:
    """Raise ``AuthorizationError`` unless the actor may perform ``action``."""
    if is_admin and transition.admin_override:
        return
    party = party_of(actor_id, buyer_id, owner_id)
    if party is None:
        raise AuthorizationError(f"Actor {actor_id} is not a party to this record")
    if transition.party != Party.EITHER and party != transition.party:
        raise AuthorizationError(f"Only the {transition.party.value} may {action.replace('_', ' ')}")


def check_status(transition: Transition, action: str, current: Enum) -> None:
    """Raise ``InvalidStateError`` unless ``current`` allows ``action``."""
    if current not in transition.sources:
        allowed = ", ".join(sorted(s.value for s in transition.sources))
        raise InvalidStateError(
            f"Cannot {action.replace('_', ' ')} from status {current.value} (allowed: {allowed})"
        )


def is_terminal(status: Enum) -> bool:
    return status in TERMINAL_STATUSES
