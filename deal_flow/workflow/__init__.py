"""Negotiation-to-contract workflow services."""

from deal_flow.workflow.cancellation import CancellationResult, CancellationService
from deal_flow.workflow.context import WorkflowContext
from deal_flow.workflow.deals import DealService
from deal_flow.workflow.drafts import DraftContractService
from deal_flow.workflow.negotiation import NegotiationEngine, NegotiationResult
from deal_flow.workflow.reservation import (
    PAYMENT_INSTRUCTIONS,
    ReservationResult,
    ReservationService,
    payment_instructions,
)
from deal_flow.workflow.service import DealFlowService
from deal_flow.workflow.signing import ContractSigningService

__all__ = [
    "CancellationResult",
    "CancellationService",
    "ContractSigningService",
    "DealFlowService",
    "DealService",
    "DraftContractService",
    "NegotiationEngine",
    "NegotiationResult",
    "PAYMENT_INSTRUCTIONS",
    "ReservationResult",
    "ReservationService",
    "WorkflowContext",
    "payment_instructions",
]
