"""Custom exception hierarchy for deal-flow."""


class DealFlowError(Exception):
    """Base exception for all deal-flow errors."""


class NotFoundError(DealFlowError):
    """Raised when a session, draft, deal, contract or asset does not exist."""


class AuthorizationError(DealFlowError):
    """Raised when the acting user is not the party the operation requires."""


class InvalidStateError(DealFlowError):
    """Raised when a transition is attempted from a status that forbids it."""


class ConcurrentUpdateError(InvalidStateError):
    """Raised when a conditional write keeps losing to concurrent writers."""


class ValidationError(DealFlowError):
    """Raised when input values are missing or out of range."""


class UnavailableAssetError(ValidationError):
    """Raised when the asset is already sold or rented."""


class ConfigurationError(DealFlowError):
    """Raised when configuration is invalid or missing."""


class SinkError(DealFlowError):
    """Raised when a sink operation fails."""
