from __future__ import annotations

from .enums import RejectionReason


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ScanRejected(ValidationError):
    """A scan attempt failed one of the ordered checks. Nothing was written."""

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason


class AuthenticationError(DomainError):
    """Raised when a caller token cannot be resolved."""


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action (PermissionDenied)."""


class NotFoundError(DomainError):
    """Raised when an archived session or record does not exist."""


class OperatorPreconditionError(DomainError):
    """An operator command cannot run in the current state. Nothing was written."""


class NoRosterError(OperatorPreconditionError):
    pass


class LocationUnavailableError(OperatorPreconditionError):
    pass


class NoMorePhasesError(OperatorPreconditionError):
    pass


class SessionAlreadyActiveError(OperatorPreconditionError):
    pass


class SessionInactiveError(OperatorPreconditionError):
    pass


class NoPendingCorrectionError(OperatorPreconditionError):
    pass


class StoreError(DomainError):
    """Record store failure (network, timeout). Safe to retry."""


class ConflictError(StoreError):
    """A conditional write lost a race: a document changed since it was read."""
