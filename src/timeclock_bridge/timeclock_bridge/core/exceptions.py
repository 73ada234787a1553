from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InfrastructureError(Exception):
    """Base exception for failures of external collaborators.

    These are never handled inside the reconciliation engine: they fail the
    current event so the provider redelivers it.
    """


class StoreUnavailable(InfrastructureError):
    """Raised when the session store cannot be reached."""


class AttendanceClientError(InfrastructureError):
    """Raised when the HR attendance API fails after its own retry budget."""

    def __init__(self, message: str, *, status: int | None = None, transient: bool = False):
        super().__init__(message)
        self.status = status
        self.transient = transient
