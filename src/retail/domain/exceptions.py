"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the HTTP and CLI layers can catch them uniformly and translate them into
a structured failure.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Malformed input or a violated business rule."""


class InsufficientStockError(ValidationError):
    """Fewer in-stock articles than the customer asked for."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class AuthenticationError(DomainException):
    """No usable identity accompanied the request."""


class ForbiddenError(DomainException):
    """The actor is not allowed to perform the action."""


class ConflictError(DomainException):
    """The requested transition is not valid from the current state."""


class PaymentNotConfirmedError(DomainException):
    """The payment processor does not report the checkout session as paid."""

    def __init__(self, external_status: str | None) -> None:
        super().__init__(
            f"Payment not confirmed (processor status: {external_status or 'unknown'})"
        )
        self.external_status = external_status


class ExternalServiceError(DomainException):
    """A call to the payment processor failed."""


class StockInvariantViolation(DomainException):
    """A stock counter or article status would leave its legal range.

    Never recovered from: the enclosing transaction must roll back.
    """
