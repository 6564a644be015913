"""
Domain Exceptions

Business rule violations raised by the service layer. Each error carries an
``ErrorType`` so the API layer can map it onto a status code without
inspecting messages.
"""

from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when an input value breaks a domain rule."""

    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(message, ErrorType.VALIDATION, {"field": field_name})


class BusinessRuleViolation(DomainError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorType.BUSINESS_RULE, details)


class EntityNotFoundError(DomainError):
    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(
            f"{entity} not found",
            ErrorType.NOT_FOUND,
            {"entity": entity, "id": str(identifier)},
        )


class EntityAlreadyExistsError(DomainError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorType.CONFLICT, details)


class PermissionDeniedError(DomainError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorType.FORBIDDEN, details)


class InsufficientBalanceError(DomainError):
    """Raised when a credit or point balance cannot cover a debit."""

    def __init__(self, kind: str, balance: int, required: int) -> None:
        super().__init__(
            f"Insufficient {kind}",
            ErrorType.INSUFFICIENT_BALANCE,
            {"kind": kind, "balance": balance, "required": required},
        )


ERROR_STATUS_CODES: dict[ErrorType, int] = {
    ErrorType.VALIDATION: 400,
    ErrorType.BUSINESS_RULE: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.FORBIDDEN: 403,
    ErrorType.INSUFFICIENT_BALANCE: 402,
}
