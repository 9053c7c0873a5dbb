from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_detail(self) -> Dict[str, Any]:
        """JSON-safe error body: machine-readable kind, message and any extra figures."""
        body: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        for key, value in self.details.items():
            if isinstance(value, (Decimal, UUID)):
                value = str(value)
            body[key] = value
        return body


class ValidationFailed(ServiceError):
    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, {"field": field} if field else None)


class InvalidAmount(ServiceError):
    kind = "invalid_amount"

    def __init__(self, amount: Decimal, message: str = "Amount must be greater than zero") -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, {"amount": amount})


class NotFound(ServiceError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity.replace('_', ' ').capitalize()} not found",
            status.HTTP_404_NOT_FOUND,
            {"entity": entity, "id": entity_id},
        )


class Conflict(ServiceError):
    kind = "conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class OverpaymentRejected(ServiceError):
    kind = "overpayment_rejected"

    def __init__(self, amount: Decimal, remaining_balance: Decimal) -> None:
        super().__init__(
            f"Payment of {amount} exceeds the remaining balance of {remaining_balance}",
            status.HTTP_409_CONFLICT,
            {"amount": amount, "remaining_balance": remaining_balance},
        )
        self.remaining_balance = remaining_balance


class InsufficientBalance(ServiceError):
    kind = "insufficient_balance"

    def __init__(self, amount: Decimal, current_balance: Decimal) -> None:
        super().__init__(
            f"Debit of {amount} exceeds the current account balance of {current_balance}",
            status.HTTP_409_CONFLICT,
            {"amount": amount, "current_balance": current_balance},
        )
        self.current_balance = current_balance


class LedgerBusy(ServiceError):
    kind = "busy"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"The {entity.replace('_', ' ')} is being updated by another request; retry shortly",
            status.HTTP_409_CONFLICT,
            {"entity": entity, "id": entity_id},
        )


class LedgerInternalError(ServiceError):
    kind = "internal"

    def __init__(self, message: str = "The ledger operation failed and was rolled back") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
