from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

ERR_COMMON_EMPTY_PAYLOAD = "Payload must not be empty"
ERR_COMMON_DATA_NOT_FOUND = "Data not found"

ERR_TRANSACTION_NOT_FOUND = "Transaction not found"
ERR_TRANSACTION_PRICE_REQUIRED = "Price is required for BUY, SELL and SWAP transactions"
ERR_TRANSACTION_INVALID_AMOUNT = "Amount sign does not match the transaction type"
ERR_TRANSACTION_INVALID_EXTERNAL_ID = "External ID is required for SWAP and must be empty for other types"
ERR_TRANSACTION_FUTURE_DATE = "Transaction date cannot be in the future"

ERR_TOKEN_INVALID_SYMBOL = "Token symbol must match ^[A-Z0-9]{1,20}$"
ERR_PORTFOLIO_HOLDING_EXISTS = "Portfolio holding for this token already exists"
ERR_PORTFOLIO_HOLDING_NOT_FOUND = "Portfolio holding not found"
ERR_TOKEN_NOT_FOUND = "Token not found"

ERR_PORTFOLIO_NOT_FOUND = "Portfolio not found"
ERR_PORTFOLIO_ACCESS_DENIED = "Access denied to portfolio"

ERR_ASSET_NOT_FOUND = "Asset not found"
ERR_ASSET_ACCESS_DENIED = "Access denied to asset"

ERR_GOAL_NOT_FOUND = "Financial goal not found"
ERR_GOAL_ACCESS_DENIED = "Access denied to financial goal"


class ErrorLayer(StrEnum):
    DOMAIN = "domain"
    APPLICATION = "application"
    INFRASTRUCTURE = "infrastructure"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message


class DomainError(Exception):
    """Recoverable error raised by domain factories and application services."""

    def __init__(self, message: str, *, remarks: str | None = None, layer: ErrorLayer = ErrorLayer.DOMAIN) -> None:
        super().__init__(message)
        self.message = message
        self.layer = layer
        self.remarks = f"[{layer.value.upper()}] {remarks}" if remarks else None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "layer": self.layer.value,
            "remarks": self.remarks,
        }


class ValidationFailed(DomainError):
    def __init__(
        self,
        errors: tuple[FieldError, ...] | list[FieldError],
        *,
        remarks: str | None = None,
        layer: ErrorLayer = ErrorLayer.DOMAIN,
    ) -> None:
        self.errors = tuple(errors)
        message = "; ".join(str(error) for error in self.errors) or "Data is invalid"
        super().__init__(message, remarks=remarks, layer=layer)

    def fields(self) -> set[str]:
        return {error.field for error in self.errors}

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["errors"] = [{"field": error.field, "message": error.message} for error in self.errors]
        return payload


class NotFound(DomainError):
    pass


class AccessDenied(DomainError):
    pass


class Conflict(DomainError):
    pass


class ConfigurationError(Exception):
    """Programming error: a query or component was wired with values it does not allow."""
