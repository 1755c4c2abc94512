from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .base_types import AuditableModel, PortfolioId, UtcDatetime, audit_fields, ensure_utc, utc_now
from .cash_flow import (
    NEGATIVE_TYPES,
    POSITIVE_TYPES,
    PRICE_REQUIRED_TYPES,
    TransactionType,
    calculate_cash_flow,
    validate_amount,
)
from .errors import (
    ERR_TRANSACTION_FUTURE_DATE,
    ERR_TRANSACTION_INVALID_AMOUNT,
    ERR_TRANSACTION_INVALID_EXTERNAL_ID,
    ERR_TRANSACTION_PRICE_REQUIRED,
    FieldError,
)
from .portfolio_holding import TokenInfo
from .validation import Valid, check, non_null, parse, parse_patch, unwrap

CASH_FLOW_INPUTS = ("amount", "price", "fees")


class TransactionCreate(TokenInfo):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal
    price: Decimal | None = Field(default=None, ge=0)
    transaction_type: TransactionType
    fees: Decimal = Field(default=Decimal(0), ge=0)
    timestamp: UtcDatetime
    external_id: str | None = Field(default=None, min_length=1, max_length=100)
    notes: str | None = Field(default=None, max_length=1000)


class TransactionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal | None = None
    price: Decimal | None = Field(default=None, ge=0)
    fees: Decimal | None = Field(default=None, ge=0)
    timestamp: UtcDatetime | None = None
    notes: str | None = Field(default=None, max_length=1000)
    portfolio_value_after: Decimal | None = None


def _ledger_rules(values: Mapping[str, Any]) -> list[FieldError]:
    errors: list[FieldError] = []
    transaction_type = values["transaction_type"]

    if transaction_type in PRICE_REQUIRED_TYPES and not values.get("price"):
        errors.append(FieldError("price", ERR_TRANSACTION_PRICE_REQUIRED))

    if not validate_amount(transaction_type, values["amount"]):
        errors.append(FieldError("amount", ERR_TRANSACTION_INVALID_AMOUNT))

    if bool(values.get("external_id")) != (transaction_type == TransactionType.SWAP):
        errors.append(FieldError("external_id", ERR_TRANSACTION_INVALID_EXTERNAL_ID))

    if not Transaction.validate_transaction_date(values["timestamp"]):
        errors.append(FieldError("timestamp", ERR_TRANSACTION_FUTURE_DATE))

    return errors


class Transaction(AuditableModel):
    """A single ledger entry recorded against a portfolio.

    Amount sign convention:
    - BUY / DEPOSIT carry a positive amount (position increase).
    - SELL / WITHDRAWAL carry a negative amount (position decrease).
    - SWAP legs may carry either sign.

    ``cash_flow`` is derived from ``(transaction_type, amount, price, fees)``
    and is never accepted from callers.
    """

    portfolio_id: PortfolioId
    ref_id: str | None = None
    token_symbol: str
    token_name: str | None = None
    token_decimals: int = 18
    token_logo_url: str | None = None

    amount: Decimal
    price: Decimal | None = None
    transaction_type: TransactionType
    cash_flow: Decimal = Decimal(0)
    fees: Decimal = Decimal(0)
    timestamp: UtcDatetime
    external_id: str | None = None
    notes: str | None = None

    portfolio_value_before: Decimal | None = None
    portfolio_value_after: Decimal | None = None

    @classmethod
    def create(
        cls,
        portfolio_id: UUID,
        raw: Mapping[str, Any],
        created_by_id: UUID,
        portfolio_value_before: Decimal | None = None,
    ) -> Self:
        result = check(parse(TransactionCreate, raw), lambda data: _ledger_rules(data.model_dump()))
        data = unwrap(result, remarks="Transaction creation failed")
        return cls.model_validate(
            {
                **data.model_dump(),
                **audit_fields(created_by_id),
                "portfolio_id": portfolio_id,
                "cash_flow": calculate_cash_flow(data.transaction_type, data.amount, data.price, data.fees),
                "portfolio_value_before": portfolio_value_before,
            }
        )

    @classmethod
    def update(cls, existing: Transaction, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        result = check(parse_patch(TransactionUpdate, patch), non_null("amount", "fees", "timestamp"))
        data = unwrap(result, remarks="Transaction update failed")

        changes = data.model_dump(include=data.model_fields_set)
        merged = {**existing.model_dump(), **changes, "updated_at": utc_now(), "updated_by_id": updated_by_id}
        unwrap(check(Valid(merged), _ledger_rules), remarks="Transaction update failed")

        if any(key in changes and changes[key] != getattr(existing, key) for key in CASH_FLOW_INPUTS):
            merged["cash_flow"] = calculate_cash_flow(
                merged["transaction_type"], merged["amount"], merged["price"], merged["fees"]
            )
        return cls.model_validate(merged)

    @classmethod
    def mark_deleted(cls, existing: Transaction, deleted_by_id: UUID) -> Self:
        # Amount, price and cash flow stay as recorded for the audit trail.
        return cls.model_validate({**existing.model_dump(), "deleted_at": utc_now(), "deleted_by_id": deleted_by_id})

    @staticmethod
    def calculate_cash_flow(
        transaction_type: TransactionType, amount: Decimal | None, price: Decimal | None, fees: Decimal | None
    ) -> Decimal:
        return calculate_cash_flow(transaction_type, amount, price, fees)

    @staticmethod
    def validate_transaction_date(timestamp: datetime) -> bool:
        return ensure_utc(timestamp) <= utc_now()

    def with_portfolio_value_after(self, value: Decimal) -> Self:
        return self._evolve(portfolio_value_after=value)

    @property
    def absolute_amount(self) -> Decimal:
        return abs(self.amount)

    @property
    def total_value(self) -> Decimal:
        if not self.price:
            return Decimal(0)
        return self.absolute_amount * self.price

    @property
    def total_cost(self) -> Decimal:
        return self.total_value + self.fees

    @property
    def portfolio_impact(self) -> Decimal | None:
        if self.portfolio_value_before is None or self.portfolio_value_after is None:
            return None
        return self.portfolio_value_after - self.portfolio_value_before

    @property
    def token_identifier(self) -> str:
        return self.token_symbol.lower()

    def is_positive_transaction(self) -> bool:
        return self.transaction_type in POSITIVE_TYPES

    def is_negative_transaction(self) -> bool:
        return self.transaction_type in NEGATIVE_TYPES

    def is_swap_transaction(self) -> bool:
        return self.transaction_type == TransactionType.SWAP

    def has_valid_amount(self) -> bool:
        return validate_amount(self.transaction_type, self.amount)


__all__ = ["Transaction", "TransactionCreate", "TransactionUpdate"]
