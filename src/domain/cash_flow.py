from __future__ import annotations

from decimal import Decimal
from enum import StrEnum


class TransactionType(StrEnum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    SWAP = "SWAP"


PRICE_REQUIRED_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL, TransactionType.SWAP})
POSITIVE_TYPES = frozenset({TransactionType.BUY, TransactionType.DEPOSIT})
NEGATIVE_TYPES = frozenset({TransactionType.SELL, TransactionType.WITHDRAWAL})

ZERO = Decimal(0)


def calculate_cash_flow(
    transaction_type: TransactionType,
    amount: Decimal | None,
    price: Decimal | None,
    fees: Decimal | None = None,
) -> Decimal:
    """Signed cash impact of a transaction.

    Positive means money coming in, negative means money going out. Deposits,
    withdrawals and swaps move tokens in kind and have no direct cash effect.
    """
    if not price:
        return ZERO

    absolute_amount = abs(amount or ZERO)
    total_fees = fees or ZERO

    if transaction_type == TransactionType.BUY:
        return -(absolute_amount * price + total_fees)
    if transaction_type == TransactionType.SELL:
        return absolute_amount * price - total_fees
    return ZERO


def validate_amount(transaction_type: TransactionType, amount: Decimal) -> bool:
    """BUY/DEPOSIT need a positive amount, SELL/WITHDRAWAL a negative one, SWAP either."""
    if transaction_type in POSITIVE_TYPES:
        return amount > 0
    if transaction_type in NEGATIVE_TYPES:
        return amount < 0
    return True


__all__ = [
    "NEGATIVE_TYPES",
    "POSITIVE_TYPES",
    "PRICE_REQUIRED_TYPES",
    "TransactionType",
    "calculate_cash_flow",
    "validate_amount",
]
