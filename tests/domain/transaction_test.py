from datetime import timedelta
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from domain.base_types import utc_now
from domain.cash_flow import TransactionType
from domain.errors import ValidationFailed
from domain.transaction import Transaction
from tests.constants import FEB_1, JAN_1, OTHER_USER_ID, USER_ID

PORTFOLIO_ID = uuid4()


def _raw(**overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "token_symbol": "btc",
        "token_name": "Bitcoin",
        "amount": Decimal("0.5"),
        "price": Decimal("40000"),
        "fees": Decimal("10"),
        "transaction_type": "BUY",
        "timestamp": JAN_1,
    }
    raw.update(overrides)
    return raw


def test_create_derives_cash_flow_and_audit_fields() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID, portfolio_value_before=Decimal("1000"))

    assert transaction.portfolio_id == PORTFOLIO_ID
    assert transaction.token_symbol == "BTC"
    assert transaction.transaction_type == TransactionType.BUY
    assert transaction.cash_flow == Decimal("-20010")
    assert transaction.portfolio_value_before == Decimal("1000")
    assert transaction.created_by_id == USER_ID
    assert transaction.updated_by_id == USER_ID
    assert transaction.created_at == transaction.updated_at
    assert transaction.is_active()


def test_create_rejects_caller_supplied_cash_flow() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(cash_flow=Decimal("5")), USER_ID)

    assert "cash_flow" in exc_info.value.fields()


def test_create_requires_price_for_trades() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(price=None), USER_ID)

    assert exc_info.value.fields() == {"price"}
    assert exc_info.value.remarks == "[DOMAIN] Transaction creation failed"


def test_deposit_without_price_is_valid() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(transaction_type="DEPOSIT", price=None, fees=0), USER_ID)

    assert transaction.cash_flow == 0
    assert transaction.total_value == 0


def test_create_rejects_amount_sign_mismatch() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(transaction_type="SELL", amount=Decimal("1")), USER_ID)

    assert exc_info.value.fields() == {"amount"}


def test_external_id_is_only_allowed_for_swaps() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(external_id="swap-1"), USER_ID)
    assert exc_info.value.fields() == {"external_id"}

    swap = Transaction.create(
        PORTFOLIO_ID, _raw(transaction_type="SWAP", amount=Decimal("-1"), external_id="swap-1"), USER_ID
    )
    assert swap.external_id == "swap-1"
    assert swap.cash_flow == 0
    assert swap.is_swap_transaction()


def test_swap_requires_external_id() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(transaction_type="SWAP", amount=Decimal("1")), USER_ID)

    assert exc_info.value.fields() == {"external_id"}


def test_create_rejects_future_timestamp() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(timestamp=utc_now() + timedelta(minutes=5)), USER_ID)

    assert exc_info.value.fields() == {"timestamp"}


def test_create_collects_every_violation() -> None:
    raw = _raw(transaction_type="SELL", amount=Decimal("2"), price=None, external_id="x")

    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, raw, USER_ID)

    assert exc_info.value.fields() == {"price", "amount", "external_id"}


def test_create_rejects_invalid_token_data() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.create(PORTFOLIO_ID, _raw(token_symbol="BTC-USD", token_decimals=19, fees=Decimal("-1")), USER_ID)

    assert exc_info.value.fields() == {"token_symbol", "token_decimals", "fees"}


def test_validate_transaction_date() -> None:
    now = utc_now()

    assert Transaction.validate_transaction_date(now)
    assert Transaction.validate_transaction_date(now - timedelta(days=30))
    assert not Transaction.validate_transaction_date(now + timedelta(seconds=1))


def test_update_recomputes_cash_flow_when_amount_changes() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    updated = Transaction.update(transaction, {"amount": Decimal("1")}, OTHER_USER_ID)

    assert updated.id == transaction.id
    assert updated.amount == Decimal("1")
    assert updated.cash_flow == Decimal("-40010")
    assert updated.updated_by_id == OTHER_USER_ID
    assert updated.created_by_id == USER_ID
    assert transaction.amount == Decimal("0.5")


def test_update_keeps_cash_flow_for_unrelated_fields() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    updated = Transaction.update(transaction, {"notes": "DCA", "timestamp": FEB_1}, USER_ID)

    assert updated.notes == "DCA"
    assert updated.timestamp == FEB_1
    assert updated.cash_flow == transaction.cash_flow


def test_update_rechecks_merged_state() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.update(transaction, {"amount": Decimal("-1")}, USER_ID)

    assert exc_info.value.fields() == {"amount"}


def test_update_rejects_empty_and_unknown_patches() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    with pytest.raises(ValidationFailed):
        Transaction.update(transaction, {}, USER_ID)
    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.update(transaction, {"transaction_type": "SELL"}, USER_ID)
    assert exc_info.value.fields() == {"transaction_type"}


def test_update_rejects_null_for_required_fields() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    with pytest.raises(ValidationFailed) as exc_info:
        Transaction.update(transaction, {"amount": None}, USER_ID)

    assert exc_info.value.fields() == {"amount"}


def test_mark_deleted_only_stamps_deletion_fields() -> None:
    transaction = Transaction.create(PORTFOLIO_ID, _raw(), USER_ID)

    deleted = Transaction.mark_deleted(transaction, OTHER_USER_ID)

    assert not deleted.is_active()
    assert deleted.deleted_by_id == OTHER_USER_ID
    assert deleted.amount == transaction.amount
    assert deleted.price == transaction.price
    assert deleted.cash_flow == transaction.cash_flow
    assert transaction.is_active()


def test_derived_values() -> None:
    transaction = Transaction.create(
        PORTFOLIO_ID,
        _raw(transaction_type="SELL", amount=Decimal("-2"), price=Decimal("100"), fees=Decimal("1")),
        USER_ID,
        portfolio_value_before=Decimal("500"),
    )

    assert transaction.absolute_amount == Decimal("2")
    assert transaction.total_value == Decimal("200")
    assert transaction.total_cost == Decimal("201")
    assert transaction.portfolio_impact is None
    assert transaction.token_identifier == "btc"
    assert transaction.is_negative_transaction()
    assert not transaction.is_positive_transaction()
    assert transaction.has_valid_amount()

    after = transaction.with_portfolio_value_after(Decimal("350"))
    assert after.portfolio_impact == Decimal("-150")
    assert transaction.portfolio_value_after is None
