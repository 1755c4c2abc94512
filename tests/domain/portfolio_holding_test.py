from typing import Any
from uuid import uuid4

import pytest

from domain.errors import ValidationFailed
from domain.portfolio_holding import (
    PortfolioHolding,
    TokenCategory,
    classify_token,
    is_stablecoin_symbol,
    stablecoin_peg_for,
    validate_token_symbol,
)
from tests.constants import OTHER_USER_ID, USER_ID

PORTFOLIO_ID = uuid4()


def _token_data(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "portfolio_id": PORTFOLIO_ID,
        "ref_id": "ethereum",
        "token_symbol": "eth",
        "token_name": "Ethereum",
        "token_logo_url": "https://assets.coingecko.com/coins/images/279/large/ethereum.png",
    }
    data.update(overrides)
    return data


def test_create_uppercases_symbol_and_defaults() -> None:
    holding = PortfolioHolding.create(_token_data(), USER_ID)

    assert holding.token_symbol == "ETH"
    assert holding.token_decimals == 18
    assert holding.is_stablecoin is False
    assert holding.get_token_identifier() == "eth"
    assert holding.price_lookup_id() == "ethereum"
    assert holding.created_by_id == USER_ID


def test_price_lookup_falls_back_to_symbol() -> None:
    holding = PortfolioHolding.create(_token_data(ref_id=None), USER_ID)

    assert holding.price_lookup_id() == "eth"


@pytest.mark.parametrize("symbol", ["", "ETH-USD", "A" * 21, "ÉTH"])
def test_create_rejects_invalid_symbols(symbol: str) -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        PortfolioHolding.create(_token_data(token_symbol=symbol), USER_ID)

    assert exc_info.value.fields() == {"token_symbol"}


def test_create_rejects_bad_metadata() -> None:
    raw = _token_data(token_logo_url="not a url", token_decimals=-1, stablecoin_peg="X" * 11)

    with pytest.raises(ValidationFailed) as exc_info:
        PortfolioHolding.create(raw, USER_ID)

    assert exc_info.value.fields() == {"token_logo_url", "token_decimals", "stablecoin_peg"}


def test_validate_token_symbol() -> None:
    assert validate_token_symbol("btc")
    assert validate_token_symbol("1INCH")
    assert not validate_token_symbol("BTC USD")
    assert not validate_token_symbol("")


def test_update_validates_only_patched_fields() -> None:
    holding = PortfolioHolding.create(_token_data(), USER_ID)

    updated = PortfolioHolding.update(holding, {"token_name": "Ether", "is_stablecoin": False}, OTHER_USER_ID)

    assert updated.id == holding.id
    assert updated.token_name == "Ether"
    assert updated.token_symbol == "ETH"
    assert updated.updated_by_id == OTHER_USER_ID


def test_update_rejects_empty_patch_and_null_symbol() -> None:
    holding = PortfolioHolding.create(_token_data(), USER_ID)

    with pytest.raises(ValidationFailed):
        PortfolioHolding.update(holding, {}, USER_ID)
    with pytest.raises(ValidationFailed) as exc_info:
        PortfolioHolding.update(holding, {"token_symbol": None}, USER_ID)
    assert exc_info.value.fields() == {"token_symbol"}


def test_mark_deleted() -> None:
    holding = PortfolioHolding.create(_token_data(), USER_ID)

    deleted = PortfolioHolding.mark_deleted(holding, USER_ID)

    assert not deleted.is_active()
    assert deleted.token_symbol == holding.token_symbol


def test_stablecoin_peg_only_when_flagged() -> None:
    flagged = PortfolioHolding.create(
        _token_data(token_symbol="USDC", is_stablecoin=True, stablecoin_peg="USD"), USER_ID
    )
    unflagged = PortfolioHolding.create(_token_data(token_symbol="XYZ", stablecoin_peg="USD"), USER_ID)

    assert flagged.is_stablecoin_holding()
    assert flagged.get_stablecoin_peg() == "USD"
    assert not unflagged.is_stablecoin_holding()
    assert unflagged.get_stablecoin_peg() is None


def test_token_classification() -> None:
    assert is_stablecoin_symbol("usdt")
    assert not is_stablecoin_symbol("BTC")
    assert stablecoin_peg_for("EURS") == "EUR"
    assert stablecoin_peg_for("DAI") == "USD"
    assert stablecoin_peg_for("ETH") is None
    assert classify_token("USDC") == TokenCategory.STABLECOIN
    assert classify_token("ETH") == TokenCategory.CRYPTOCURRENCY
