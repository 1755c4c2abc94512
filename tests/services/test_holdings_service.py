from decimal import Decimal
from unittest.mock import Mock
from uuid import UUID

import pytest

from db.repositories import PortfolioHoldingRepository, PortfolioRepository, TransactionRepository
from domain.errors import AccessDenied, Conflict, ErrorLayer, NotFound
from domain.pricing import PricingError, TokenDetails, TokenPrice
from domain.transaction import Transaction
from services.coingecko_client import CoinGeckoClient
from services.holdings import HoldingService, calculate_holding_metrics
from tests.constants import BTC, ETH, FEB_1, JAN_1, MAR_1, OTHER_USER_ID, USER_ID


def _trade(portfolio_id: UUID, transaction_type: str, amount: str, price: str, timestamp=JAN_1) -> Transaction:
    raw = {
        "token_symbol": BTC,
        "amount": amount,
        "price": price,
        "transaction_type": transaction_type,
        "timestamp": timestamp,
    }
    return Transaction.create(portfolio_id, raw, USER_ID)


@pytest.fixture()
def pricing() -> Mock:
    return Mock()


@pytest.fixture()
def service(
    portfolio_repo: PortfolioRepository,
    holding_repo: PortfolioHoldingRepository,
    transaction_repo: TransactionRepository,
    pricing: Mock,
) -> HoldingService:
    return HoldingService(portfolio_repo, holding_repo, transaction_repo, pricing)


@pytest.fixture()
def btc_history(transaction_repo: TransactionRepository, portfolio_id: UUID) -> list[Transaction]:
    trades = [
        _trade(portfolio_id, "BUY", "1", "30000", JAN_1),
        _trade(portfolio_id, "BUY", "1", "40000", FEB_1),
        _trade(portfolio_id, "SELL", "-0.5", "50000", MAR_1),
    ]
    return [transaction_repo.add(trade) for trade in trades]


def test_metrics_from_buys_and_sells(btc_history: list[Transaction]) -> None:
    metrics = calculate_holding_metrics(btc_history)

    assert metrics.quantity == Decimal("1.5")
    assert metrics.total_cost_basis == Decimal("70000")
    assert metrics.average_buy_price == Decimal("70000") / Decimal("1.5")
    assert metrics.first_purchase_date == JAN_1
    assert metrics.last_transaction_date == MAR_1


def test_metrics_ignore_deleted_transactions(btc_history: list[Transaction]) -> None:
    deleted_sell = Transaction.mark_deleted(btc_history[2], USER_ID)

    metrics = calculate_holding_metrics([*btc_history[:2], deleted_sell])

    assert metrics.quantity == Decimal(2)
    assert metrics.last_transaction_date == FEB_1


def test_metrics_without_transactions() -> None:
    metrics = calculate_holding_metrics([])

    assert metrics.quantity == 0
    assert metrics.average_buy_price is None
    assert metrics.total_cost_basis is None
    assert metrics.first_purchase_date is None


def test_register_rejects_duplicates(service: HoldingService, portfolio_id: UUID) -> None:
    holding = service.register(portfolio_id, USER_ID, {"token_symbol": "btc"})
    assert holding.token_symbol == BTC

    with pytest.raises(Conflict) as exc_info:
        service.register(portfolio_id, USER_ID, {"token_symbol": BTC})
    assert exc_info.value.layer == ErrorLayer.APPLICATION


def test_register_requires_portfolio_owner(service: HoldingService, portfolio_id: UUID) -> None:
    with pytest.raises(AccessDenied):
        service.register(portfolio_id, OTHER_USER_ID, {"token_symbol": BTC})


def test_register_from_provider_classifies_stablecoins(
    service: HoldingService, pricing: Mock, portfolio_id: UUID
) -> None:
    pricing.get_token_details.return_value = TokenDetails(ref_id="tether", symbol="USDT", name="Tether", decimals=6)

    holding = service.register_from_provider(portfolio_id, USER_ID, "tether")

    pricing.get_token_details.assert_called_once_with("tether")
    assert holding.ref_id == "tether"
    assert holding.token_decimals == 6
    assert holding.is_stablecoin
    assert holding.stablecoin_peg == "USD"


def test_remove_holding(service: HoldingService, portfolio_id: UUID) -> None:
    holding = service.register(portfolio_id, USER_ID, {"token_symbol": ETH})

    removed = service.remove(holding.id, USER_ID)

    assert removed.deleted_at is not None
    assert service.list_holdings(portfolio_id, USER_ID) == []
    with pytest.raises(NotFound):
        service.remove(holding.id, USER_ID)


def test_list_holdings_with_prices(
    service: HoldingService, pricing: Mock, portfolio_id: UUID, btc_history: list[Transaction]
) -> None:
    service.register(portfolio_id, USER_ID, {"token_symbol": BTC})
    service.register(portfolio_id, USER_ID, {"token_symbol": ETH, "ref_id": "ethereum"})
    pricing.get_token_prices.return_value = {"btc": TokenPrice(ref_id="btc", price=Decimal("60000"))}

    summaries = service.list_holdings(portfolio_id, USER_ID, include_prices=True)

    pricing.get_token_prices.assert_called_once_with(["btc", "ethereum"])
    btc, eth = summaries
    assert btc.current_value == Decimal("90000")
    assert btc.pnl == Decimal("20000")
    assert btc.pnl_percentage == Decimal("20000") / Decimal("70000") * 100
    assert btc.weight_percentage == Decimal(100)
    assert eth.metrics.quantity == 0
    assert eth.current_price is None
    assert eth.weight_percentage is None


def test_list_holdings_survives_pricing_errors(
    service: HoldingService, pricing: Mock, portfolio_id: UUID, btc_history: list[Transaction]
) -> None:
    service.register(portfolio_id, USER_ID, {"token_symbol": BTC})
    pricing.get_token_prices.side_effect = PricingError("offline")

    [summary] = service.list_holdings(portfolio_id, USER_ID, include_prices=True)

    assert summary.metrics.quantity == Decimal("1.5")
    assert summary.current_price is None
    assert summary.pnl is None


def test_list_holdings_without_prices_skips_provider(
    service: HoldingService, pricing: Mock, portfolio_id: UUID
) -> None:
    service.register(portfolio_id, USER_ID, {"token_symbol": BTC})

    [summary] = service.list_holdings(portfolio_id, USER_ID)

    pricing.get_token_prices.assert_not_called()
    assert summary.current_value is None


def test_list_holdings_survives_malformed_quotes(
    portfolio_repo: PortfolioRepository,
    holding_repo: PortfolioHoldingRepository,
    transaction_repo: TransactionRepository,
    portfolio_id: UUID,
) -> None:
    session = Mock()
    response = Mock()
    response.json.return_value = {"btc": {"usd": "n/a"}}
    response.raise_for_status.return_value = None
    session.request.return_value = response
    service = HoldingService(portfolio_repo, holding_repo, transaction_repo, CoinGeckoClient(session=session))
    service.register(portfolio_id, USER_ID, {"token_symbol": BTC})

    [summary] = service.list_holdings(portfolio_id, USER_ID, include_prices=True)

    assert summary.current_price is None
    assert summary.weight_percentage is None
