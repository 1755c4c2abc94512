from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID

from db.repositories import PortfolioHoldingRepository, PortfolioRepository, TransactionRepository
from domain.errors import (
    ERR_PORTFOLIO_HOLDING_EXISTS,
    ERR_PORTFOLIO_HOLDING_NOT_FOUND,
    Conflict,
    ErrorLayer,
    NotFound,
)
from domain.ownership import verify_portfolio_ownership
from domain.portfolio_holding import PortfolioHolding, is_stablecoin_symbol, stablecoin_peg_for
from domain.pricing import PricingError, PricingProvider, TokenDetails
from domain.transaction import Transaction

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class HoldingMetrics:
    quantity: Decimal = Decimal(0)
    average_buy_price: Decimal | None = None
    total_cost_basis: Decimal | None = None
    first_purchase_date: datetime | None = None
    last_transaction_date: datetime | None = None


@dataclass(frozen=True)
class HoldingSummary:
    holding: PortfolioHolding
    metrics: HoldingMetrics
    current_price: Decimal | None = None
    current_value: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percentage: Decimal | None = None
    weight_percentage: Decimal | None = None


def calculate_holding_metrics(transactions: Iterable[Transaction]) -> HoldingMetrics:
    """Aggregate one token's live transactions.

    Quantity is the signed sum of amounts. The cost basis only counts priced
    inflows, so the average buy price is ``cost basis / quantity`` while the
    position is open.
    """
    quantity = Decimal(0)
    cost_basis = Decimal(0)
    first_purchase: datetime | None = None
    last_transaction: datetime | None = None

    for transaction in transactions:
        if not transaction.is_active():
            continue
        quantity += transaction.amount
        if transaction.amount > 0 and transaction.price:
            cost_basis += transaction.amount * transaction.price
            if first_purchase is None or transaction.timestamp < first_purchase:
                first_purchase = transaction.timestamp
        if last_transaction is None or transaction.timestamp > last_transaction:
            last_transaction = transaction.timestamp

    return HoldingMetrics(
        quantity=quantity,
        average_buy_price=cost_basis / quantity if quantity > 0 else None,
        total_cost_basis=cost_basis if cost_basis > 0 else None,
        first_purchase_date=first_purchase,
        last_transaction_date=last_transaction,
    )


def enrich_with_prices(summaries: list[HoldingSummary], prices: Mapping[str, Decimal]) -> list[HoldingSummary]:
    """Add market value, PnL and portfolio weight for holdings with a known price."""
    priced: list[HoldingSummary] = []
    for summary in summaries:
        price = prices.get(summary.holding.price_lookup_id())
        if price is None:
            priced.append(summary)
            continue
        current_value = summary.metrics.quantity * price
        cost_basis = summary.metrics.total_cost_basis
        pnl = current_value - cost_basis if cost_basis else None
        priced.append(
            replace(
                summary,
                current_price=price,
                current_value=current_value,
                pnl=pnl,
                pnl_percentage=pnl / cost_basis * HUNDRED if pnl is not None and cost_basis else None,
            )
        )

    total_value = sum((s.current_value for s in priced if s.current_value), start=Decimal(0))
    if total_value <= 0:
        return priced
    return [
        replace(summary, weight_percentage=summary.current_value / total_value * HUNDRED)
        if summary.current_value
        else summary
        for summary in priced
    ]


class HoldingService:
    def __init__(
        self,
        portfolios: PortfolioRepository,
        holdings: PortfolioHoldingRepository,
        transactions: TransactionRepository,
        pricing: PricingProvider | None = None,
    ) -> None:
        self._portfolios = portfolios
        self._holdings = holdings
        self._transactions = transactions
        self._pricing = pricing

    def register(self, portfolio_id: UUID, user_id: UUID, token_data: Mapping[str, Any]) -> PortfolioHolding:
        self._verify_portfolio(portfolio_id, user_id)
        holding = PortfolioHolding.create({**token_data, "portfolio_id": portfolio_id}, user_id)
        if self._holdings.find_one(portfolio_id=portfolio_id, token_symbol=holding.token_symbol) is not None:
            raise Conflict(ERR_PORTFOLIO_HOLDING_EXISTS, layer=ErrorLayer.APPLICATION)

        saved = self._holdings.add(holding)
        logger.info("Registered %s in portfolio %s", saved.token_symbol, portfolio_id)
        return saved

    def register_from_provider(self, portfolio_id: UUID, user_id: UUID, ref_id: str) -> PortfolioHolding:
        """Register a token using the provider's metadata; stablecoin fields come from the symbol."""
        if self._pricing is None:
            msg = "A pricing provider is required to register tokens by reference id"
            raise RuntimeError(msg)
        self._verify_portfolio(portfolio_id, user_id)
        details = self._pricing.get_token_details(ref_id)
        return self.register(portfolio_id, user_id, self._token_data(details))

    def remove(self, holding_id: UUID, user_id: UUID) -> PortfolioHolding:
        holding = self._holdings.find_by_id(holding_id)
        if holding is None:
            raise NotFound(ERR_PORTFOLIO_HOLDING_NOT_FOUND, layer=ErrorLayer.APPLICATION)
        self._verify_portfolio(holding.portfolio_id, user_id)

        removed = self._holdings.update(holding_id, PortfolioHolding.mark_deleted(holding, user_id))
        logger.info("Removed %s from portfolio %s", removed.token_symbol, removed.portfolio_id)
        return removed

    def list_holdings(self, portfolio_id: UUID, user_id: UUID, *, include_prices: bool = False) -> list[HoldingSummary]:
        self._verify_portfolio(portfolio_id, user_id)
        holdings = self._holdings.find_by_portfolio(portfolio_id)
        transactions = self._transactions.list_for_portfolio(portfolio_id, [h.token_symbol for h in holdings])

        by_symbol: dict[str, list[Transaction]] = {}
        for transaction in transactions:
            by_symbol.setdefault(transaction.token_symbol, []).append(transaction)

        summaries = [
            HoldingSummary(holding=holding, metrics=calculate_holding_metrics(by_symbol.get(holding.token_symbol, [])))
            for holding in holdings
        ]
        if include_prices and summaries:
            return enrich_with_prices(summaries, self._current_prices(holdings))
        return summaries

    def _current_prices(self, holdings: list[PortfolioHolding]) -> dict[str, Decimal]:
        if self._pricing is None:
            return {}
        lookup_ids = [holding.price_lookup_id() for holding in holdings]
        try:
            quotes = self._pricing.get_token_prices(lookup_ids)
        except PricingError as exc:
            logger.warning("Price enrichment skipped for %d holdings: %s", len(lookup_ids), exc)
            return {}
        return {ref_id: quote.price for ref_id, quote in quotes.items()}

    @staticmethod
    def _token_data(details: TokenDetails) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ref_id": details.ref_id,
            "token_symbol": details.symbol,
            "token_name": details.name,
            "token_logo_url": details.logo_url,
            "is_stablecoin": is_stablecoin_symbol(details.symbol),
            "stablecoin_peg": stablecoin_peg_for(details.symbol),
        }
        if details.decimals is not None:
            data["token_decimals"] = details.decimals
        return data

    def _verify_portfolio(self, portfolio_id: UUID, user_id: UUID) -> None:
        verify_portfolio_ownership(self._portfolios.find_by_id(portfolio_id), user_id)


__all__ = [
    "HoldingMetrics",
    "HoldingService",
    "HoldingSummary",
    "calculate_holding_metrics",
    "enrich_with_prices",
]
