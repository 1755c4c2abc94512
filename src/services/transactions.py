from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from db.repositories import PortfolioRepository, TransactionRepository
from domain.cash_flow import TransactionType
from domain.errors import ERR_TRANSACTION_NOT_FOUND, ErrorLayer, NotFound
from domain.ownership import verify_portfolio_ownership
from domain.transaction import Transaction
from domain.validation import parse, unwrap
from query.pagination import PaginatedResponse, resolve_page
from query.schema import build_query_spec, create_entity_query_schema

logger = logging.getLogger(__name__)

# Decimal columns are stored as text and would sort lexically, so they are not sortable.
TRANSACTION_SORTABLE_COLUMNS = ("timestamp", "token_symbol", "transaction_type", "created_at")
TRANSACTION_SEARCH_COLUMNS = ("token_symbol", "token_name", "notes")
TransactionQuery = create_entity_query_schema(
    "TransactionQuery",
    TRANSACTION_SORTABLE_COLUMNS,
    {"token_symbol": str, "transaction_type": TransactionType, "external_id": str},
)


class TransactionService:
    """Ledger use cases. Every call checks that the requester owns the portfolio."""

    def __init__(self, portfolios: PortfolioRepository, transactions: TransactionRepository) -> None:
        self._portfolios = portfolios
        self._transactions = transactions

    def create(
        self,
        portfolio_id: UUID,
        user_id: UUID,
        raw: Mapping[str, Any],
        portfolio_value_before: Decimal | None = None,
    ) -> Transaction:
        self._verify_portfolio(portfolio_id, user_id)
        transaction = Transaction.create(portfolio_id, raw, user_id, portfolio_value_before)
        saved = self._transactions.add(transaction)
        logger.info(
            "Recorded %s of %s %s in portfolio %s",
            saved.transaction_type,
            saved.amount,
            saved.token_symbol,
            portfolio_id,
        )
        return saved

    def get(self, transaction_id: UUID, user_id: UUID) -> Transaction:
        transaction = self._transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFound(ERR_TRANSACTION_NOT_FOUND, layer=ErrorLayer.APPLICATION)
        self._verify_portfolio(transaction.portfolio_id, user_id)
        return transaction

    def update(self, transaction_id: UUID, user_id: UUID, patch: Mapping[str, Any]) -> Transaction:
        existing = self.get(transaction_id, user_id)
        return self._transactions.update(transaction_id, Transaction.update(existing, patch, user_id))

    def delete(self, transaction_id: UUID, user_id: UUID) -> Transaction:
        existing = self.get(transaction_id, user_id)
        deleted = self._transactions.update(transaction_id, Transaction.mark_deleted(existing, user_id))
        logger.info("Deleted transaction %s", transaction_id)
        return deleted

    def list(
        self, portfolio_id: UUID, user_id: UUID, raw_query: Mapping[str, Any] | None = None
    ) -> PaginatedResponse[Transaction]:
        self._verify_portfolio(portfolio_id, user_id)
        query = unwrap(parse(TransactionQuery, raw_query or {}), remarks="Invalid transaction query")
        spec = build_query_spec(
            query,
            alias=self._transactions.alias,
            search_columns=TRANSACTION_SEARCH_COLUMNS,
            allowed_columns=TRANSACTION_SORTABLE_COLUMNS,
            portfolio_id=portfolio_id,
        )
        page, limit = resolve_page(query.page, query.limit)
        return self._transactions.paginated_list(spec, page=page, limit=limit)

    def _verify_portfolio(self, portfolio_id: UUID, user_id: UUID) -> None:
        verify_portfolio_ownership(self._portfolios.find_by_id(portfolio_id), user_id)


__all__ = ["TransactionQuery", "TransactionService"]
