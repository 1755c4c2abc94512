from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from db.repositories import PortfolioRepository
from domain.ownership import verify_portfolio_ownership
from domain.portfolio import Portfolio
from domain.validation import parse, unwrap
from query.pagination import PaginatedResponse, resolve_page
from query.schema import build_query_spec, create_entity_query_schema

logger = logging.getLogger(__name__)

PORTFOLIO_SORTABLE_COLUMNS = ("name", "created_at", "updated_at")
PortfolioQuery = create_entity_query_schema("PortfolioQuery", PORTFOLIO_SORTABLE_COLUMNS, {"is_default": bool})


class PortfolioService:
    def __init__(self, portfolios: PortfolioRepository) -> None:
        self._portfolios = portfolios

    def create(self, user_id: UUID, raw: Mapping[str, Any]) -> Portfolio:
        portfolio = self._portfolios.add(Portfolio.create(raw, user_id, user_id))
        logger.info("Created portfolio %s for user %s", portfolio.id, user_id)
        return portfolio

    def get(self, portfolio_id: UUID, user_id: UUID) -> Portfolio:
        return verify_portfolio_ownership(self._portfolios.find_by_id(portfolio_id), user_id)

    def update(self, portfolio_id: UUID, user_id: UUID, patch: Mapping[str, Any]) -> Portfolio:
        existing = self.get(portfolio_id, user_id)
        return self._portfolios.update(portfolio_id, Portfolio.update(existing, patch, user_id))

    def delete(self, portfolio_id: UUID, user_id: UUID) -> Portfolio:
        existing = self.get(portfolio_id, user_id)
        deleted = self._portfolios.update(portfolio_id, Portfolio.mark_deleted(existing, user_id))
        logger.info("Deleted portfolio %s", portfolio_id)
        return deleted

    def list(self, user_id: UUID, raw_query: Mapping[str, Any] | None = None) -> PaginatedResponse[Portfolio]:
        query = unwrap(parse(PortfolioQuery, raw_query or {}), remarks="Invalid portfolio query")
        spec = build_query_spec(
            query,
            alias=self._portfolios.alias,
            search_columns=("name", "description"),
            allowed_columns=PORTFOLIO_SORTABLE_COLUMNS,
            user_id=user_id,
        )
        page, limit = resolve_page(query.page, query.limit)
        return self._portfolios.paginated_list(spec, page=page, limit=limit)


__all__ = ["PortfolioQuery", "PortfolioService"]
