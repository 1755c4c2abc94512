from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Column, Select, TextClause, bindparam, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from db import models
from domain.asset import Asset, AssetTarget
from domain.base_types import AuditableModel, utc_now
from domain.errors import (
    ERR_COMMON_DATA_NOT_FOUND,
    ERR_PORTFOLIO_HOLDING_EXISTS,
    ConfigurationError,
    Conflict,
    ErrorLayer,
    NotFound,
)
from domain.financial_goal import FinancialGoal, plan_goal_activation
from domain.portfolio import Portfolio
from domain.portfolio_holding import PortfolioHolding
from domain.transaction import Transaction
from query.filter import QuerySpec, SafeQueryFilter
from query.pagination import PaginatedResponse, page_offset

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=AuditableModel)
M = TypeVar("M", bound=models.Base)


class SqlAlchemyRepository(Generic[E, M]):
    """Repository port over one ORM table.

    Listings execute a :class:`QuerySpec` as a ``text()`` predicate against an
    aliased entity. Every parameter is bound with the type of the column it is
    compared with, so UUIDs, timestamps and decimals are converted exactly as
    they are on insert.
    """

    orm_model: type[M]
    entity_type: type[E]
    alias: str

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, entity: E) -> E:
        orm_obj = self._to_orm(entity)
        self._session.add(orm_obj)
        self._commit()
        self._session.refresh(orm_obj)
        return self._to_domain(orm_obj)

    def update(self, entity_id: UUID, entity: E) -> E:
        orm_obj = self._get_live(entity_id)
        if orm_obj is None:
            raise NotFound(ERR_COMMON_DATA_NOT_FOUND, layer=ErrorLayer.INFRASTRUCTURE)
        self._apply(orm_obj, entity)
        self._commit()
        self._session.refresh(orm_obj)
        return self._to_domain(orm_obj)

    def remove(self, entity_id: UUID, deleted_by_id: UUID) -> bool:
        orm_obj = self._get_live(entity_id)
        if orm_obj is None:
            return False
        orm_obj.deleted_at = utc_now()
        orm_obj.deleted_by_id = deleted_by_id
        self._commit()
        return True

    def list(self, query: QuerySpec | None = None) -> list[E]:
        statement = self._select(query)
        return [self._to_domain(row) for row in self._session.scalars(statement)]

    def paginated_list(
        self, query: QuerySpec | None = None, *, page: int = 1, limit: int = 10
    ) -> PaginatedResponse[E]:
        spec = self._spec(query)
        entity = aliased(self.orm_model, name=spec.alias)
        count_statement = select(func.count()).select_from(entity).where(self._where(spec))
        total = self._session.scalar(count_statement) or 0

        statement = self._select(spec).limit(limit).offset(page_offset(page, limit))
        items = [self._to_domain(row) for row in self._session.scalars(statement)]
        return PaginatedResponse(items=items, total=total, page=page, limit=limit)

    def find_by_id(self, entity_id: UUID) -> E | None:
        orm_obj = self._get_live(entity_id)
        if orm_obj is None:
            return None
        return self._to_domain(orm_obj)

    def find_one(self, **conditions: Any) -> E | None:
        builder = SafeQueryFilter.create(alias=self.alias)
        for column, value in conditions.items():
            builder.equal(column, value)
        statement = self._select(builder.build()).limit(1)
        orm_obj = self._session.scalars(statement).first()
        if orm_obj is None:
            return None
        return self._to_domain(orm_obj)

    def exists(self, entity_id: UUID) -> bool:
        return self._get_live(entity_id) is not None

    def _get_live(self, entity_id: UUID) -> M | None:
        orm_obj = self._session.get(self.orm_model, entity_id)
        if orm_obj is None or orm_obj.deleted_at is not None:
            return None
        return orm_obj

    def _commit(self) -> None:
        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def _spec(self, query: QuerySpec | None) -> QuerySpec:
        spec = query or SafeQueryFilter.create(alias=self.alias).build()
        if spec.alias != self.alias:
            raise ConfigurationError(f"Query built for {spec.alias!r} cannot run on {self.alias!r}")
        return spec

    def _select(self, query: QuerySpec | None) -> Select[tuple[M]]:
        spec = self._spec(query)
        entity = aliased(self.orm_model, name=spec.alias)
        statement = select(entity).where(self._where(spec))
        if spec.order is not None:
            self._column(spec.order.column)
            statement = statement.order_by(text(spec.order_clause))
        return statement

    def _where(self, spec: QuerySpec) -> TextClause:
        params = [
            bindparam(
                param.name,
                param.value,
                type_=self._column(param.column).type if param.column else None,
                expanding=param.expanding,
            )
            for param in spec.params
        ]
        return text(spec.where_clause).bindparams(*params)

    def _column(self, name: str) -> Column[Any]:
        columns = self.orm_model.__table__.columns
        if name not in columns:
            raise ConfigurationError(f"{name} is not a column of {self.orm_model.__tablename__}")
        return columns[name]

    def _column_values(self, entity: AuditableModel, orm_model: type[models.Base] | None = None) -> dict[str, Any]:
        data = entity.model_dump()
        columns = (orm_model or self.orm_model).__table__.columns
        return {
            column.key: data[column.key].value if isinstance(data[column.key], Enum) else data[column.key]
            for column in columns
            if column.key in data
        }

    def _to_orm(self, entity: E) -> M:
        return self.orm_model(**self._column_values(entity))

    def _apply(self, orm_obj: M, entity: E) -> None:
        for key, value in self._column_values(entity).items():
            if key != "id":
                setattr(orm_obj, key, value)

    def _to_domain(self, orm_obj: M) -> E:
        return self.entity_type.from_persistence(orm_obj)


class PortfolioRepository(SqlAlchemyRepository[Portfolio, models.PortfolioOrm]):
    orm_model = models.PortfolioOrm
    entity_type = Portfolio
    alias = "portfolio"


class TransactionRepository(SqlAlchemyRepository[Transaction, models.TransactionOrm]):
    orm_model = models.TransactionOrm
    entity_type = Transaction
    # "transaction" is a reserved word in SQL.
    alias = "txn"

    def list_for_portfolio(self, portfolio_id: UUID, token_symbols: list[str] | None = None) -> list[Transaction]:
        builder = SafeQueryFilter.create(alias=self.alias).equal("portfolio_id", portfolio_id)
        builder.in_("token_symbol", token_symbols).order_by("timestamp")
        return self.list(builder.build())


class PortfolioHoldingRepository(SqlAlchemyRepository[PortfolioHolding, models.PortfolioHoldingOrm]):
    orm_model = models.PortfolioHoldingOrm
    entity_type = PortfolioHolding
    alias = "holding"

    def find_by_portfolio(self, portfolio_id: UUID) -> list[PortfolioHolding]:
        builder = SafeQueryFilter.create(alias=self.alias).equal("portfolio_id", portfolio_id).order_by("token_symbol")
        return self.list(builder.build())

    def add(self, entity: PortfolioHolding) -> PortfolioHolding:
        try:
            return super().add(entity)
        except IntegrityError as exc:
            logger.info("Rejected duplicate holding %s in portfolio %s", entity.token_symbol, entity.portfolio_id)
            raise Conflict(ERR_PORTFOLIO_HOLDING_EXISTS, layer=ErrorLayer.INFRASTRUCTURE) from exc


class AssetRepository(SqlAlchemyRepository[Asset, models.AssetOrm]):
    orm_model = models.AssetOrm
    entity_type = Asset
    alias = "asset"

    def _to_orm(self, entity: Asset) -> models.AssetOrm:
        orm_asset = super()._to_orm(entity)
        if entity.target is not None:
            orm_asset.target = self._target_orm(entity.target)
        return orm_asset

    def _apply(self, orm_obj: models.AssetOrm, entity: Asset) -> None:
        super()._apply(orm_obj, entity)
        current = orm_obj.target
        if current is not None and entity.target is not None and current.id == entity.target.id:
            for key, value in self._column_values(entity.target, models.AssetTargetOrm).items():
                if key != "id":
                    setattr(current, key, value)
            return

        if current is not None:
            self._retire_target(orm_obj, current, entity)
        if entity.target is not None:
            orm_obj.target = self._target_orm(entity.target)

    def _retire_target(self, orm_obj: models.AssetOrm, target: models.AssetTargetOrm, entity: Asset) -> None:
        """Soft delete the live target row and unload it from the asset."""
        target.deleted_at = entity.updated_at
        target.deleted_by_id = entity.updated_by_id
        # Expired rather than set to None, so asset_id on the retired row is never nulled.
        self._session.expire(orm_obj, ["target"])

    def _target_orm(self, target: AssetTarget) -> models.AssetTargetOrm:
        return models.AssetTargetOrm(**self._column_values(target, models.AssetTargetOrm))


class FinancialGoalRepository(SqlAlchemyRepository[FinancialGoal, models.FinancialGoalOrm]):
    orm_model = models.FinancialGoalOrm
    entity_type = FinancialGoal
    alias = "goal"

    def activate(self, goal_id: UUID, user_id: UUID) -> FinancialGoal:
        """Make ``goal_id`` the user's only active goal in one DB transaction."""
        statement = (
            select(models.FinancialGoalOrm)
            .where(models.FinancialGoalOrm.user_id == user_id, models.FinancialGoalOrm.deleted_at.is_(None))
            .with_for_update()
        )
        rows = {row.id: row for row in self._session.scalars(statement)}
        goals = [self._to_domain(row) for row in rows.values()]

        try:
            for changed in plan_goal_activation(goals, goal_id, user_id):
                self._apply(rows[changed.id], changed)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        activated = rows[goal_id]
        self._session.refresh(activated)
        return self._to_domain(activated)


__all__ = [
    "AssetRepository",
    "FinancialGoalRepository",
    "PortfolioHoldingRepository",
    "PortfolioRepository",
    "SqlAlchemyRepository",
    "TransactionRepository",
]
