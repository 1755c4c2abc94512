from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class AuditMixin:
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_by_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)


class PortfolioOrm(AuditMixin, Base):
    __tablename__ = "portfolios"

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class TransactionOrm(AuditMixin, Base):
    __tablename__ = "transactions"

    portfolio_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("portfolios.id"), nullable=False, index=True)
    ref_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    token_symbol: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    token_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    token_decimals: Mapped[int] = mapped_column(Integer, default=18, nullable=False)
    token_logo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    price: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    cash_flow: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    fees: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    portfolio_value_before: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    portfolio_value_after: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)


class PortfolioHoldingOrm(AuditMixin, Base):
    __tablename__ = "portfolio_holdings"
    # Unique among live rows only, so a removed token can be registered again.
    __table_args__ = (
        Index(
            "uq_holding_portfolio_symbol",
            "portfolio_id",
            "token_symbol",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    portfolio_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("portfolios.id"), nullable=False, index=True)
    ref_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    token_symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    token_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    token_decimals: Mapped[int] = mapped_column(Integer, default=18, nullable=False)
    token_logo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    is_stablecoin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    stablecoin_peg: Mapped[str | None] = mapped_column(String(10), nullable=True)


class AssetOrm(AuditMixin, Base):
    __tablename__ = "assets"

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_value: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    asset_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Only the live target is loaded; a cleared target keeps its row with deleted_at set.
    target: Mapped["AssetTargetOrm | None"] = relationship(
        primaryjoin="and_(AssetOrm.id == AssetTargetOrm.asset_id, AssetTargetOrm.deleted_at.is_(None))",
        uselist=False,
        lazy="selectin",
    )


class AssetTargetOrm(AuditMixin, Base):
    __tablename__ = "asset_targets"
    __table_args__ = (
        Index(
            "uq_asset_target_asset",
            "asset_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    asset_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("assets.id"), nullable=False)
    target_value: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class FinancialGoalOrm(AuditMixin, Base):
    __tablename__ = "financial_goals"

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
