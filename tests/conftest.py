from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from db.repositories import (
    AssetRepository,
    FinancialGoalRepository,
    PortfolioHoldingRepository,
    PortfolioRepository,
    TransactionRepository,
)
from domain.portfolio import Portfolio
from tests.constants import USER_ID

engine: Engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def portfolio_repo(test_session: Session) -> PortfolioRepository:
    return PortfolioRepository(test_session)


@pytest.fixture()
def transaction_repo(test_session: Session) -> TransactionRepository:
    return TransactionRepository(test_session)


@pytest.fixture()
def holding_repo(test_session: Session) -> PortfolioHoldingRepository:
    return PortfolioHoldingRepository(test_session)


@pytest.fixture()
def asset_repo(test_session: Session) -> AssetRepository:
    return AssetRepository(test_session)


@pytest.fixture()
def goal_repo(test_session: Session) -> FinancialGoalRepository:
    return FinancialGoalRepository(test_session)


@pytest.fixture()
def portfolio(portfolio_repo: PortfolioRepository) -> Portfolio:
    return portfolio_repo.add(Portfolio.create({"name": "Main"}, USER_ID, USER_ID))


@pytest.fixture()
def portfolio_id(portfolio: Portfolio) -> UUID:
    return portfolio.id
