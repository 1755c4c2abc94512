import pytest

from db.repositories import PortfolioRepository
from domain.errors import AccessDenied, NotFound
from services.portfolios import PortfolioService
from tests.constants import OTHER_USER_ID, USER_ID


@pytest.fixture()
def service(portfolio_repo: PortfolioRepository) -> PortfolioService:
    return PortfolioService(portfolio_repo)


def test_crud(service: PortfolioService) -> None:
    portfolio = service.create(USER_ID, {"name": "Trading", "description": "Short term"})

    assert service.get(portfolio.id, USER_ID) == portfolio
    with pytest.raises(AccessDenied):
        service.get(portfolio.id, OTHER_USER_ID)

    updated = service.update(portfolio.id, USER_ID, {"is_default": True})
    assert updated.is_default
    assert updated.name == "Trading"

    service.delete(portfolio.id, USER_ID)
    with pytest.raises(NotFound):
        service.get(portfolio.id, USER_ID)


def test_list_only_returns_own_portfolios(service: PortfolioService) -> None:
    service.create(USER_ID, {"name": "Trading"})
    service.create(USER_ID, {"name": "Long term", "is_default": True})
    service.create(OTHER_USER_ID, {"name": "Foreign"})

    page = service.list(USER_ID, {"order_by": "name"})
    assert [portfolio.name for portfolio in page.items] == ["Long term", "Trading"]

    defaults = service.list(USER_ID, {"is_default": True})
    assert [portfolio.name for portfolio in defaults.items] == ["Long term"]
