from __future__ import annotations

from uuid import UUID

from .errors import ERR_PORTFOLIO_ACCESS_DENIED, ERR_PORTFOLIO_NOT_FOUND, AccessDenied, ErrorLayer, NotFound
from .portfolio import Portfolio


def verify_ownership(owner_id: UUID, requester_id: UUID, *, message: str = "Access denied") -> None:
    """Raise AccessDenied unless the requester owns the aggregate.

    Kept apart from existence checks so callers never conflate "missing" with "not yours".
    """
    if owner_id != requester_id:
        raise AccessDenied(message, layer=ErrorLayer.DOMAIN)


def has_ownership(owner_id: UUID | None, requester_id: UUID) -> bool:
    return owner_id is not None and owner_id == requester_id


def verify_portfolio_ownership(portfolio: Portfolio | None, user_id: UUID) -> Portfolio:
    if portfolio is None or not portfolio.is_active():
        raise NotFound(ERR_PORTFOLIO_NOT_FOUND, layer=ErrorLayer.DOMAIN)
    verify_ownership(portfolio.user_id, user_id, message=ERR_PORTFOLIO_ACCESS_DENIED)
    return portfolio


__all__ = ["has_ownership", "verify_ownership", "verify_portfolio_ownership"]
