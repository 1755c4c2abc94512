from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol


@dataclass(frozen=True)
class TokenDetails:
    ref_id: str
    symbol: str
    name: str | None = None
    logo_url: str | None = None
    decimals: int | None = None
    current_price: Decimal | None = None
    market_cap: Decimal | None = None


@dataclass(frozen=True)
class TokenPrice:
    ref_id: str
    price: Decimal
    currency: str = "usd"
    market_cap: Decimal | None = None
    price_change_24h: Decimal | None = None
    last_updated_at: datetime | None = None


class PricingError(RuntimeError):
    """Raised by pricing providers when market data cannot be fetched."""


class PricingProvider(Protocol):
    """Lookup interface for token metadata and current market prices.

    ``get_token_prices`` omits ids the provider has no price for; callers treat
    a missing entry as "no enrichment" rather than an error.
    """

    def get_token_details(self, ref_id: str) -> TokenDetails: ...

    def get_token_prices(self, ref_ids: Iterable[str]) -> dict[str, TokenPrice]: ...


__all__ = ["PricingError", "PricingProvider", "TokenDetails", "TokenPrice"]
