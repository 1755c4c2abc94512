from __future__ import annotations

import re
from enum import StrEnum
from typing import Annotated, Any, Mapping, Self
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, HttpUrl, TypeAdapter

from .base_types import AuditableModel, PortfolioId, audit_fields, utc_now
from .errors import ERR_TOKEN_INVALID_SYMBOL
from .validation import check, non_null, parse, parse_patch, unwrap

TOKEN_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{1,20}$")

_HTTP_URL = TypeAdapter(HttpUrl)

STABLECOINS = frozenset({"USDT", "USDC", "BUSD", "DAI", "TUSD", "USDP", "FRAX", "EURS", "EURT"})
EURO_STABLECOINS = frozenset({"EURS", "EURT"})


def validate_token_symbol(symbol: str) -> bool:
    return TOKEN_SYMBOL_PATTERN.fullmatch(symbol.upper()) is not None


def _normalize_symbol(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _check_symbol(value: str) -> str:
    if not validate_token_symbol(value):
        raise ValueError(ERR_TOKEN_INVALID_SYMBOL)
    return value


def _check_url(value: str) -> str:
    _HTTP_URL.validate_python(value)
    return value


TokenSymbol = Annotated[str, BeforeValidator(_normalize_symbol), AfterValidator(_check_symbol)]
LogoUrl = Annotated[str, AfterValidator(_check_url)]


class TokenCategory(StrEnum):
    STABLECOIN = "stablecoin"
    CRYPTOCURRENCY = "cryptocurrency"


def is_stablecoin_symbol(symbol: str) -> bool:
    return symbol.upper() in STABLECOINS


def stablecoin_peg_for(symbol: str) -> str | None:
    if not is_stablecoin_symbol(symbol):
        return None
    if symbol.upper() in EURO_STABLECOINS:
        return "EUR"
    return "USD"


def classify_token(symbol: str) -> TokenCategory:
    if is_stablecoin_symbol(symbol):
        return TokenCategory.STABLECOIN
    return TokenCategory.CRYPTOCURRENCY


class TokenInfo(BaseModel):
    """Token metadata shared by holdings and transactions."""

    ref_id: str | None = Field(default=None, min_length=1, max_length=100)
    token_symbol: TokenSymbol
    token_name: str | None = Field(default=None, max_length=100)
    token_decimals: int = Field(default=18, ge=0, le=18)
    token_logo_url: LogoUrl | None = None


class PortfolioHoldingCreate(TokenInfo):
    model_config = ConfigDict(extra="forbid")

    portfolio_id: UUID
    is_stablecoin: bool = False
    stablecoin_peg: str | None = Field(default=None, max_length=10)


class PortfolioHoldingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ref_id: str | None = Field(default=None, min_length=1, max_length=100)
    token_symbol: TokenSymbol | None = None
    token_name: str | None = Field(default=None, max_length=100)
    token_decimals: int | None = Field(default=None, ge=0, le=18)
    token_logo_url: LogoUrl | None = None
    is_stablecoin: bool | None = None
    stablecoin_peg: str | None = Field(default=None, max_length=10)


class PortfolioHolding(AuditableModel):
    """A token registered as trackable inside a portfolio (metadata only, no balance)."""

    portfolio_id: PortfolioId
    ref_id: str | None = None
    token_symbol: str
    token_name: str | None = None
    token_decimals: int = 18
    token_logo_url: str | None = None
    is_stablecoin: bool = False
    stablecoin_peg: str | None = None

    @classmethod
    def create(cls, token_data: Mapping[str, Any], created_by_id: UUID) -> Self:
        data = unwrap(parse(PortfolioHoldingCreate, token_data), remarks="Portfolio holding creation failed")
        return cls.model_validate({**data.model_dump(), **audit_fields(created_by_id)})

    @classmethod
    def update(cls, existing: PortfolioHolding, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        """Only the patched fields are validated; the rest is trusted stored state."""
        result = check(
            parse_patch(PortfolioHoldingUpdate, patch),
            non_null("token_symbol", "token_decimals", "is_stablecoin"),
        )
        data = unwrap(result, remarks="Portfolio holding update failed")
        changes = data.model_dump(include=data.model_fields_set)
        return cls.model_validate(
            {**existing.model_dump(), **changes, "updated_at": utc_now(), "updated_by_id": updated_by_id}
        )

    @classmethod
    def mark_deleted(cls, existing: PortfolioHolding, deleted_by_id: UUID) -> Self:
        # Transactions referencing this symbol stay valid; only the registration is retired.
        return cls.model_validate({**existing.model_dump(), "deleted_at": utc_now(), "deleted_by_id": deleted_by_id})

    def is_stablecoin_holding(self) -> bool:
        return self.is_stablecoin

    def get_stablecoin_peg(self) -> str | None:
        return self.stablecoin_peg if self.is_stablecoin else None

    def get_token_identifier(self) -> str:
        return self.token_symbol.lower()

    def price_lookup_id(self) -> str:
        return self.ref_id or self.get_token_identifier()


__all__ = [
    "PortfolioHolding",
    "PortfolioHoldingCreate",
    "PortfolioHoldingUpdate",
    "TokenCategory",
    "TokenInfo",
    "classify_token",
    "is_stablecoin_symbol",
    "stablecoin_peg_for",
    "validate_token_symbol",
]
