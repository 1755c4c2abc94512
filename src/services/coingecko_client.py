from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import requests

from domain.pricing import PricingError, TokenDetails, TokenPrice

DEFAULT_CURRENCY = "usd"


class CoinGeckoAPIError(PricingError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class CoinGeckoClient:
    """Minimal CoinGecko API client implementing the pricing provider port."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 10.0,
        currency: str = DEFAULT_CURRENCY,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            msg = "base_url must be provided"
            raise ValueError(msg)

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.currency = currency.lower()
        self._session = session or requests.Session()

    def ping(self) -> bool:
        payload = self._request("GET", "/ping")
        return "gecko_says" in payload

    def search(self, keyword: str) -> list[TokenDetails]:
        if not keyword:
            msg = "keyword must be provided"
            raise ValueError(msg)

        payload = self._request("GET", "/search", params={"query": keyword})
        coins = payload.get("coins") or []
        return [
            TokenDetails(
                ref_id=str(coin["id"]),
                symbol=str(coin.get("symbol", "")).upper(),
                name=coin.get("name"),
                logo_url=coin.get("large") or coin.get("thumb"),
            )
            for coin in coins
            if coin.get("id")
        ]

    def get_token_details(self, ref_id: str) -> TokenDetails:
        if not ref_id:
            msg = "ref_id must be provided"
            raise ValueError(msg)

        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "true",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "false",
        }
        payload = self._request("GET", f"/coins/{ref_id}", params=params)
        if not payload.get("id") or not payload.get("symbol"):
            raise CoinGeckoAPIError("CoinGecko coin payload missing id or symbol", payload=payload)

        image = payload.get("image") or {}
        platform = (payload.get("detail_platforms") or {}).get("ethereum") or {}
        market_data = payload.get("market_data") or {}
        return TokenDetails(
            ref_id=str(payload["id"]),
            symbol=str(payload["symbol"]).upper(),
            name=payload.get("name"),
            logo_url=image.get("large"),
            decimals=platform.get("decimal_place"),
            current_price=self._to_decimal((market_data.get("current_price") or {}).get(self.currency)),
            market_cap=self._to_decimal((market_data.get("market_cap") or {}).get(self.currency)),
        )

    def get_token_prices(self, ref_ids: Iterable[str]) -> dict[str, TokenPrice]:
        ids = sorted({ref_id for ref_id in ref_ids if ref_id})
        if not ids:
            return {}

        params = {
            "ids": ",".join(ids),
            "vs_currencies": self.currency,
            "include_market_cap": "true",
            "include_24hr_change": "true",
            "include_last_updated_at": "true",
        }
        payload = self._request("GET", "/simple/price", params=params)

        prices: dict[str, TokenPrice] = {}
        for ref_id, entry in payload.items():
            price = self._to_decimal(entry.get(self.currency)) if isinstance(entry, dict) else None
            if price is None:
                continue
            prices[ref_id] = TokenPrice(
                ref_id=ref_id,
                price=price,
                currency=self.currency,
                market_cap=self._to_decimal(entry.get(f"{self.currency}_market_cap")),
                price_change_24h=self._to_decimal(entry.get(f"{self.currency}_24h_change")),
                last_updated_at=self._to_datetime(entry.get("last_updated_at")),
            )
        return prices

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        try:
            response = self._session.request(method, url, params=params, timeout=self.timeout, headers=headers)
            response.raise_for_status()
        except requests.HTTPError as exc:
            message, error_payload = self._error_details(exc.response)
            status_code = getattr(exc.response, "status_code", None)
            raise CoinGeckoAPIError(message, status_code=status_code, payload=error_payload) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise CoinGeckoAPIError("CoinGecko API request failed", status_code=status_code) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise CoinGeckoAPIError("CoinGecko API returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise CoinGeckoAPIError("CoinGecko API returned unexpected payload type", payload=payload)
        return payload

    @staticmethod
    def _error_details(response: requests.Response | None) -> tuple[str, Any | None]:
        """CoinGecko reports errors as ``{"status": {"error_message": ...}}`` or ``{"error": ...}``."""
        if response is None:
            return "CoinGecko API request failed", None
        try:
            payload = response.json()
        except ValueError:
            return "CoinGecko API request failed", response.text

        if isinstance(payload, dict):
            status = payload.get("status")
            if isinstance(status, dict) and status.get("error_message"):
                return str(status["error_message"]), payload
            if payload.get("error"):
                return str(payload["error"]), payload
        return "CoinGecko API request failed", payload

    @staticmethod
    def _to_datetime(value: Any) -> datetime | None:
        if not value:
            return None
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise CoinGeckoAPIError(f"CoinGecko returned an invalid timestamp: {value!r}", payload=value) from exc

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise CoinGeckoAPIError(f"CoinGecko returned a non-numeric value: {value!r}", payload=value) from exc


__all__ = ["CoinGeckoAPIError", "CoinGeckoClient"]
