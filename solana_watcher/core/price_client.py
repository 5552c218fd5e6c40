from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from solana_watcher.constants import WSOL_MINT
from solana_watcher.core.models import TokenPriceInfo
from solana_watcher.utils.helpers import to_num

if TYPE_CHECKING:
    from solana_watcher.config import Settings
    from solana_watcher.core.cache import WatcherCaches


def _optional_num(value: Any) -> float | None:
    return None if value is None else to_num(value)


def parse_price_payload(mint: str, data: Any) -> TokenPriceInfo | None:
    """
    Read one mint's quote from a Jupiter price response.

    Handles both the wrapped form {"data": {mint: {"price": "0.12"}}} and the
    flat v3 form {mint: {"usdPrice": 0.12, "priceChange24h": -3.1}}.
    """
    if not isinstance(data, dict):
        return None

    quotes = data.get("data", data)
    entry = quotes.get(mint) if isinstance(quotes, dict) else None
    if not isinstance(entry, dict):
        return None

    raw_price = entry.get("usdPrice", entry.get("price"))
    if raw_price is None:
        return None
    price = to_num(raw_price)
    if price <= 0:
        return None

    return TokenPriceInfo(
        price_usd=price,
        price_change_24h=_optional_num(entry.get("priceChange24h")),
        market_cap=_optional_num(entry.get("marketCap", entry.get("mcap"))),
        volume_24h=_optional_num(entry.get("volume24h")),
        supply=_optional_num(entry.get("supply", entry.get("circSupply"))),
    )


class JupiterPriceClient:
    """On-demand Jupiter price lookups behind the shared TTL price cache."""

    def __init__(
        self,
        settings: Settings,
        caches: WatcherCaches,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.caches = caches
        self.logger = logging.getLogger("solana_watcher.price")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.API_TIMEOUT_SEC, connect=5.0),
            limits=httpx.Limits(max_keepalive_connections=5),
        )

    async def get_price(self, mint: str) -> TokenPriceInfo | None:
        """Cached quote for a mint; refreshed once the entry is older than the TTL."""
        cached = self.caches.prices.get(mint)
        if cached is not None:
            return cached
        return await self.caches.price_flight.run(mint, lambda: self._fetch_and_cache(mint))

    async def _fetch_and_cache(self, mint: str) -> TokenPriceInfo | None:
        info = await self._fetch(mint)
        # Failures are not cached so the next run retries
        if info is not None:
            self.caches.prices.set(mint, info)
        return info

    async def _fetch(self, mint: str) -> TokenPriceInfo | None:
        try:
            response = await self._client.get(self.settings.PRICE_API_URL, params={"ids": mint})
            response.raise_for_status()
            info = parse_price_payload(mint, response.json())
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Price lookup failed for %s: %s", mint[:8], e)
            return None

        if info is None:
            self.logger.debug("No price quote for %s", mint[:8])
        return info

    async def get_sol_price(self) -> float:
        """SOL/USD from the same price service, with a configured fallback."""
        info = await self.get_price(str(WSOL_MINT))
        if info is None or info.price_usd <= 0:
            return self.settings.SOL_PRICE_FALLBACK_USD
        return info.price_usd

    async def close(self) -> None:
        await self._client.aclose()
