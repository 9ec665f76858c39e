"""CoinGecko public price endpoints used as a price fallback."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config.settings import Settings
from ..utils.http_client import get_session

logger = logging.getLogger(__name__)


class CoinGeckoError(RuntimeError):
    """Raised when a CoinGecko request fails outright."""


class CoinGeckoClient:
    def __init__(self, base_url: Optional[str] = None) -> None:
        self._base_url = (base_url or Settings.COINGECKO_BASE_URL).rstrip("/")

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            session = await get_session()
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    logger.warning(f"CoinGecko request {path} returned {response.status}")
                    return None
                return await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError) as exc:
            raise CoinGeckoError(f"CoinGecko request failed: {exc}") from exc

    async def price_by_contract(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Return ``{"price", "symbol"}`` for a Solana contract, or None if unknown."""
        data = await self._get_json(f"/coins/solana/contract/{mint_address}")
        if not isinstance(data, dict):
            return None
        usd = (data.get("market_data") or {}).get("current_price", {}).get("usd")
        if not usd:
            return None
        symbol = data.get("symbol")
        return {"price": float(usd), "symbol": symbol.upper() if isinstance(symbol, str) else None}

    async def simple_price(self, coin_id: str) -> Optional[float]:
        """USD price for a CoinGecko coin id, or None if unavailable."""
        data = await self._get_json("/simple/price", {"ids": coin_id, "vs_currencies": "usd"})
        if not isinstance(data, dict):
            return None
        usd = (data.get(coin_id) or {}).get("usd")
        return float(usd) if usd else None
