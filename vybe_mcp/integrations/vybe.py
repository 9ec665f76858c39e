"""Vybe Network analytics API client."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config.settings import Settings
from ..utils.http_client import get_session

logger = logging.getLogger(__name__)


class VybeError(RuntimeError):
    """Raised when the Vybe API returns an error or malformed response."""


def _encode_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop unset values and render the rest as query-string scalars."""
    encoded: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


class VybeClient:
    """Async client for the Vybe REST API.

    Every method returns the decoded JSON body; list endpoints put their
    rows under ``data``. Failures raise ``VybeError`` naming the path.
    """

    def __init__(self, *, api_key: Optional[str] = None, base_url: Optional[str] = None) -> None:
        self._api_key = api_key if api_key is not None else Settings.VYBE_API_KEY
        self._base_url = (base_url or Settings.VYBE_BASE_URL).rstrip("/")

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self._api_key:
            raise VybeError(f"Vybe API request failed for path {path}: VYBE_API_KEY is not set")

        headers = {"X-API-Key": self._api_key, "Content-Type": "application/json"}
        url = f"{self._base_url}{path}"

        try:
            session = await get_session()
            async with session.get(url, params=_encode_params(params), headers=headers) as response:
                if response.status == 204:
                    return {}
                if response.status >= 400:
                    body = await response.text()
                    raise VybeError(
                        f"Vybe API request failed for path {path}: "
                        f"API Error: {response.status} {response.reason} - {body}"
                    )
                payload = await response.json(content_type=None)
        except VybeError as exc:
            logger.error(str(exc))
            raise
        except (aiohttp.ClientError, json.JSONDecodeError) as exc:
            logger.error(f"Vybe API request failed for path {path}: {exc}")
            raise VybeError(f"Vybe API request failed for path {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise VybeError(f"Vybe API request failed for path {path}: unexpected response format")
        return payload

    # Accounts

    async def get_wallet_tokens(self, owner: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/account/token-balance/{owner}", params)

    async def get_wallet_nfts(self, owner: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/account/nft-balance/{owner}", params)

    async def get_wallet_pnl(self, owner: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/account/pnl/{owner}", params)

    # Tokens

    async def get_token_details(self, mint_address: str) -> Dict[str, Any]:
        return await self._request(f"/token/{mint_address}")

    async def get_top_token_holders(self, mint_address: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/token/{mint_address}/top-holders", params)

    async def get_token_ohlc(self, mint_address: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/price/{mint_address}/token-ohlcv", params)

    async def get_token_transfers(self, **params: Any) -> Dict[str, Any]:
        return await self._request("/token/transfers", params)

    async def get_token_trades(self, **params: Any) -> Dict[str, Any]:
        return await self._request("/token/trades", params)

    async def get_tokens_summary(self, **params: Any) -> Dict[str, Any]:
        return await self._request("/tokens", params)

    # Programs

    async def get_program_details(self, program_id: str) -> Dict[str, Any]:
        return await self._request(f"/program/{program_id}")

    async def get_program_active_users(self, program_id: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/program/{program_id}/active-users", params)

    async def get_program_active_users_ts(self, program_id: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/program/{program_id}/active-users-ts", params)

    async def get_program_instructions_ts(self, program_id: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/program/{program_id}/instructions-count-ts", params)

    async def get_program_transactions_ts(self, program_id: str, **params: Any) -> Dict[str, Any]:
        return await self._request(f"/program/{program_id}/transactions-count-ts", params)

    async def get_program_ranking(self, **params: Any) -> Dict[str, Any]:
        return await self._request("/program/ranking", params)

    # Prices

    async def get_pyth_accounts(self, **params: Any) -> Dict[str, Any]:
        return await self._request("/price/pyth-accounts", params)

    async def get_pyth_price(self, price_feed_id: str) -> Dict[str, Any]:
        return await self._request(f"/price/{price_feed_id}/pyth-price")
