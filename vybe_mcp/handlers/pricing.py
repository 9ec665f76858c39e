"""Token price lookup with an ordered fallback chain.

Each strategy either finds a price, declines (nothing to look up with), or
records an error. The chain stops at the first price found. If nothing is
found, the most recent error is reported.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..utils.decorators import upstream_errors
from .analytics import record
from .context import HandlerContext
from .formatting import as_number, text_result
from .params import TokenPriceParams

logger = logging.getLogger(__name__)

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

PYTH_FEED_IDS = {
    "SOL": "H6ARHf6YXhGYeQfUzQNGk6rDNnLBQKrenN712K4AQJEG",
    "USDC": "Gnt27xtC473ZT2Mw5u8wZ68Z3gULkSTb5DuxJy7eJotD",
}

COINGECKO_ID_MAP = {
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "BONK": "bonk",
    "JUP": "jupiter-aggregator",
    "PYTH": "pyth-network",
    "WIF": "dogwifhat",
}


@dataclass
class PriceLookup:
    found: bool
    value: Optional[float] = None
    error: Optional[str] = None
    symbol: Optional[str] = None  # symbol learned while looking up, if any
    soft: bool = False  # error is only a "nothing to look up" note


NOT_FOUND = PriceLookup(found=False)


@dataclass
class PriceQuery:
    mint_address: Optional[str] = None
    symbol: Optional[str] = None

    def __post_init__(self) -> None:
        if self.mint_address == WRAPPED_SOL_MINT and not self.symbol:
            self.symbol = "SOL"

    @property
    def upper_symbol(self) -> Optional[str]:
        return self.symbol.upper() if self.symbol else None


class PriceStrategy(ABC):
    name = "price"

    @abstractmethod
    async def lookup(self, ctx: HandlerContext, query: PriceQuery) -> PriceLookup:
        ...


class VybeTokenDetailsPrice(PriceStrategy):
    name = "vybe_token_details"

    async def lookup(self, ctx: HandlerContext, query: PriceQuery) -> PriceLookup:
        if not query.mint_address:
            return NOT_FOUND
        try:
            token = record(await ctx.vybe.get_token_details(query.mint_address))
        except Exception as exc:
            return PriceLookup(found=False, error=str(exc))

        price = as_number(token.get("price"))
        symbol = token.get("symbol") or None
        if price:
            return PriceLookup(found=True, value=price, symbol=symbol or query.mint_address)
        return PriceLookup(found=False, symbol=symbol)


class CoinGeckoContractPrice(PriceStrategy):
    name = "coingecko_contract"

    async def lookup(self, ctx: HandlerContext, query: PriceQuery) -> PriceLookup:
        if not query.mint_address or ctx.coingecko is None:
            return NOT_FOUND
        try:
            quote = await ctx.coingecko.price_by_contract(query.mint_address)
        except Exception as exc:
            return PriceLookup(found=False, error=str(exc))
        if not quote:
            return NOT_FOUND
        return PriceLookup(found=True, value=quote["price"], symbol=quote.get("symbol"))


class CoinGeckoSymbolPrice(PriceStrategy):
    name = "coingecko_symbol"

    async def lookup(self, ctx: HandlerContext, query: PriceQuery) -> PriceLookup:
        coin_id = COINGECKO_ID_MAP.get(query.upper_symbol or "")
        if coin_id is None or ctx.coingecko is None:
            return NOT_FOUND
        try:
            price = await ctx.coingecko.simple_price(coin_id)
        except Exception as exc:
            return PriceLookup(found=False, error=str(exc))
        if price is None:
            return NOT_FOUND
        return PriceLookup(found=True, value=price)


class PythPrice(PriceStrategy):
    """Pyth oracle price through Vybe; SOL and USDC use fixed feeds."""

    name = "pyth"

    async def _feed_id(self, ctx: HandlerContext, symbol: str) -> Optional[str]:
        if symbol in PYTH_FEED_IDS:
            return PYTH_FEED_IDS[symbol]
        accounts: List[Dict[str, Any]] = (await ctx.vybe.get_pyth_accounts()).get("data") or []
        for account in accounts:
            if isinstance(account, dict) and str(account.get("symbol") or "").upper() == symbol:
                return account.get("priceFeedId")
        return None

    async def lookup(self, ctx: HandlerContext, query: PriceQuery) -> PriceLookup:
        symbol = query.upper_symbol
        if not symbol:
            return NOT_FOUND
        try:
            feed_id = await self._feed_id(ctx, symbol)
            if not feed_id:
                return PriceLookup(
                    found=False,
                    error=f"No Pyth price feed identified for symbol {query.symbol}",
                    soft=True,
                )
            price = as_number(record(await ctx.vybe.get_pyth_price(feed_id)).get("price"))
        except Exception as exc:
            return PriceLookup(found=False, error=str(exc))
        if not price:
            return NOT_FOUND
        return PriceLookup(found=True, value=price)


DEFAULT_PRICE_STRATEGIES: Sequence[PriceStrategy] = (
    VybeTokenDetailsPrice(),
    CoinGeckoContractPrice(),
    CoinGeckoSymbolPrice(),
    PythPrice(),
)


class PriceNotFoundError(LookupError):
    pass


async def resolve_price(
    ctx: HandlerContext,
    query: PriceQuery,
    strategies: Sequence[PriceStrategy] = DEFAULT_PRICE_STRATEGIES,
) -> PriceLookup:
    """Run strategies in order; return the first hit or raise ``PriceNotFoundError``."""
    last_error: Optional[str] = None
    for strategy in strategies:
        result = await strategy.lookup(ctx, query)
        if result.symbol and not result.found:
            query.symbol = result.symbol
        if result.found:
            logger.debug(f"Price for {query.mint_address or query.symbol} found via {strategy.name}")
            return PriceLookup(
                found=True, value=result.value, symbol=result.symbol or query.symbol
            )
        if result.error:
            logger.warning(f"Price strategy {strategy.name} failed: {result.error}")
            if not (result.soft and last_error):
                last_error = result.error

    raise PriceNotFoundError(
        last_error or f"Could not determine price for {query.mint_address or query.symbol}"
    )


@upstream_errors("Error fetching price: ")
async def token_price(ctx: HandlerContext, params: TokenPriceParams) -> Dict[str, Any]:
    query = PriceQuery(mint_address=params.mint_address, symbol=params.symbol)
    result = await resolve_price(ctx, query)

    label = result.symbol or params.mint_address or params.symbol
    price = float(result.value or 0)
    text = f"Current price of {label} is ${price:.6f} USD."
    return text_result(
        text,
        {"mint_address": params.mint_address, "symbol": label, "price_usd": price},
    )
