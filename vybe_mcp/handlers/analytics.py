"""Single-call Solana analytics handlers."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..utils.decorators import upstream_errors
from .context import HandlerContext
from .formatting import (
    NOT_AVAILABLE,
    fmt_date,
    fmt_number,
    fmt_price,
    fmt_timestamp,
    fmt_usd,
    numbered,
    text_result,
)
from .params import (
    ProgramParams,
    ProgramUsersParams,
    TokenLimitParams,
    TokenOhlcParams,
    TokenParams,
    WalletHoldingsParams,
    WalletParams,
    WhaleMovementParams,
)

logger = logging.getLogger(__name__)


def rows(payload: Any) -> List[Dict[str, Any]]:
    """The ``data`` list of a Vybe response, or an empty list."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


def record(payload: Any) -> Dict[str, Any]:
    """The ``data`` object of a Vybe response, or an empty dict."""
    data = payload.get("data") if isinstance(payload, dict) else None
    return data if isinstance(data, dict) else {}


def nft_value(nft: Dict[str, Any]) -> float:
    return float(nft.get("valueUsd") or nft.get("usdPrice") or 0)


@upstream_errors("Error fetching Solana tokens: ")
async def wallet_tokens(ctx: HandlerContext, params: WalletHoldingsParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_wallet_tokens(
        params.address,
        includeNoPriceBalance=params.include_no_price,
        limit=params.limit,
        sortByDesc="valueUsd",
    )
    tokens = rows(payload)
    lines = [
        f"{t.get('symbol') or t.get('name') or 'Token'}: {fmt_number(t.get('amount'), '0')} "
        f"({fmt_usd(t.get('valueUsd'), 'No valuation')})"
        for t in tokens
    ]
    text = f"Tokens in wallet {params.address}:{numbered(lines, 'No tokens found')}"
    return text_result(text, {"address": params.address, "tokens": tokens})


@upstream_errors("Error fetching Solana NFTs: ")
async def wallet_nfts(ctx: HandlerContext, params: WalletHoldingsParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_wallet_nfts(
        params.address,
        includeNoPriceBalance=params.include_no_price,
        limit=params.limit,
        sortByDesc="valueUsd",
    )
    nfts = rows(payload)
    lines = [f"{n.get('name') or 'NFT'} ({fmt_usd(nft_value(n), 'No valuation')})" for n in nfts]
    text = f"NFTs in wallet {params.address}:{numbered(lines, 'No NFTs found')}"
    return text_result(text, {"address": params.address, "nfts": nfts})


@upstream_errors("Error fetching performance data: ")
async def wallet_pnl(ctx: HandlerContext, params: WalletParams) -> Dict[str, Any]:
    data = record(await ctx.vybe.get_wallet_pnl(params.address))
    performance = data.get("performance") or {}
    trades = data.get("trades") or {}

    pnl_percent = performance.get("totalPnlPercent")
    text = (
        f"PnL Analysis for {params.address}:\n"
        f"Total PnL: {fmt_usd(performance.get('totalPnlUsd'))}\n"
        f"PnL Percentage: {f'{pnl_percent}%' if pnl_percent else NOT_AVAILABLE}\n"
        f"Total Trades: {trades.get('count') or 0}\n"
        f"Profitable Trades: {trades.get('profitableCount') or 0}\n"
        f"Win/Loss Ratio: {trades.get('winLossRatio') or NOT_AVAILABLE}"
    )
    return text_result(text, {"address": params.address, "performance": performance, "trades": trades})


@upstream_errors("Error fetching token details: ")
async def token_details(ctx: HandlerContext, params: TokenParams) -> Dict[str, Any]:
    token = record(await ctx.vybe.get_token_details(params.mint_address))

    price = fmt_price(token["price"], NOT_AVAILABLE) if token.get("price") else NOT_AVAILABLE
    supply = fmt_number(token["supply"], NOT_AVAILABLE) if token.get("supply") else NOT_AVAILABLE
    change = token.get("priceChange24h")
    text = (
        f"Token Details for {params.mint_address}:\n"
        f"Name: {token.get('name') or NOT_AVAILABLE}\n"
        f"Symbol: {token.get('symbol') or NOT_AVAILABLE}\n"
        f"Price: {price}\n"
        f"Total Supply: {supply}\n"
        f"24h Change: {f'{change}%' if change else NOT_AVAILABLE}\n"
        f"24h Volume: {fmt_usd(token.get('volume24h'))}"
    )
    return text_result(text, {"mint_address": params.mint_address, "token": token})


@upstream_errors("Error fetching historical data: ")
async def token_ohlc(ctx: HandlerContext, params: TokenOhlcParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_token_ohlc(
        params.mint_address, resolution=params.resolution, limit=params.limit
    )
    candles = rows(payload)
    lines = "".join(
        f"\n{fmt_date(c.get('time'))}: Open {fmt_price(c.get('open'))}, "
        f"High {fmt_price(c.get('high'))}, Low {fmt_price(c.get('low'))}, "
        f"Close {fmt_price(c.get('close'))}"
        for c in candles
    )
    if not lines:
        lines = "\nNo OHLC data available"
    text = f"OHLC data for token (resolution: {params.resolution}):{lines}"
    return text_result(
        text,
        {"mint_address": params.mint_address, "resolution": params.resolution, "candles": candles},
    )


@upstream_errors("Error fetching holder data: ")
async def token_holders(ctx: HandlerContext, params: TokenLimitParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_top_token_holders(params.mint_address, limit=params.limit)
    holders = rows(payload)

    def describe(holder: Dict[str, Any]) -> str:
        share = holder.get("percentage")
        share_text = f" ({fmt_number(float(share) * 100)}%)" if share else ""
        return f"{holder.get('owner') or 'Unknown'}: {fmt_number(holder.get('amount'))}{share_text}"

    lines = [describe(h) for h in holders]
    text = f"Top {params.limit} token holders:{numbered(lines, 'No holder data available')}"
    return text_result(text, {"mint_address": params.mint_address, "holders": holders})


@upstream_errors("Error fetching program details: ")
async def program_details(ctx: HandlerContext, params: ProgramParams) -> Dict[str, Any]:
    program = record(await ctx.vybe.get_program_details(params.program_id))

    labels = program.get("labels")
    text = (
        f"Program Details for {params.program_id}:\n"
        f"Name: {program.get('name') or NOT_AVAILABLE}\n"
        f"Type: {program.get('type') or NOT_AVAILABLE}\n"
        f"Labels: {', '.join(labels) if labels else NOT_AVAILABLE}\n"
        f"Entity: {program.get('entityName') or NOT_AVAILABLE}\n"
        f"Description: {program.get('description') or NOT_AVAILABLE}"
    )
    return text_result(text, {"program_id": params.program_id, "program": program})


@upstream_errors("Error fetching user data: ")
async def program_users(ctx: HandlerContext, params: ProgramUsersParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_program_active_users(
        params.program_id, days=params.days, limit=params.limit, sortByDesc="instructions"
    )
    users = rows(payload)
    lines = [
        f"{u.get('walletAddress') or u.get('user')}: "
        f"{u.get('instructions') or u.get('instructionCount') or 0} instructions, "
        f"{u.get('transactions') or u.get('transactionCount') or 0} transactions"
        for u in users
    ]
    text = (
        f"Top {params.limit} active users for program (last {params.days} days):"
        f"{numbered(lines, 'No user data available')}"
    )
    return text_result(text, {"program_id": params.program_id, "users": users})


def _describe_transfer(transfer: Dict[str, Any], with_symbol: bool = False) -> str:
    usd = transfer.get("transferUsdValue")
    usd_text = f" (${fmt_number(usd)})" if usd else ""
    symbol = f" {transfer.get('mintSymbol') or 'token'}" if with_symbol else ""
    return (
        f"{fmt_timestamp(transfer.get('blockTime'))}: {transfer.get('senderAddress')} → "
        f"{transfer.get('receiverAddress')}, {fmt_number(transfer.get('transferAmount'))}"
        f"{symbol}{usd_text}"
    )


@upstream_errors("Error fetching transfer data: ")
async def token_transfers(ctx: HandlerContext, params: TokenLimitParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_token_transfers(
        mintAddress=params.mint_address, limit=params.limit, sortByDesc="blockTime"
    )
    transfers = rows(payload)
    lines = [_describe_transfer(t) for t in transfers]
    text = f"Recent token transfers:{numbered(lines, 'No transfer data available')}"
    return text_result(text, {"mint_address": params.mint_address, "transfers": transfers})


@upstream_errors("Error fetching trade data: ")
async def token_trades(ctx: HandlerContext, params: TokenLimitParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_token_trades(
        mintAddress=params.mint_address, limit=params.limit, sortByDesc="blockTime"
    )
    trades = rows(payload)

    def describe(trade: Dict[str, Any]) -> str:
        side = "Sell" if trade.get("side") == "sell" else "Buy"
        price = f" at {fmt_price(trade.get('price'))}" if trade.get("price") is not None else ""
        usd = f" (${fmt_number(trade.get('usdValue'))})" if trade.get("usdValue") is not None else ""
        symbol = f" {trade['baseSymbol']}" if trade.get("baseSymbol") else ""
        return (
            f"{fmt_timestamp(trade.get('blockTime'))}: {side} of "
            f"{fmt_number(trade.get('baseAmount'))}{symbol}{price}{usd}"
        )

    lines = [describe(t) for t in trades]
    text = f"Recent token trades:{numbered(lines, 'No trade data available')}"
    return text_result(text, {"mint_address": params.mint_address, "trades": trades})


@upstream_errors("Error fetching whale movements: ")
async def whale_movements(ctx: HandlerContext, params: WhaleMovementParams) -> Dict[str, Any]:
    payload = await ctx.vybe.get_token_transfers(
        minUsdAmount=params.min_usd_amount, limit=params.limit, sortByDesc="blockTime"
    )
    transfers = rows(payload)
    lines = [_describe_transfer(t, with_symbol=True) for t in transfers]
    text = (
        f"Whale movements (min. ${fmt_number(params.min_usd_amount)}):"
        f"{numbered(lines, 'No whale movements available')}"
    )
    return text_result(text, {"min_usd_amount": params.min_usd_amount, "transfers": transfers})
