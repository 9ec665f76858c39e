"""Handlers that fan out to several upstream calls and combine the results.

Fan-out uses ``asyncio.gather`` without ``return_exceptions``: the first
failing call fails the whole method, so a partial aggregate is never
returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Sequence

from ..utils.decorators import upstream_errors
from .analytics import nft_value, rows
from .context import HandlerContext
from .formatting import fmt_number, fmt_price, numbered, text_result
from .params import CrossAnalysisParams, NoParams, ProgramMetricsParams, WalletParams

logger = logging.getLogger(__name__)

COMMON_TOKEN_LIMIT = 10


def _sum_field(items: Sequence[Dict[str, Any]], key: str) -> float:
    return sum(float(item.get(key) or 0) for item in items)


def _as_count(value: float):
    return int(value) if float(value).is_integer() else value


@upstream_errors("Error fetching Solana data: ")
async def wallet_overview(ctx: HandlerContext, params: WalletParams) -> Dict[str, Any]:
    tokens_payload, nfts_payload = await asyncio.gather(
        ctx.vybe.get_wallet_tokens(params.address, includeNoPriceBalance=True),
        ctx.vybe.get_wallet_nfts(params.address, includeNoPriceBalance=True),
    )
    tokens = rows(tokens_payload)
    nfts = rows(nfts_payload)

    total_usd = _sum_field(tokens, "valueUsd") + sum(nft_value(n) for n in nfts)
    overview = {
        "address": params.address,
        "total_usd_value": total_usd,
        "token_count": len(tokens),
        "nft_count": len(nfts),
    }
    text = (
        f"Wallet Overview for {params.address}:\n"
        f"Total USD Value: ${fmt_number(total_usd)}\n"
        f"Number of Tokens: {len(tokens)}\n"
        f"Number of NFTs: {len(nfts)}"
    )
    return text_result(text, overview)


@upstream_errors("Error fetching program metrics: ")
async def program_metrics(ctx: HandlerContext, params: ProgramMetricsParams) -> Dict[str, Any]:
    instructions, transactions, users = await asyncio.gather(
        ctx.vybe.get_program_instructions_ts(params.program_id, range=params.range),
        ctx.vybe.get_program_transactions_ts(params.program_id, range=params.range),
        ctx.vybe.get_program_active_users_ts(params.program_id, range=params.range),
    )
    metrics = {
        "program_id": params.program_id,
        "range": params.range,
        "instructions": _as_count(_sum_field(rows(instructions), "count")),
        "transactions": _as_count(_sum_field(rows(transactions), "count")),
        "active_users": _as_count(_sum_field(rows(users), "count")),
    }
    text = (
        f"Program Metrics for {params.program_id} (last {params.range}):\n"
        f"Instructions: {fmt_number(metrics['instructions'])}\n"
        f"Transactions: {fmt_number(metrics['transactions'])}\n"
        f"Active Users: {fmt_number(metrics['active_users'])}"
    )
    return text_result(text, metrics)


def merge_holdings(
    addresses: Sequence[str], token_lists: Sequence[List[Dict[str, Any]]]
) -> List[Dict[str, Any]]:
    """Tokens held by more than one wallet, most widely held first.

    Ties keep first-seen order. At most ``COMMON_TOKEN_LIMIT`` entries are
    returned.
    """
    by_mint: Dict[str, Dict[str, Any]] = {}
    for address, tokens in zip(addresses, token_lists):
        for token in tokens:
            mint = token.get("mintAddress")
            if not mint:
                continue
            entry = by_mint.setdefault(
                mint, {"mint_address": mint, "symbol": token.get("symbol") or "Unknown", "holders": {}}
            )
            entry["holders"][address] = {
                "amount": token.get("amount"),
                "usd_value": token.get("valueUsd") or 0,
            }

    common = [entry for entry in by_mint.values() if len(entry["holders"]) > 1]
    common.sort(key=lambda entry: len(entry["holders"]), reverse=True)
    return common[:COMMON_TOKEN_LIMIT]


@upstream_errors("Error in cross analysis: ")
async def cross_analysis(ctx: HandlerContext, params: CrossAnalysisParams) -> Dict[str, Any]:
    addresses = params.addresses
    payloads = await asyncio.gather(
        *(ctx.vybe.get_wallet_tokens(address, includeNoPriceBalance=True) for address in addresses)
    )
    common = merge_holdings(addresses, [rows(p) for p in payloads])

    labels = {address: f"Wallet {index}" for index, address in enumerate(addresses, start=1)}
    sections = []
    for index, entry in enumerate(common, start=1):
        section = f"\n{index}. {entry['symbol']} ({len(entry['holders'])}/{len(addresses)} wallets):"
        for address, holding in entry["holders"].items():
            section += (
                f"\n   - {labels[address]}: {fmt_number(holding['amount'])} "
                f"(${fmt_number(holding['usd_value'])})"
            )
        sections.append(section)
    body = "".join(sections) or "\nNo common tokens found between addresses"

    text = f"Cross-analysis of {len(addresses)} addresses:\n\nCommon tokens:{body}"
    return text_result(text, {"address_count": len(addresses), "common_tokens": common})


@upstream_errors("Error fetching market sentiment: ")
async def market_sentiment(ctx: HandlerContext, params: NoParams) -> Dict[str, Any]:
    programs_payload, tokens_payload = await asyncio.gather(
        ctx.vybe.get_program_ranking(sortByDesc="userCount24h", limit=5),
        ctx.vybe.get_tokens_summary(sortByDesc="price", limit=5),
    )
    programs = rows(programs_payload)
    tokens = rows(tokens_payload)

    program_lines = [
        f"{p.get('name') or p.get('programId')}: {p.get('userCount24h') or 0} active users"
        for p in programs
    ]

    def describe_token(token: Dict[str, Any]) -> str:
        change = token.get("priceChange24h")
        if change is None:
            change = token.get("price1d")
        change_text = f"{change}%" if isinstance(change, (int, float)) else "N/A"
        return (
            f"{token.get('symbol') or token.get('mintAddress')}: "
            f"{fmt_price(token.get('price'))} ({change_text} 24h)"
        )

    text = (
        "Solana Market Sentiment:\n\n"
        f"TOP PROGRAMS BY ACTIVITY:{numbered(program_lines, 'No program data available')}\n\n"
        f"TOP TOKENS BY PRICE:{numbered([describe_token(t) for t in tokens], 'No token data available')}"
    )
    return text_result(text, {"top_programs": programs, "top_tokens": tokens})


@upstream_errors("Error fetching network activity: ")
async def network_activity(ctx: HandlerContext, params: NoParams) -> Dict[str, Any]:
    programs = rows(await ctx.vybe.get_program_ranking(limit=10, sortByDesc="instructionCount24h"))

    activity = {
        "instructions": _as_count(_sum_field(programs, "instructionCount24h")),
        "transactions": _as_count(_sum_field(programs, "transactionCount24h")),
        "active_users": _as_count(_sum_field(programs, "userCount24h")),
        "program_count": len(programs),
    }
    if programs:
        note = f"Note: This data represents activity from the {len(programs)} most active programs."
    else:
        note = "Note: No program data available."
    text = (
        "Solana Network Activity (last 24h):\n\n"
        f"Instructions: {fmt_number(activity['instructions'])}\n"
        f"Transactions: {fmt_number(activity['transactions'])}\n"
        f"Active Users: {fmt_number(activity['active_users'])}\n\n"
        f"{note}"
    )
    return text_result(text, activity)
