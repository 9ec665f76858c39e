"""Conversation-aware generation through OpenAI and Anthropic."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..core.errors import UpstreamError
from ..core.llm_provider import LLMProvider
from .context import HandlerContext
from .formatting import text_result
from .params import AnthropicGenerateParams, ClearContextParams, GenerateParams, OpenAIGenerateParams

logger = logging.getLogger(__name__)


async def _generate(
    ctx: HandlerContext,
    provider: Optional[LLMProvider],
    provider_name: str,
    params: GenerateParams,
    model: str,
) -> Dict[str, Any]:
    """Shared flow: read history, call the provider with retry, store the truncated exchange."""
    try:
        if provider is None:
            raise RuntimeError(f"{provider_name} provider is not configured")

        prior = await ctx.sessions.append_turn(params.session_id, params.prompt)
        messages = [*prior, {"role": "user", "content": params.prompt}]

        async def call() -> str:
            return await provider.complete_chat(messages, model=model, max_tokens=params.max_tokens)

        reply = await ctx.retry.run(call, label=f"{provider_name} request")
    except Exception as exc:
        logger.exception(f"Error in {provider_name}")
        raise UpstreamError(f"{provider_name} error: {exc}") from exc

    await ctx.sessions.save(
        params.session_id, [*messages, {"role": "assistant", "content": reply}]
    )
    return text_result(reply)


async def openai_generate(ctx: HandlerContext, params: OpenAIGenerateParams) -> Dict[str, Any]:
    return await _generate(ctx, ctx.openai, "OpenAI", params, params.model)


async def anthropic_generate(
    ctx: HandlerContext, params: AnthropicGenerateParams
) -> Dict[str, Any]:
    return await _generate(ctx, ctx.anthropic, "Anthropic", params, params.model)


async def clear_context(ctx: HandlerContext, params: ClearContextParams) -> Dict[str, Any]:
    existed = await ctx.sessions.clear(params.session_id)
    return text_result("Context cleared successfully", {"session_id": params.session_id, "existed": existed})
