import pytest

from vybe_mcp.core.errors import UpstreamError
from vybe_mcp.core.llm_provider import ProviderError
from vybe_mcp.handlers import generative
from vybe_mcp.handlers.params import (
    AnthropicGenerateParams,
    ClearContextParams,
    OpenAIGenerateParams,
)

from conftest import StubProvider


class TestGenerate:
    @pytest.mark.asyncio
    async def test_reply_and_stored_context(self, handler_context):
        result = await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="hello", session_id="s1")
        )

        assert result == {"content": [{"type": "text", "text": "openai reply"}]}
        assert await handler_context.sessions.get("s1") == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "openai reply"},
        ]

    @pytest.mark.asyncio
    async def test_prior_turns_are_sent(self, handler_context):
        handler_context.anthropic = StubProvider(["first", "second"])

        await generative.anthropic_generate(
            handler_context, AnthropicGenerateParams(prompt="one", session_id="s")
        )
        await generative.anthropic_generate(
            handler_context,
            AnthropicGenerateParams(prompt="two", session_id="s", max_tokens=50),
        )

        request = handler_context.anthropic.requests[-1]
        assert request["messages"] == [
            {"role": "user", "content": "one"},
            {"role": "assistant", "content": "first"},
            {"role": "user", "content": "two"},
        ]
        assert request["model"] == "claude-3-5-sonnet-20240620"
        assert request["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, handler_context):
        await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="a", session_id="s1")
        )
        await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="b", session_id="s2")
        )

        assert handler_context.openai.requests[-1]["messages"] == [{"role": "user", "content": "b"}]

    @pytest.mark.asyncio
    async def test_history_is_truncated(self, handler_context):
        for i in range(6):
            await generative.openai_generate(
                handler_context, OpenAIGenerateParams(prompt=f"p{i}", session_id="s")
            )

        stored = await handler_context.sessions.get("s")
        assert len(stored) == 10
        assert stored[0] == {"role": "user", "content": "p0"}
        assert stored[-2] == {"role": "user", "content": "p5"}

    @pytest.mark.asyncio
    async def test_retries_rate_limited_calls(self, handler_context, no_sleep):
        handler_context.openai = StubProvider([ProviderError("slow down", status=429), "finally"])

        result = await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="hi", session_id="s")
        )

        assert result["content"][0]["text"] == "finally"
        assert len(handler_context.openai.requests) == 2
        no_sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, handler_context):
        handler_context.openai = StubProvider([ProviderError("API Error: 429 Too Many Requests", status=429)])

        with pytest.raises(UpstreamError) as excinfo:
            await generative.openai_generate(
                handler_context, OpenAIGenerateParams(prompt="hi", session_id="s")
            )

        assert excinfo.value.message == "OpenAI error: API Error: 429 Too Many Requests"
        assert len(handler_context.openai.requests) == 3
        assert await handler_context.sessions.get("s") == []

    @pytest.mark.asyncio
    async def test_terminal_failure_is_not_retried(self, handler_context):
        handler_context.anthropic = StubProvider([ProviderError("invalid x-api-key", status=401)])

        with pytest.raises(UpstreamError, match="Anthropic error: invalid x-api-key"):
            await generative.anthropic_generate(
                handler_context, AnthropicGenerateParams(prompt="hi", session_id="s")
            )

        assert len(handler_context.anthropic.requests) == 1

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, handler_context):
        handler_context.openai = None

        with pytest.raises(UpstreamError, match="OpenAI error: OpenAI provider is not configured"):
            await generative.openai_generate(
                handler_context, OpenAIGenerateParams(prompt="hi", session_id="s")
            )


class TestClearContext:
    @pytest.mark.asyncio
    async def test_clear_then_fresh_session(self, handler_context):
        await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="remember me", session_id="s")
        )

        result = await generative.clear_context(handler_context, ClearContextParams(session_id="s"))
        assert result["content"][0]["text"] == "Context cleared successfully"
        assert result["data"] == {"session_id": "s", "existed": True}

        await generative.openai_generate(
            handler_context, OpenAIGenerateParams(prompt="again", session_id="s")
        )
        assert handler_context.openai.requests[-1]["messages"] == [
            {"role": "user", "content": "again"}
        ]

    @pytest.mark.asyncio
    async def test_clear_unknown_session(self, handler_context):
        result = await generative.clear_context(
            handler_context, ClearContextParams(session_id="never-used")
        )

        assert result["data"]["existed"] is False
