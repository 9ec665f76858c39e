import aiohttp
import pytest
from unittest.mock import AsyncMock, patch

from conftest import mock_http_session
from vybe_mcp.config.settings import Settings
from vybe_mcp.core.llm_provider import (
    AnthropicProvider,
    LLMProvider,
    OpenAIProvider,
    ProviderError,
    create_anthropic_provider,
    create_openai_provider,
)


def patch_session(session):
    return patch("vybe_mcp.core.llm_provider.get_session", AsyncMock(return_value=session))


class TestLLMProvider:
    """Test base LLM provider functionality."""

    def test_llm_provider_initialization(self):
        provider = LLMProvider("test_key", "test_model", "https://test.com")

        assert provider.api_key == "test_key"
        assert provider.model == "test_model"
        assert provider.base_url == "https://test.com"

    @pytest.mark.asyncio
    async def test_llm_provider_not_implemented(self):
        with pytest.raises(NotImplementedError):
            await LLMProvider("test_key", "test_model").complete_chat([])


class TestOpenAIProvider:
    def test_default_url(self):
        assert OpenAIProvider("test_key").base_url == "https://api.openai.com/v1"

    @pytest.mark.asyncio
    async def test_complete_chat(self):
        session = mock_http_session(
            json_body={"choices": [{"message": {"role": "assistant", "content": "Hello there"}}]}
        )
        provider = OpenAIProvider("test_key", "gpt-4o", "https://openai.test/v1")
        messages = [{"role": "user", "content": "Hi"}]

        with patch_session(session):
            reply = await provider.complete_chat(messages, model="gpt-4o-mini", max_tokens=25)

        assert reply == "Hello there"
        args, kwargs = session.post.call_args
        assert args == ("https://openai.test/v1/chat/completions",)
        assert kwargs["headers"]["Authorization"] == "Bearer test_key"
        assert kwargs["json"] == {"model": "gpt-4o-mini", "messages": messages, "max_tokens": 25}

    @pytest.mark.asyncio
    async def test_error_status_is_kept(self):
        session = mock_http_session(status=429, text="rate limited")

        with patch_session(session):
            with pytest.raises(ProviderError) as excinfo:
                await OpenAIProvider("test_key").complete_chat([{"role": "user", "content": "Hi"}])

        assert excinfo.value.status == 429
        assert "rate limited" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_no_choices(self):
        session = mock_http_session(json_body={"choices": []})

        with patch_session(session):
            with pytest.raises(ProviderError, match="No choices"):
                await OpenAIProvider("test_key").complete_chat([])

    @pytest.mark.asyncio
    async def test_network_error_has_no_status(self):
        session = mock_http_session()
        session.post.side_effect = aiohttp.ClientConnectionError("reset")

        with patch_session(session):
            with pytest.raises(ProviderError) as excinfo:
                await OpenAIProvider("test_key").complete_chat([])

        assert excinfo.value.status is None


class TestAnthropicProvider:
    def test_convert_messages_extracts_system(self):
        system, messages = AnthropicProvider._convert_messages(
            [
                {"role": "system", "content": "Be brief"},
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
                {"role": "tool", "content": "ignored"},
            ]
        )

        assert system == "Be brief"
        assert messages == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
        ]

    @pytest.mark.asyncio
    async def test_complete_chat(self):
        session = mock_http_session(
            json_body={"content": [{"type": "text", "text": "Bonjour"}], "stop_reason": "end_turn"}
        )
        provider = AnthropicProvider("ant_key")

        with patch_session(session):
            reply = await provider.complete_chat([{"role": "user", "content": "Hi"}], max_tokens=10)

        assert reply == "Bonjour"
        args, kwargs = session.post.call_args
        assert args == ("https://api.anthropic.com/v1/messages",)
        assert kwargs["headers"]["x-api-key"] == "ant_key"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert kwargs["json"]["model"] == "claude-3-5-sonnet-20240620"
        assert "system" not in kwargs["json"]

    @pytest.mark.asyncio
    async def test_base_url_ending_in_v1(self):
        session = mock_http_session(json_body={"content": [{"type": "text", "text": "ok"}]})

        with patch_session(session):
            await AnthropicProvider("k", base_url="https://proxy.test/v1").complete_chat([])

        assert session.post.call_args[0][0] == "https://proxy.test/v1/messages"

    @pytest.mark.asyncio
    async def test_no_text_blocks(self):
        session = mock_http_session(json_body={"content": []})

        with patch_session(session):
            with pytest.raises(ProviderError, match="No text content"):
                await AnthropicProvider("k").complete_chat([])

    @pytest.mark.asyncio
    async def test_server_error(self):
        session = mock_http_session(status=529, text="overloaded")

        with patch_session(session):
            with pytest.raises(ProviderError) as excinfo:
                await AnthropicProvider("k").complete_chat([])

        assert excinfo.value.status == 529


class TestFactories:
    def test_providers_built_from_settings(self):
        openai = create_openai_provider()
        anthropic = create_anthropic_provider()

        assert openai.api_key == "sk-test-key-for-testing-only"
        assert openai.model == Settings.OPENAI_MODEL
        assert anthropic.api_key == "sk-ant-REDACTED"
        assert anthropic.base_url == Settings.ANTHROPIC_BASE_URL
