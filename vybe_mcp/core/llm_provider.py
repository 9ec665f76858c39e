from typing import Any, Dict, List, Optional
import aiohttp
import json
import logging
from ..utils.http_client import get_session
from ..config.settings import Settings

logger = logging.getLogger(__name__)


Message = Dict[str, str]


class ProviderError(Exception):
    """A chat-completion call failed.

    ``status`` is the HTTP status returned by the provider, or None when the
    request never got a response (network error, malformed body).
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LLMProvider:
    """Abstract-ish base for chat-completion providers."""

    name = "llm"

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

    async def complete_chat(
        self, messages: List[Message], *, model: Optional[str] = None, max_tokens: int = 1000
    ) -> str:
        """Send the conversation and return the generated text."""
        raise NotImplementedError

    async def _post_json(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        try:
            session = await get_session()
            async with session.post(url, headers=headers, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"{self.name} API error {response.status}: {error_text}")
                    raise ProviderError(
                        f"{self.name} API error {response.status}: {error_text}",
                        status=response.status,
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"HTTP error in {self.name} request: {e}")
            raise ProviderError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error in {self.name} response: {e}")
            raise ProviderError(f"Invalid JSON response: {e}") from e


class OpenAIProvider(LLMProvider):
    """OpenAI (and OpenAI-compatible) chat completions."""

    name = "OpenAI"

    def __init__(self, api_key: str, model: str = "gpt-4o", base_url: Optional[str] = None):
        super().__init__(api_key, model, base_url or "https://api.openai.com/v1")

    async def complete_chat(
        self, messages: List[Message], *, model: Optional[str] = None, max_tokens: int = 1000
    ) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens,
        }

        logger.debug(f"Sending chat completion request to {self.base_url}/chat/completions")
        data = await self._post_json(f"{self.base_url}/chat/completions", headers, payload)

        if not isinstance(data, dict) or not data.get("choices"):
            raise ProviderError("No choices in OpenAI response")

        content = data["choices"][0].get("message", {}).get("content")
        content = content if isinstance(content, str) else ""
        logger.debug(f"OpenAI response: content_length={len(content)}")
        return content


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API."""

    name = "Anthropic"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20240620",
        base_url: Optional[str] = None,
    ):
        super().__init__(api_key, model, base_url or "https://api.anthropic.com")

    @staticmethod
    def _convert_messages(messages: List[Message]):
        """Split system prompts out; Anthropic takes them as a top-level field."""
        system_parts: List[str] = []
        anth_messages: List[Dict[str, Any]] = []
        for msg in messages:
            role = msg.get("role")
            content = str(msg.get("content") or "")
            if role == "system":
                system_parts.append(content)
            elif role in ("user", "assistant"):
                anth_messages.append({"role": role, "content": content})
        system_text = "\n".join(p for p in system_parts if p) or None
        return system_text, anth_messages

    async def complete_chat(
        self, messages: List[Message], *, model: Optional[str] = None, max_tokens: int = 1000
    ) -> str:
        system_text, anth_messages = self._convert_messages(messages)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "messages": anth_messages,
            "max_tokens": max_tokens,
        }
        if system_text:
            payload["system"] = system_text

        base_url = self.base_url or "https://api.anthropic.com"
        url = f"{base_url}/v1/messages" if not base_url.endswith("/v1") else f"{base_url}/messages"
        logger.debug(f"Sending Anthropic messages request to {url}")
        data = await self._post_json(url, headers, payload)

        blocks = data.get("content", []) if isinstance(data, dict) else []
        text_parts = [b.get("text", "") for b in blocks if b.get("type") == "text"]
        if not text_parts:
            raise ProviderError("No text content in Anthropic response")
        return text_parts[0]


def create_openai_provider() -> OpenAIProvider:
    return OpenAIProvider(
        api_key=Settings.OPENAI_API_KEY,
        model=Settings.OPENAI_MODEL,
        base_url=Settings.OPENAI_BASE_URL,
    )


def create_anthropic_provider() -> AnthropicProvider:
    return AnthropicProvider(
        api_key=Settings.ANTHROPIC_API_KEY,
        model=Settings.ANTHROPIC_MODEL,
        base_url=Settings.ANTHROPIC_BASE_URL,
    )
