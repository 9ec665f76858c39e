from dataclasses import dataclass, field
from typing import Optional

from ..core.llm_provider import LLMProvider, create_anthropic_provider, create_openai_provider
from ..core.retry import DEFAULT_PROVIDER_RETRY, RetryPolicy
from ..core.sessions import InMemorySessionStore, SessionStore
from ..integrations.coingecko import CoinGeckoClient
from ..integrations.vybe import VybeClient


@dataclass
class HandlerContext:
    """Collaborators every handler receives.

    Built once per application; tests construct it directly with stubs.
    """

    vybe: VybeClient
    coingecko: Optional[CoinGeckoClient] = None
    openai: Optional[LLMProvider] = None
    anthropic: Optional[LLMProvider] = None
    sessions: SessionStore = field(default_factory=InMemorySessionStore)
    retry: RetryPolicy = DEFAULT_PROVIDER_RETRY


def build_default_context() -> HandlerContext:
    """Create the production context from current settings."""
    return HandlerContext(
        vybe=VybeClient(),
        coingecko=CoinGeckoClient(),
        openai=create_openai_provider(),
        anthropic=create_anthropic_provider(),
        sessions=InMemorySessionStore(),
    )
