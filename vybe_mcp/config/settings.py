"""Application settings resolved from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _value_from_sources(key: str, default: Any = None) -> Any:
    env_val = os.getenv(key)
    if env_val is not None:
        return env_val
    return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def _as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized in {"1", "true", "yes", "on"}
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return default


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


class Settings:
    """Gateway settings resolved from the environment."""

    VYBE_API_KEY: Optional[str] = None
    VYBE_BASE_URL: str = "https://api.vybenetwork.xyz"

    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o"

    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20240620"

    GENERATE_MAX_TOKENS: int = 1000

    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"

    MCP_SERVER_API_KEY: Optional[str] = None

    REDIS_URL: Optional[str] = None
    MCP_CACHE_PREFIX: str = "mcp:"
    MCP_CACHE_TTL: int = 120
    MCP_REDIS_TTL: int = 300
    MCP_CACHE_CHECK_PERIOD: int = 60

    MCP_CORS_ORIGINS: List[str] = []

    RATE_LIMITING_ENABLED: bool = True
    MCP_RATE_LIMIT_REQUESTS: int = 100
    MCP_RATE_LIMIT_WINDOW: int = 900

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    LOG_LEVEL: str = "INFO"

    @classmethod
    def _populate(cls) -> None:
        cls.VYBE_API_KEY = _as_optional_str(_value_from_sources("VYBE_API_KEY"))
        cls.VYBE_BASE_URL = _as_str(
            _value_from_sources("VYBE_BASE_URL", "https://api.vybenetwork.xyz")
        ).rstrip("/")

        cls.OPENAI_API_KEY = _as_str(_value_from_sources("OPENAI_API_KEY"), "")
        cls.OPENAI_BASE_URL = _as_str(
            _value_from_sources("OPENAI_BASE_URL", "https://api.openai.com/v1")
        ).rstrip("/")
        cls.OPENAI_MODEL = _as_str(_value_from_sources("OPENAI_MODEL", "gpt-4o"))

        cls.ANTHROPIC_API_KEY = _as_str(_value_from_sources("ANTHROPIC_API_KEY"), "")
        cls.ANTHROPIC_BASE_URL = _as_str(
            _value_from_sources("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
        ).rstrip("/")
        cls.ANTHROPIC_MODEL = _as_str(
            _value_from_sources("ANTHROPIC_MODEL", "claude-3-5-sonnet-20240620")
        )

        cls.GENERATE_MAX_TOKENS = _as_int(_value_from_sources("GENERATE_MAX_TOKENS", 1000), 1000)

        cls.COINGECKO_BASE_URL = _as_str(
            _value_from_sources("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
        ).rstrip("/")

        cls.MCP_SERVER_API_KEY = _as_optional_str(_value_from_sources("MCP_SERVER_API_KEY"))

        cls.REDIS_URL = _as_optional_str(_value_from_sources("REDIS_URL"))
        cls.MCP_CACHE_PREFIX = _as_str(_value_from_sources("MCP_CACHE_PREFIX", "mcp:"), "mcp:")
        cls.MCP_CACHE_TTL = _as_int(_value_from_sources("MCP_CACHE_TTL", 120), 120)
        cls.MCP_REDIS_TTL = _as_int(_value_from_sources("MCP_REDIS_TTL", 300), 300)
        cls.MCP_CACHE_CHECK_PERIOD = _as_int(
            _value_from_sources("MCP_CACHE_CHECK_PERIOD", 60), 60
        )

        cls.MCP_CORS_ORIGINS = _as_list(_value_from_sources("MCP_CORS_ORIGINS"))

        cls.RATE_LIMITING_ENABLED = _as_bool(
            _value_from_sources("RATE_LIMITING_ENABLED", "true"), True
        )
        cls.MCP_RATE_LIMIT_REQUESTS = _as_int(
            _value_from_sources("MCP_RATE_LIMIT_REQUESTS", 100), 100
        )
        cls.MCP_RATE_LIMIT_WINDOW = _as_int(_value_from_sources("MCP_RATE_LIMIT_WINDOW", 900), 900)

        cls.HOST = _as_str(_value_from_sources("HOST", "0.0.0.0"), "0.0.0.0")
        cls.PORT = _as_int(_value_from_sources("PORT", 3000), 3000)

        cls.LOG_LEVEL = _as_str(_value_from_sources("LOG_LEVEL", "INFO"), "INFO")

    @classmethod
    def refresh_from_env(cls) -> None:
        cls._populate()


Settings._populate()


def setup_logging(level_override: Optional[str] = None) -> None:
    """Configure root logging using settings or override."""

    level_name = (level_override or Settings.LOG_LEVEL or "INFO").upper()

    if level_name in {"NO", "NONE", "OFF"}:
        level = logging.CRITICAL + 10
    else:
        level = getattr(logging, level_name, logging.INFO)

    from ..api.middleware.request_id import RequestIDLogFilter

    handler = logging.StreamHandler()
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("vybe_mcp").setLevel(level)

    # Keep noisy third-party loggers at INFO or higher
    noisy_logger_level = max(level, logging.INFO)
    for name in ("aiohttp", "redis", "urllib3", "uvicorn.access"):
        logging.getLogger(name).setLevel(noisy_logger_level)
