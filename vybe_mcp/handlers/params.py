"""Typed parameter models for every JSON-RPC method.

Models ignore unknown keys, so the cache key only reflects parameters a
handler actually reads. ``required_messages`` gives the client-facing text
used when a required parameter is missing or empty.
"""

from __future__ import annotations

from typing import Annotated, ClassVar, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticCustomError

from ..config.settings import Settings


def _not_blank(value: str) -> str:
    if not value.strip():
        raise PydanticCustomError("string_blank", "String should not be blank")
    return value


# Rejects whitespace-only values but passes the string through untouched
NonBlankStr = Annotated[str, Field(min_length=1), AfterValidator(_not_blank)]


class RpcParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    required_messages: ClassVar[Dict[str, str]] = {}


class NoParams(RpcParams):
    """Methods that take no parameters."""


# Generative


class GenerateParams(RpcParams):
    prompt: NonBlankStr
    session_id: NonBlankStr
    max_tokens: int = Field(default_factory=lambda: Settings.GENERATE_MAX_TOKENS, ge=1)

    required_messages: ClassVar[Dict[str, str]] = {
        "prompt": "prompt is required and must be a string",
        "session_id": "session_id is required",
    }


class OpenAIGenerateParams(GenerateParams):
    model: str = "gpt-4o"


class AnthropicGenerateParams(GenerateParams):
    model: str = "claude-3-5-sonnet-20240620"


class ClearContextParams(RpcParams):
    session_id: NonBlankStr

    required_messages: ClassVar[Dict[str, str]] = {"session_id": "session_id is required"}


# Wallets


class WalletParams(RpcParams):
    address: NonBlankStr = Field(description="Solana wallet address")

    required_messages: ClassVar[Dict[str, str]] = {"address": "address is required"}


class WalletHoldingsParams(WalletParams):
    include_no_price: bool = False
    limit: int = Field(default=100, ge=1)


class CrossAnalysisParams(RpcParams):
    addresses: List[NonBlankStr] = Field(min_length=1, description="Wallet addresses to compare")

    required_messages: ClassVar[Dict[str, str]] = {
        "addresses": "addresses must be a non-empty array of wallet addresses"
    }


# Tokens


class TokenParams(RpcParams):
    mint_address: NonBlankStr = Field(description="Token mint address")

    required_messages: ClassVar[Dict[str, str]] = {
        "mint_address": "mint_address is required"
    }


class TokenLimitParams(TokenParams):
    limit: int = Field(default=10, ge=1)


class TokenOhlcParams(TokenParams):
    resolution: str = "1d"
    limit: int = Field(default=7, ge=1)


class TokenPriceParams(RpcParams):
    mint_address: Optional[str] = None
    symbol: Optional[str] = None

    @model_validator(mode="after")
    def ensure_identifier(self) -> "TokenPriceParams":
        if not (self.mint_address or "").strip() and not (self.symbol or "").strip():
            raise ValueError("Either mint_address or symbol is required")
        return self


class WhaleMovementParams(RpcParams):
    min_usd_amount: float = Field(default=10000, ge=0)
    limit: int = Field(default=10, ge=1)


# Programs


class ProgramParams(RpcParams):
    program_id: NonBlankStr = Field(description="Program ID")

    required_messages: ClassVar[Dict[str, str]] = {"program_id": "program_id is required"}


class ProgramMetricsParams(ProgramParams):
    range: str = "7d"


class ProgramUsersParams(ProgramParams):
    days: int = Field(default=7, ge=1)
    limit: int = Field(default=10, ge=1)

