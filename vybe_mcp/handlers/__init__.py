"""JSON-RPC method handlers and the default method table."""

from ..core.registry import MethodRegistry, MethodSpec
from . import aggregates, analytics, generative, pricing
from . import params as p
from .context import HandlerContext, build_default_context


def build_registry() -> MethodRegistry:
    """Register every public method with its parameter model and cache policy."""
    registry = MethodRegistry()

    def add(name, handler, model, *, cacheable=True, tier2=False, description=""):
        registry.register(
            MethodSpec(
                name=name,
                handler=handler,
                params_model=model,
                cacheable=cacheable,
                tier2_eligible=tier2,
                description=description,
            )
        )

    # Generative and session methods have side effects and are never cached
    add("openai_generate", generative.openai_generate, p.OpenAIGenerateParams,
        cacheable=False, description="Generate text with OpenAI, keeping per-session context")
    add("anthropic_generate", generative.anthropic_generate, p.AnthropicGenerateParams,
        cacheable=False, description="Generate text with Anthropic, keeping per-session context")
    add("clear_context", generative.clear_context, p.ClearContextParams,
        cacheable=False, description="Forget the conversation stored for a session")

    add("solana_wallet_overview", aggregates.wallet_overview, p.WalletParams,
        tier2=True, description="Total USD value and token/NFT counts for a wallet")
    add("solana_wallet_tokens", analytics.wallet_tokens, p.WalletHoldingsParams,
        description="Token balances held by a wallet")
    add("solana_wallet_nfts", analytics.wallet_nfts, p.WalletHoldingsParams,
        description="NFTs held by a wallet")
    add("solana_wallet_pnl", analytics.wallet_pnl, p.WalletParams,
        description="Trading performance of a wallet")

    add("solana_token_details", analytics.token_details, p.TokenParams,
        tier2=True, description="Token metadata and market figures")
    add("solana_token_price", pricing.token_price, p.TokenPriceParams,
        description="Current USD price by mint address or symbol")
    add("solana_token_ohlc", analytics.token_ohlc, p.TokenOhlcParams,
        description="Historical OHLC candles for a token")
    add("solana_token_holders", analytics.token_holders, p.TokenLimitParams,
        tier2=True, description="Largest holders of a token")
    add("solana_token_transfers", analytics.token_transfers, p.TokenLimitParams,
        description="Recent transfers of a token")
    add("solana_trades", analytics.token_trades, p.TokenLimitParams,
        description="Recent trades of a token")

    add("solana_program_details", analytics.program_details, p.ProgramParams,
        tier2=True, description="Program metadata")
    add("solana_program_metrics", aggregates.program_metrics, p.ProgramMetricsParams,
        description="Instruction, transaction and active-user totals for a program")
    add("solana_program_users", analytics.program_users, p.ProgramUsersParams,
        description="Most active users of a program")

    add("solana_whale_movements", analytics.whale_movements, p.WhaleMovementParams,
        description="Large transfers above a USD threshold")
    add("solana_market_sentiment", aggregates.market_sentiment, p.NoParams,
        description="Most used programs and highest priced tokens")
    add("solana_network_activity", aggregates.network_activity, p.NoParams,
        description="24h activity across the most active programs")
    add("solana_cross_analysis", aggregates.cross_analysis, p.CrossAnalysisParams,
        description="Tokens held in common by several wallets")

    return registry


__all__ = ["HandlerContext", "build_default_context", "build_registry"]
