"""JSON-RPC gateway for Solana analytics (Vybe API) and LLM providers."""

__version__ = "0.1.0"
