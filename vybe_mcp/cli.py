"""Command line entry point for the Vybe MCP gateway."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import uvicorn

from . import __version__
from .config.settings import Settings, setup_logging

logger = logging.getLogger(__name__)


async def run_server(host: str, port: int, log_level: str = "info") -> int:
    """Launch the FastAPI server with uvicorn."""
    from .api import create_app

    config = uvicorn.Config(  # type: ignore[arg-type]
        create_app,
        host=host,
        port=port,
        log_level=log_level,
        factory=True,
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except Exception as exc:  # pragma: no cover
        logger.exception("Server crashed: %s", exc)
        return 1

    return 0


def cmd_list_methods() -> int:
    from .handlers import build_registry

    registry = build_registry()
    for spec in registry:
        flags = []
        if not spec.cacheable:
            flags.append("uncached")
        if spec.tier2_eligible:
            flags.append("shared-cache")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"  {spec.name}{suffix}: {spec.description}")
    print(f"\n{len(registry)} methods")
    return 0


async def cmd_call(method: str, raw_params: Optional[str]) -> int:
    """Dispatch one JSON-RPC call in-process and print the response."""
    from .cache.engine import cleanup_cache, get_cache
    from .core.dispatcher import Dispatcher
    from .handlers import build_default_context, build_registry
    from .utils.http_client import cleanup_http_client

    try:
        params: Dict[str, Any] = json.loads(raw_params) if raw_params else {}
    except json.JSONDecodeError as exc:
        print(f"Invalid --params JSON: {exc}", file=sys.stderr)
        return 1

    try:
        dispatcher = Dispatcher(build_registry(), build_default_context(), await get_cache())
        response = await dispatcher.handle(
            {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}
        )
    finally:
        await cleanup_cache()
        await cleanup_http_client()

    print(json.dumps(response.body, indent=2))
    return 0 if "result" in response.body else 1


async def main() -> int:
    parser = argparse.ArgumentParser(description="Vybe MCP gateway")
    parser.add_argument("--version", action="version", version=f"vybe-mcp {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, NONE)",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the JSON-RPC HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: PORT)")

    subparsers.add_parser("methods", help="List available JSON-RPC methods")

    call_parser = subparsers.add_parser("call", help="Invoke a method without the HTTP server")
    call_parser.add_argument("method", help="Method name, e.g. solana_token_price")
    call_parser.add_argument("--params", default=None, help="Method params as a JSON object")

    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.command == "methods":
        return cmd_list_methods()

    if args.command == "call":
        return await cmd_call(args.method, args.params)

    # serve is the default command
    host = getattr(args, "host", None) or Settings.HOST
    port = getattr(args, "port", None) or Settings.PORT
    uvicorn_level = (args.log_level or Settings.LOG_LEVEL or "info").lower()
    if uvicorn_level not in {"critical", "error", "warning", "info", "debug", "trace"}:
        uvicorn_level = "info"
    return await run_server(host, port, log_level=uvicorn_level)


def app() -> None:
    """Entry point for the CLI application."""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nStopped.")
        sys.exit(0)


if __name__ == "__main__":
    app()
