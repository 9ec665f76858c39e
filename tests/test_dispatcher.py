from unittest.mock import AsyncMock

import pytest

from vybe_mcp.cache.engine import TwoTierCache
from vybe_mcp.cache.keys import make_cache_key
from vybe_mcp.cache.memory import MemoryCacheBackend
from vybe_mcp.config.settings import Settings
from vybe_mcp.core.dispatcher import Dispatcher, parse_envelope
from vybe_mcp.core.errors import InvalidRequestError, RpcError
from vybe_mcp.core.registry import MethodRegistry, MethodSpec
from vybe_mcp.handlers import build_registry
from vybe_mcp.handlers.params import NoParams


def rpc(method, params=None, request_id=1):
    payload = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        payload["params"] = params
    return payload


TOKEN_DETAILS = {"data": {"name": "Bonk", "symbol": "BONK", "price": 0.00002}}


class TestEnvelope:
    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "not an object",
            {"method": "solana_market_sentiment", "id": 1},
            {"jsonrpc": "1.0", "method": "solana_market_sentiment", "id": 1},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "method": "", "id": 1},
            {"jsonrpc": "2.0", "method": 42, "id": 1},
            {"jsonrpc": "2.0", "method": "solana_market_sentiment"},
            {"jsonrpc": "2.0", "method": "solana_market_sentiment", "id": None},
            {"jsonrpc": "2.0", "method": "solana_market_sentiment", "id": True},
            {"jsonrpc": "2.0", "method": "solana_market_sentiment", "id": 1, "params": [1]},
        ],
    )
    def test_invalid_envelopes(self, payload):
        with pytest.raises(InvalidRequestError):
            parse_envelope(payload)

    def test_zero_id_and_missing_params(self):
        assert parse_envelope(rpc("m", request_id=0)) == ("m", {}, 0)

    def test_string_id(self):
        assert parse_envelope(rpc("m", {"a": 1}, request_id="abc")) == ("m", {"a": 1}, "abc")

    @pytest.mark.asyncio
    async def test_invalid_envelope_never_reaches_a_handler(self, dispatcher, stub_vybe):
        response = await dispatcher.handle({"jsonrpc": "1.0", "method": "solana_wallet_overview", "id": 3})

        assert response.status_code == 400
        assert response.body["error"]["code"] == -32600
        assert response.body["id"] is None
        assert stub_vybe.calls == []


class TestMethodResolution:
    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher):
        response = await dispatcher.handle(rpc("solana_does_not_exist", request_id=7))

        assert response.status_code == 404
        assert response.body == {
            "jsonrpc": "2.0",
            "error": {"code": -32601, "message": "Method 'solana_does_not_exist' not found"},
            "id": 7,
        }

    def test_registry_contents(self):
        registry = build_registry()

        assert len(registry) == 20
        assert not registry.get("openai_generate").cacheable
        assert not registry.get("clear_context").cacheable
        tier2 = sorted(spec.name for spec in registry if spec.tier2_eligible)
        assert tier2 == [
            "solana_program_details",
            "solana_token_details",
            "solana_token_holders",
            "solana_wallet_overview",
        ]

    def test_tier2_requires_cacheable(self):
        async def handler(ctx, params):
            return {}

        with pytest.raises(ValueError):
            MethodSpec("m", handler, NoParams, cacheable=False, tier2_eligible=True)

    def test_duplicate_registration(self):
        async def handler(ctx, params):
            return {}

        registry = MethodRegistry()
        registry.register(MethodSpec("m", handler, NoParams))
        with pytest.raises(ValueError):
            registry.register(MethodSpec("m", handler, NoParams))


class TestParamValidation:
    @pytest.mark.asyncio
    async def test_missing_required_param(self, dispatcher, stub_vybe):
        response = await dispatcher.handle(rpc("solana_wallet_overview", {}))

        assert response.status_code == 400
        assert response.body["error"] == {"code": -32602, "message": "address is required"}
        assert response.body["id"] == 1
        assert stub_vybe.calls == []

    @pytest.mark.asyncio
    async def test_blank_required_param(self, dispatcher):
        response = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "   "}))

        assert response.body["error"]["message"] == "mint_address is required"

    @pytest.mark.asyncio
    async def test_wrong_type_names_the_param(self, dispatcher):
        response = await dispatcher.handle(
            rpc("solana_token_holders", {"mint_address": "M", "limit": "lots"})
        )

        assert response.body["error"]["code"] == -32602
        assert response.body["error"]["message"].startswith("Invalid parameter 'limit'")

    @pytest.mark.asyncio
    async def test_price_needs_mint_or_symbol(self, dispatcher):
        response = await dispatcher.handle(rpc("solana_token_price", {}))

        assert response.body["error"] == {
            "code": -32602,
            "message": "Either mint_address or symbol is required",
        }

    @pytest.mark.asyncio
    async def test_generate_requires_prompt(self, dispatcher, handler_context):
        response = await dispatcher.handle(rpc("openai_generate", {"session_id": "s"}))

        assert response.body["error"]["message"] == "prompt is required and must be a string"
        assert handler_context.openai.requests == []

    @pytest.mark.parametrize(
        "method, params, param",
        [
            ("solana_wallet_overview", {}, "address"),
            ("solana_wallet_tokens", {"address": ""}, "address"),
            ("solana_token_details", {}, "mint_address"),
            ("solana_token_holders", {"mint_address": "  "}, "mint_address"),
            ("solana_program_details", {}, "program_id"),
            ("solana_program_users", {"program_id": ""}, "program_id"),
            ("solana_cross_analysis", {}, "addresses"),
            ("solana_cross_analysis", {"addresses": ["A", " "]}, "addresses"),
            ("openai_generate", {"session_id": "s"}, "prompt"),
            ("anthropic_generate", {"prompt": "hi"}, "session_id"),
            ("clear_context", {}, "session_id"),
        ],
    )
    @pytest.mark.asyncio
    async def test_error_names_the_param(self, dispatcher, method, params, param):
        response = await dispatcher.handle(rpc(method, params))

        assert response.status_code == 400
        assert response.body["error"]["code"] == -32602
        assert param in response.body["error"]["message"]

    @pytest.mark.asyncio
    async def test_prompt_reaches_provider_verbatim(self, dispatcher, handler_context):
        prompt = "  line one\n\tline two\n"
        await dispatcher.handle(rpc("openai_generate", {"prompt": prompt, "session_id": "s"}))

        assert handler_context.openai.requests[0]["messages"] == [
            {"role": "user", "content": prompt}
        ]
        stored = await handler_context.sessions.get("s")
        assert stored[0] == {"role": "user", "content": prompt}

    @pytest.mark.asyncio
    async def test_session_ids_are_not_normalized(self, dispatcher, handler_context):
        await dispatcher.handle(rpc("openai_generate", {"prompt": "a", "session_id": "s"}))
        await dispatcher.handle(rpc("openai_generate", {"prompt": "b", "session_id": " s"}))

        assert handler_context.openai.requests[-1]["messages"] == [{"role": "user", "content": "b"}]
        assert await handler_context.sessions.count() == 2

    @pytest.mark.asyncio
    async def test_max_tokens_default_comes_from_settings(
        self, dispatcher, handler_context, monkeypatch
    ):
        monkeypatch.setattr(Settings, "GENERATE_MAX_TOKENS", 321)

        await dispatcher.handle(rpc("openai_generate", {"prompt": "hi", "session_id": "s"}))

        assert handler_context.openai.requests[0]["max_tokens"] == 321


class TestCaching:
    @pytest.mark.asyncio
    async def test_repeat_call_served_from_cache(self, dispatcher, stub_vybe):
        stub_vybe.responses["get_token_details"] = TOKEN_DETAILS

        first = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}, 1))
        second = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}, 2))

        assert len(stub_vybe.calls_to("get_token_details")) == 1
        assert first.body["result"] == second.body["result"]
        assert second.body["id"] == 2

    @pytest.mark.asyncio
    async def test_defaults_and_unknown_keys_share_a_key(self, dispatcher, stub_vybe):
        for params in (
            {"mint_address": "M"},
            {"mint_address": "M", "limit": 10},
            {"limit": 10, "mint_address": "M", "unused": True},
        ):
            response = await dispatcher.handle(rpc("solana_token_holders", params))
            assert "result" in response.body

        assert len(stub_vybe.calls_to("get_top_token_holders")) == 1

    @pytest.mark.asyncio
    async def test_different_params_miss(self, dispatcher, stub_vybe):
        await dispatcher.handle(rpc("solana_token_holders", {"mint_address": "M", "limit": 5}))
        await dispatcher.handle(rpc("solana_token_holders", {"mint_address": "M", "limit": 6}))

        assert len(stub_vybe.calls_to("get_top_token_holders")) == 2

    @pytest.mark.asyncio
    async def test_generation_is_never_cached(self, dispatcher, handler_context):
        params = {"prompt": "hi", "session_id": "s1"}
        await dispatcher.handle(rpc("openai_generate", params, 1))
        await dispatcher.handle(rpc("openai_generate", params, 2))

        assert len(handler_context.openai.requests) == 2

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, dispatcher, stub_vybe):
        stub_vybe.responses["get_token_details"] = RuntimeError("timeout")
        await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}))

        stub_vybe.responses["get_token_details"] = TOKEN_DETAILS
        response = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}))

        assert "result" in response.body
        assert len(stub_vybe.calls_to("get_token_details")) == 2

    @pytest.mark.asyncio
    async def test_only_eligible_methods_reach_tier2(self, handler_context, stub_vybe):
        tier2 = MemoryCacheBackend()
        cache = TwoTierCache(MemoryCacheBackend(), tier2)
        dispatcher = Dispatcher(build_registry(), handler_context, cache)
        stub_vybe.responses["get_token_details"] = TOKEN_DETAILS

        await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}))
        await dispatcher.handle(rpc("solana_token_ohlc", {"mint_address": "M"}))

        details_key = make_cache_key("solana_token_details", {"mint_address": "M"})
        ohlc_key = make_cache_key(
            "solana_token_ohlc", {"mint_address": "M", "resolution": "1d", "limit": 7}
        )
        assert await tier2.get(details_key) is not None
        assert await tier2.get(ohlc_key) is None
        assert await cache.tier1.get(ohlc_key) is not None

    @pytest.mark.asyncio
    async def test_without_cache_every_call_goes_upstream(self, handler_context, stub_vybe):
        dispatcher = Dispatcher(build_registry(), handler_context)

        await dispatcher.handle(rpc("solana_market_sentiment"))
        await dispatcher.handle(rpc("solana_market_sentiment"))

        assert len(stub_vybe.calls_to("get_program_ranking")) == 2

    @pytest.mark.asyncio
    async def test_context_methods_always_reach_the_store(self, dispatcher, handler_context):
        await dispatcher.handle(rpc("openai_generate", {"prompt": "hi", "session_id": "s"}))

        first = await dispatcher.handle(rpc("clear_context", {"session_id": "s"}, 1))
        second = await dispatcher.handle(rpc("clear_context", {"session_id": "s"}, 2))

        assert first.body["result"]["data"]["existed"] is True
        assert second.body["result"]["data"]["existed"] is False
        assert await handler_context.sessions.count() == 0

    @pytest.mark.asyncio
    async def test_failing_tier2_degrades_to_upstream(self, handler_context, stub_vybe):
        tier2 = AsyncMock()
        tier2.get.side_effect = ConnectionError("redis down")
        tier2.set.side_effect = ConnectionError("redis down")
        cache = TwoTierCache(MemoryCacheBackend(), tier2)
        dispatcher = Dispatcher(build_registry(), handler_context, cache)
        stub_vybe.responses["get_token_details"] = TOKEN_DETAILS

        first = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}, 1))
        second = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}, 2))

        assert first.status_code == 200
        assert first.body["result"] == second.body["result"]
        # Tier 1 still serves the repeat even though tier 2 is down
        assert len(stub_vybe.calls_to("get_token_details")) == 1
        tier2.get.assert_awaited()


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_upstream_failure(self, dispatcher, stub_vybe):
        stub_vybe.responses["get_token_details"] = RuntimeError("API Error: 503 Service Unavailable")

        response = await dispatcher.handle(rpc("solana_token_details", {"mint_address": "M"}))

        assert response.status_code == 500
        assert response.body["error"] == {
            "code": -32000,
            "message": "Error fetching token details: API Error: 503 Service Unavailable",
        }

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal(self, handler_context):
        async def broken(ctx, params):
            raise KeyError("secret detail")

        registry = MethodRegistry()
        registry.register(MethodSpec("broken", broken, NoParams))
        dispatcher = Dispatcher(registry, handler_context)

        response = await dispatcher.handle(rpc("broken", request_id="x"))

        assert response.status_code == 500
        assert response.body["error"] == {"code": -32603, "message": "Internal server error"}
        assert response.body["id"] == "x"

    @pytest.mark.asyncio
    async def test_handler_rpc_error_keeps_its_code(self, handler_context):
        async def picky(ctx, params):
            raise RpcError("nope", code=-32001, http_status=409)

        registry = MethodRegistry()
        registry.register(MethodSpec("picky", picky, NoParams))
        response = await Dispatcher(registry, handler_context).handle(rpc("picky"))

        assert response.status_code == 409
        assert response.body["error"] == {"code": -32001, "message": "nope"}

    @pytest.mark.asyncio
    async def test_success_envelope(self, dispatcher):
        response = await dispatcher.handle(rpc("clear_context", {"session_id": "s"}, 0))

        assert response.status_code == 200
        assert response.body["jsonrpc"] == "2.0"
        assert response.body["id"] == 0
        assert response.body["result"]["content"][0]["text"] == "Context cleared successfully"
