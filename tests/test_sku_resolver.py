"""
SKU -> Merchandise Resolver Tests

Batching, partial misses, and whole-call failure.
"""

import asyncio
import json
import re

import httpx
import pytest

from storefront.integrations.shopify_client import (
    ShopifyAdminClient,
    ShopifyAuthError,
    ShopifyError,
    ShopifyRateLimitError,
)
from storefront.integrations.sku_resolver import (
    ResolverUnavailable,
    SkuResolver,
    build_sku_query,
    chunk,
    normalize_skus,
)

SKU_PATTERN = re.compile(r'sku:"((?:[^"\\]|\\.)*)"')


def shopify_handler(variants, calls=None):
    """Fake Admin GraphQL answering productVariants searches from `variants`."""
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        requested = SKU_PATTERN.findall(payload["variables"]["query"])
        if calls is not None:
            calls.append(requested)
        nodes = [
            {"id": variants[sku], "sku": sku}
            for sku in requested if sku in variants
        ]
        return httpx.Response(200, json={
            "data": {
                "productVariants": {
                    "pageInfo": {"hasNextPage": False, "endCursor": None},
                    "nodes": nodes,
                }
            }
        })
    return handler


def make_client(handler):
    client = ShopifyAdminClient(
        store_domain="https://trade-test.myshopify.com/",
        access_token="shpat_test",
        api_version="2024-01",
        transport=httpx.MockTransport(handler),
    )
    client.RETRY_BACKOFF = 0
    return client


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:

    def test_normalize_skus_trims_dedupes_and_drops_blanks(self):
        assert normalize_skus([" A1", "A1", "", None, "B2 "]) == ["A1", "B2"]

    def test_chunk_respects_size(self):
        assert chunk(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]

    def test_query_escapes_quotes(self):
        assert build_sku_query(['A"1', "B2"]) == 'sku:"A\\"1" OR sku:"B2"'


# =============================================================================
# RESOLVER
# =============================================================================

class TestSkuResolver:

    @pytest.mark.asyncio
    async def test_misses_are_none_not_errors(self):
        client = make_client(shopify_handler({"A2": "gid://shopify/ProductVariant/2"}))
        resolver = SkuResolver(client=client, batch_size=10)

        result = await resolver.resolve({"A1", "A2"})

        assert result == {"A1": None, "A2": "gid://shopify/ProductVariant/2"}

    @pytest.mark.asyncio
    async def test_batches_respect_batch_size(self):
        calls = []
        skus = [f"SKU-{i}" for i in range(7)]
        variants = {sku: f"gid://shopify/ProductVariant/{i}" for i, sku in enumerate(skus)}
        resolver = SkuResolver(client=make_client(shopify_handler(variants, calls)), batch_size=3)

        result = await resolver.resolve(skus)

        assert sorted(len(batch) for batch in calls) == [1, 3, 3]
        assert sorted(sku for batch in calls for sku in batch) == sorted(skus)
        assert result == variants
        assert resolver.stats["batches"] == 3

    @pytest.mark.asyncio
    async def test_prefix_matches_are_ignored(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"productVariants": {
                "pageInfo": {"hasNextPage": False},
                "nodes": [{"id": "gid://shopify/ProductVariant/9", "sku": "A1-LONG"}],
            }}})

        result = await SkuResolver(client=make_client(handler)).resolve(["A1"])
        assert result == {"A1": None}

    @pytest.mark.asyncio
    async def test_follows_pagination_within_batch(self):
        def handler(request):
            after = json.loads(request.content)["variables"]["after"]
            if after is None:
                page = {"pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                        "nodes": [{"id": "gid://1", "sku": "A1"}]}
            else:
                page = {"pageInfo": {"hasNextPage": False, "endCursor": None},
                        "nodes": [{"id": "gid://2", "sku": "A2"}]}
            return httpx.Response(200, json={"data": {"productVariants": page}})

        result = await SkuResolver(client=make_client(handler)).resolve(["A1", "A2"])
        assert result == {"A1": "gid://1", "A2": "gid://2"}

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_request(self):
        calls = []
        resolver = SkuResolver(client=make_client(shopify_handler({}, calls)))

        assert await resolver.resolve(["", None]) == {}
        assert calls == []

    @pytest.mark.asyncio
    async def test_one_failing_batch_fails_the_whole_call(self):
        def handler(request):
            requested = SKU_PATTERN.findall(json.loads(request.content)["variables"]["query"])
            if "B1" in requested:
                return httpx.Response(503, json={"errors": "unavailable"})
            return shopify_handler({"A1": "gid://1"})(request)

        resolver = SkuResolver(client=make_client(handler), batch_size=1)

        with pytest.raises(ResolverUnavailable) as exc_info:
            await resolver.resolve(["A1", "B1"])

        assert exc_info.value.status_code == 503
        assert resolver.stats["last_error"]

    @pytest.mark.asyncio
    async def test_failing_batch_cancels_sibling_batches(self):
        cancelled = []

        async def handler(request):
            requested = SKU_PATTERN.findall(json.loads(request.content)["variables"]["query"])
            if "B1" in requested:
                return httpx.Response(503, json={"errors": "unavailable"})
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(requested)
                raise
            return shopify_handler({"A1": "gid://1"})(request)

        resolver = SkuResolver(client=make_client(handler), batch_size=1)

        with pytest.raises(ResolverUnavailable):
            await asyncio.wait_for(resolver.resolve(["A1", "B1"]), timeout=2)
        for _ in range(5):
            await asyncio.sleep(0)

        assert cancelled == [["A1"]]

    @pytest.mark.asyncio
    async def test_transport_error_raises_resolver_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ResolverUnavailable):
            await SkuResolver(client=make_client(handler)).resolve(["A1"])

    @pytest.mark.asyncio
    async def test_resolve_one(self):
        resolver = SkuResolver(client=make_client(shopify_handler({"A1": "gid://1"})))
        assert await resolver.resolve_one(" A1 ") == "gid://1"
        assert await resolver.resolve_one("") is None


# =============================================================================
# SHOPIFY CLIENT
# =============================================================================

class TestShopifyAdminClient:

    def test_endpoint_from_domain(self):
        client = make_client(lambda r: httpx.Response(200))
        assert client.endpoint == "https://trade-test.myshopify.com/admin/api/2024-01/graphql.json"

    @pytest.mark.asyncio
    async def test_auth_error(self):
        client = make_client(lambda r: httpx.Response(401, json={"errors": "Invalid API key"}))
        with pytest.raises(ShopifyAuthError):
            await client.graphql("{ shop { name } }")

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self):
        client = make_client(lambda r: httpx.Response(200, json={"errors": [{"message": "bad field"}]}))
        with pytest.raises(ShopifyError):
            await client.graphql("{ nope }")

    @pytest.mark.asyncio
    async def test_throttled_query_is_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) == 1:
                return httpx.Response(200, json={"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]})
            return httpx.Response(200, json={
                "data": {"shop": {"name": "Trade"}},
                "extensions": {"cost": {"throttleStatus": {
                    "currentlyAvailable": 900, "maximumAvailable": 1000, "restoreRate": 50}}},
            })

        client = make_client(handler)
        data = await client.graphql("{ shop { name } }")

        assert data == {"shop": {"name": "Trade"}}
        assert len(attempts) == 2
        assert client.last_rate_limit.utilization_pct == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_rate_limit_gives_up_after_max_retries(self):
        client = make_client(lambda r: httpx.Response(429, headers={"Retry-After": "0"}))
        with pytest.raises(ShopifyRateLimitError):
            await client.graphql("{ shop { name } }")

    @pytest.mark.asyncio
    async def test_unconfigured_client_raises(self):
        client = ShopifyAdminClient(store_domain="x.myshopify.com", access_token="t")
        client.access_token = ""
        with pytest.raises(ShopifyError):
            await client.graphql("{ shop { name } }")
