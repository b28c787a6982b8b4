"""
API Tests

Exercises the FastAPI app with the catalog and navigation services
swapped for in-memory fakes via dependency_overrides.
"""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api_server import app
from conftest import FakePimSource, FakeResolver
from storefront.catalog.pim_source import SourceUnavailable
from storefront.catalog.reconciler import CatalogReconciler
from storefront.integrations.shopify_client import RateLimitInfo, ShopifyAdminClient
from storefront.integrations.sku_resolver import SkuResolver
from storefront.navigation.builder import TaxonomyRow
from storefront.navigation.cache import NavigationCache
from storefront.navigation.indexer import NavigationIndexer
from storefront.navigation.taxonomy import PimTaxonomySource
from storefront.services import get_navigation_indexer, get_reconciler, get_sku_resolver

MERCHANDISE = {"RP-1": "gid://shopify/ProductVariant/1", "RP-2": "gid://shopify/ProductVariant/2"}


class StaticTaxonomy:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error

    async def fetch_taxonomy(self, menu_key):
        if self.error is not None:
            raise self.error
        return list(self.rows)


@pytest.fixture
def client(catalog_rows):
    pim = FakePimSource(catalog_rows)
    reconciler = CatalogReconciler(pim, FakeResolver(MERCHANDISE))
    indexer = NavigationIndexer(PimTaxonomySource(pim), NavigationCache())

    app.dependency_overrides[get_reconciler] = lambda: reconciler
    app.dependency_overrides[get_navigation_indexer] = lambda: indexer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def override_indexer(taxonomy):
    indexer = NavigationIndexer(taxonomy, NavigationCache())
    app.dependency_overrides[get_navigation_indexer] = lambda: indexer


def override_reconciler(pim, resolver):
    reconciler = CatalogReconciler(pim, resolver)
    app.dependency_overrides[get_reconciler] = lambda: reconciler


# =============================================================================
# Navigation
# =============================================================================

class TestNavigationEndpoints:

    def test_nav_payload_and_cache_headers(self, client):
        response = client.get("/api/nav")

        assert response.status_code == 200
        assert response.headers["cache-control"] == (
            "public, max-age=60, s-maxage=600, stale-while-revalidate=300"
        )
        body = response.json()
        assert set(body) == {"updated_at", "tree", "slug_map"}
        assert body["tree"]["slug"] == "main"
        assert [c["label"] for c in body["tree"]["children"]] == ["Roofing", "Cladding"]
        assert "roofing/panels/insulated" in body["slug_map"]

    def test_nav_submenu(self, client):
        body = client.get("/api/nav", params={"menu": "Roofing"}).json()

        assert body["tree"]["label"] == "Roofing"
        assert "cladding" not in body["slug_map"]

    def test_lookup(self, client):
        response = client.get("/api/nav/lookup/roofing/panels")

        assert response.status_code == 200
        assert response.json()["label"] == "Panels"
        assert response.json()["sku_count"] == 2

    def test_lookup_unknown_slug(self, client):
        assert client.get("/api/nav/lookup/decking").status_code == 404

    def test_unknown_menu_is_404(self, client):
        response = client.get("/api/nav", params={"menu": "decking"})

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NAV_MENU_NOT_FOUND"
        assert response.json()["detail"]["menu_key"] == "decking"

    def test_slug_collision_is_500(self, client):
        override_indexer(StaticTaxonomy([
            TaxonomyRow("A", ["Roofing", "Panels"]),
            TaxonomyRow("B", ["Roofing", "PANELS!"]),
        ]))

        response = client.get("/api/nav")

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "NAV_SLUG_COLLISION"
        assert detail["slug"] == "roofing/panels"

    def test_taxonomy_outage_is_503(self, client):
        override_indexer(StaticTaxonomy(error=SourceUnavailable("feed down")))

        response = client.get("/api/nav")

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "NAV_SOURCE_UNAVAILABLE"


class TestAdminRefresh:

    def test_requires_key_when_configured(self, client):
        with patch.dict(os.environ, {"ADMIN_API_KEY": "s3cret"}):
            assert client.post("/api/v1/admin/nav/main/refresh").status_code == 401
            assert client.post(
                "/api/v1/admin/nav/main/refresh", headers={"X-Admin-API-Key": "wrong"}
            ).status_code == 401

    def test_refresh_with_valid_key(self, client):
        with patch.dict(os.environ, {"ADMIN_API_KEY": "s3cret"}):
            response = client.post(
                "/api/v1/admin/nav/main/refresh", headers={"X-Admin-API-Key": "s3cret"}
            )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "rebuilt"
        assert body["menu_key"] == "main"
        assert body["nodes"] == 7

    def test_open_when_no_key_configured(self, client):
        with patch.dict(os.environ):
            os.environ.pop("ADMIN_API_KEY", None)
            response = client.post("/api/v1/admin/nav/main/refresh")

        assert response.status_code == 200

    def test_refresh_unknown_menu_is_404(self, client):
        with patch.dict(os.environ, {"ADMIN_API_KEY": "s3cret"}):
            response = client.post(
                "/api/v1/admin/nav/decking/refresh", headers={"X-Admin-API-Key": "s3cret"}
            )

        assert response.status_code == 404


# =============================================================================
# Products
# =============================================================================

class TestProductEndpoints:

    def test_list_products_in_pim_order(self, client):
        body = client.get("/api/products").json()

        assert body["count"] == 4
        assert [p["sku"] for p in body["products"]] == ["RP-1", "RP-2", "RF-1", "CL-1"]

    def test_product_availability_fields(self, client):
        products = {p["sku"]: p for p in client.get("/api/products").json()["products"]}

        assert products["RP-1"]["availability"] == "available"
        assert products["RP-1"]["can_add_to_cart"] is True
        assert products["RP-2"]["name"] == "Panels"
        assert products["RF-1"]["availability"] == "quote_only"
        assert products["RF-1"]["can_add_to_cart"] is False
        assert products["CL-1"]["availability"] == "discontinued"

    def test_node_filter(self, client):
        exact = client.get("/api/products", params={"node": "roofing/panels"}).json()
        below = client.get("/api/products", params={"node": "roofing/panels", "show_all": "true"}).json()

        assert [p["sku"] for p in exact["products"]] == ["RP-2"]
        assert [p["sku"] for p in below["products"]] == ["RP-1", "RP-2"]

    def test_level_counts_follow_the_node(self, client):
        top = client.get("/api/products").json()
        roofing = client.get("/api/products", params={"node": "roofing"}).json()

        assert top["levels"] == {"Roofing": 3, "Cladding": 1}
        assert roofing["count"] == 0
        assert roofing["levels"] == {"Panels": 2, "Flashings": 1}

    def test_sort_by_sku(self, client):
        body = client.get("/api/products", params={"sort": "sku"}).json()
        assert [p["sku"] for p in body["products"]] == ["CL-1", "RF-1", "RP-1", "RP-2"]

    def test_unknown_sort_is_400(self, client):
        assert client.get("/api/products", params={"sort": "colour"}).status_code == 400

    def test_single_product(self, client):
        response = client.get("/api/products/RP-1")

        assert response.status_code == 200
        assert response.json()["merchandise_id"] == "gid://shopify/ProductVariant/1"

    def test_unknown_product_is_404(self, client):
        assert client.get("/api/products/NOPE").status_code == 404

    def test_pim_outage_is_503(self, client, catalog_rows):
        override_reconciler(FakePimSource(catalog_rows, error=SourceUnavailable("PIM down")), FakeResolver({}))

        response = client.get("/api/products")

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "CATALOG_UNAVAILABLE"
        assert response.json()["detail"]["source"] == "pim"

    def test_resolver_outage_is_503(self, client, catalog_rows):
        override_reconciler(FakePimSource(catalog_rows), FakeResolver({}, fail=True))

        response = client.get("/api/products/RP-1")

        assert response.status_code == 503
        assert response.json()["detail"]["source"] == "shopify"


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["service"] == "storefront-catalog"

    def test_health_reports_components(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert set(body["components"]) == {"pim", "shopify", "navigation"}
        assert body["components"]["navigation"]["fresh_seconds"] == 600

    def test_health_reports_shopify_throttle_budget(self, client):
        shopify = ShopifyAdminClient(store_domain="trade-test.myshopify.com", access_token="shpat_test")
        shopify._last_rate_limit = RateLimitInfo(
            currently_available=200, maximum_available=1000, restore_rate=50
        )
        app.dependency_overrides[get_sku_resolver] = lambda: SkuResolver(client=shopify)

        shopify_status = client.get("/api/v1/health").json()["components"]["shopify"]

        assert shopify_status["configured"] is True
        assert shopify_status["rate_limit"]["utilization_pct"] == 80.0
        assert shopify_status["rate_limit"]["restore_rate"] == 50
