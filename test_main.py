"""
API tests for the IKEA Lookup Proxy: JSON lookup, monitor page, store hours
and admin endpoints. Upstreams are stubbed with httpx.MockTransport.
"""

import pytest
from fastapi.testclient import TestClient

import main
from circuit_breaker import CircuitBreaker
from conftest import ARTICLE, FakeStats, UpstreamStub
from merge_engine import BUYING_OPTIONS, LookupService
from store_hours import StoreHoursService
from test_store_hours import SPEC_BLOCK, store_page


client = TestClient(main.app)


@pytest.fixture(autouse=True)
def wired(monkeypatch, upstream: UpstreamStub):
    """Point the app's services at the stubbed upstream"""
    stats = FakeStats()
    fetcher = upstream.fetcher(stats=stats)
    breaker = CircuitBreaker(BUYING_OPTIONS)
    monkeypatch.setattr(main, "stats_service", stats)
    monkeypatch.setattr(main, "buying_options_breaker", breaker)
    monkeypatch.setattr(main, "lookup_service", LookupService(fetcher, breaker))
    monkeypatch.setattr(main, "store_hours_service", StoreHoursService(fetcher, market="au", lang="en"))
    return stats


class TestLookupEndpoint:
    """GET /api/lookup"""

    def test_returns_camel_case_record(self):
        response = client.get(f"/api/lookup?article={ARTICLE}&store=556&market=AU&lang=en")

        assert response.status_code == 200
        data = response.json()
        assert data["article"] == ARTICLE
        assert data["market"] == "au"
        assert data["storeClosed"] is False
        assert data["product"]["title"] == "BILLY Bookcase white"
        assert data["prices"]["store"]["raw"] == 89.0
        assert data["stock"]["qty"] == 145
        assert data["location"]["itemLocationTextPlain"] == "Aisle 12 Bin 3"

    def test_article_is_normalized(self):
        response = client.get("/api/lookup?article=404.923.31")
        assert response.status_code == 200
        assert response.json()["article"] == ARTICLE

    def test_missing_article(self):
        response = client.get("/api/lookup")
        assert response.status_code == 400
        assert "Missing article" in response.json()["detail"]

    def test_store_closed_is_not_an_error(self, upstream: UpstreamStub):
        upstream.respond("scan", status=503, json={"type": "STORE_CLOSED"})

        response = client.get(f"/api/lookup?article={ARTICLE}")

        assert response.status_code == 200
        assert response.json()["storeClosed"] is True
        assert response.json()["storeClosedMessage"]

    def test_unrelated_503_surfaces_upstream_status(self, upstream: UpstreamStub):
        upstream.respond("scan", status=503, text="Service Unavailable")

        response = client.get(f"/api/lookup?article={ARTICLE}")

        assert response.status_code == 502
        assert response.json()["upstreamStatus"] == 503
        assert "503" in response.json()["error"]

    def test_unknown_article_is_404(self, upstream: UpstreamStub):
        upstream.respond("product_details", status=404, text="Not Found")

        response = client.get("/api/lookup?article=99999999")

        assert response.status_code == 404
        assert response.json()["upstreamStatus"] == 404

    def test_request_is_counted(self, wired: FakeStats):
        client.get(f"/api/lookup?article={ARTICLE}")
        assert wired.article_requests == {ARTICLE: 1}


class TestMonitorPage:
    """GET /{article} minimal HTML"""

    def test_renders_stock_price_and_quantity(self):
        response = client.get(f"/{ARTICLE}?store=556")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.headers["cache-control"] == "no-store, max-age=0"
        assert "<title>BILLY Bookcase white — Bookcase, white, 80x28x202 cm</title>" in response.text
        assert "In Stock: Yes" in response.text
        assert "Price: $89.00" in response.text
        assert "Quantity: 145" in response.text

    def test_out_of_stock(self, upstream: UpstreamStub):
        upstream.respond("availability", json=[{"status": {"description": "Out of stock", "type": "OUT_OF_STOCK"}}])

        response = client.get(f"/{ARTICLE}")

        assert "In Stock: No" in response.text
        assert "Quantity: 0" in response.text

    def test_store_closed_line(self, upstream: UpstreamStub):
        upstream.respond("scan", status=503, json={"type": "STORE_CLOSED"})

        response = client.get(f"/{ARTICLE}")

        assert response.status_code == 200
        assert "Store Closed:" in response.text
        assert "Price: —" in response.text

    def test_upstream_failure_page(self, upstream: UpstreamStub):
        upstream.respond("availability", status=500, text="<b>boom</b>")

        response = client.get(f"/{ARTICLE}")

        assert response.status_code == 502
        assert response.text.startswith("Error\n")
        assert "&lt;b&gt;boom&lt;/b&gt;" in response.text

    def test_article_must_have_eight_digits(self, upstream: UpstreamStub):
        response = client.get("/1234")

        assert response.status_code == 404
        assert upstream.requests == []

    def test_non_article_paths_are_not_found(self, wired: FakeStats):
        for path in ("/favicon.ico", "/robots.txt", "/404923310"):
            assert client.get(path).status_code == 404
        assert wired.article_requests == {}


class TestStoreHoursEndpoint:
    """GET /api/stores/{slug}/hours"""

    def test_hours(self, upstream: UpstreamStub):
        upstream.respond("page", status=200, text=store_page(SPEC_BLOCK), content_type="text/html")

        response = client.get("/api/stores/tempe/hours")

        assert response.status_code == 200
        assert response.json()["hours"][0] == {"days": "Monday - Friday", "hours": "09:00 - 21:00"}

    def test_unknown_store(self):
        response = client.get("/api/stores/atlantis/hours")
        assert response.status_code == 404


class TestHealthEndpoints:
    """Health and admin endpoints"""

    def test_ping(self):
        response = client.get("/api/ping")
        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_health_check_endpoint(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["components"]["redis"] == "healthy"

    def test_admin_performance_endpoint(self):
        client.get(f"/api/lookup?article={ARTICLE}")

        response = client.get("/admin/performance")

        assert response.status_code == 200
        performance = response.json()["upstream_performance"]
        assert performance["scan"]["total_requests"] == 1
        assert performance["scan"]["success_rate_percent"] == 100.0

    def test_admin_circuit_breakers_endpoint(self):
        response = client.get("/admin/circuit-breakers")
        assert response.status_code == 200
        assert response.json()["circuit_breakers"][BUYING_OPTIONS]["state"] == "CLOSED"

    def test_admin_popular_articles_endpoint(self):
        client.get(f"/api/lookup?article={ARTICLE}")
        client.get(f"/api/lookup?article={ARTICLE}")

        response = client.get("/admin/popular-articles")

        assert response.status_code == 200
        assert response.json()["popular_articles"] == {ARTICLE: 2}
