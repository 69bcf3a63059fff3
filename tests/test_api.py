"""Tests for the FastAPI server."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from cdp_http import ClientSettings, SyncEngine
from cdp_http.api import auth
from cdp_http.api.server import CDPHttpAPI

EVIL_ORIGIN = "https://evil.example"


def upstream(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down.example":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(
        200,
        json={"cookie": request.headers.get("Cookie"), "ua": request.headers.get("User-Agent")},
    )


@pytest.fixture(autouse=True)
def clear_api_keys():
    yield
    auth.API_KEYS.clear()
    auth.rate_limit_storage.clear()


@pytest.fixture
def api(browser_state, clock):
    engine = SyncEngine(ClientSettings(cache_ttl=300), connector=browser_state.connect, clock=clock)
    return CDPHttpAPI(engine=engine, transport=httpx.MockTransport(upstream))


@pytest.fixture
def client(api):
    auth.load_api_keys("tester:tester-key:1000")
    with TestClient(api.app) as test_client:
        test_client.headers["Authorization"] = "Bearer tester-key"
        yield test_client



def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["fetch"] == "/fetch"


def test_health_does_not_touch_browser(client, browser_state):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["session"]["connection_state"] == "disconnected"
    assert data["session"]["cookie_count"] == 0
    assert browser_state.connects == 0


def test_fetch_uses_browser_session(client, browser_state):
    response = client.post("/fetch", json={"url": "https://httpbin.org/anything"})
    assert response.status_code == 200
    data = response.json()
    assert data["status_code"] == 200
    assert data["user_agent"] == browser_state.user_agent
    body = json.loads(data["body"])
    assert body == {"cookie": "y=b", "ua": browser_state.user_agent}


def test_fetch_chrome_unavailable(client, browser_state):
    browser_state.available = False
    response = client.post("/fetch", json={"url": "https://httpbin.org/anything"})
    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["error_code"] == "CHROME_UNAVAILABLE"
    assert detail["error"] == "chrome unavailable and cache expired"


def test_fetch_upstream_error(client):
    response = client.post("/fetch", json={"url": "https://down.example/"})
    assert response.status_code == 502
    assert response.json()["detail"]["error_code"] == "UPSTREAM_ERROR"


def test_fetch_rejects_invalid_url(client):
    response = client.post("/fetch", json={"url": "not a url"})
    assert response.status_code == 422


def test_refresh_and_session(client, browser_state, clock):
    response = client.post("/session/refresh")
    assert response.status_code == 200
    data = response.json()
    assert data["cookie_count"] == 1
    assert data["cache_valid"] is True
    assert data["user_agent"] == browser_state.user_agent

    # Navegador caído dentro del TTL: se conserva la caché
    browser_state.available = False
    clock.advance(60)
    response = client.post("/session/refresh")
    assert response.status_code == 200
    assert response.json()["stats"]["cache_fallbacks"] == 1

    clock.advance(300)
    response = client.post("/session/refresh")
    assert response.status_code == 503

    assert client.get("/session").json()["cache_valid"] is False


def test_cookies_filtered_by_domain(client, browser_state):
    browser_state.cookies.append({"name": "sid", "value": "1", "domain": ".example.com", "httpOnly": True})
    client.post("/session/refresh")

    data = client.get("/cookies").json()
    assert data["count"] == 2

    data = client.get("/cookies", params={"domain": "www.example.com"}).json()
    assert data["count"] == 0
    data = client.get("/cookies", params={"domain": "example.com"}).json()
    assert data["count"] == 1
    assert data["cookies"][0]["name"] == "sid"
    assert data["cookies"][0]["httpOnly"] is True


def test_api_key_required(client):
    assert auth.load_api_keys("ci:secret-key:2") == 1
    del client.headers["Authorization"]

    assert client.get("/session").status_code == 401
    assert client.get("/cookies").status_code == 401
    assert client.post("/fetch", json={"url": "https://httpbin.org/anything"}).status_code == 401
    assert client.get("/session", headers={"Authorization": "Bearer wrong"}).status_code == 401

    headers = {"Authorization": "Bearer secret-key"}
    assert client.get("/session", headers=headers).status_code == 200
    assert client.get("/session", headers=headers).status_code == 200
    assert client.get("/session", headers=headers).status_code == 429

    # Rutas públicas
    assert client.get("/health").status_code == 200
    assert client.get("/").status_code == 200


def test_no_keys_means_no_access(api, browser_state):
    with TestClient(api.app) as test_client:
        assert test_client.get("/cookies").status_code == 401
        assert test_client.get("/admin/stats").status_code == 401
        response = test_client.post("/fetch", json={"url": "https://httpbin.org/anything"})
        assert response.status_code == 401
    assert browser_state.connects == 0


def test_admin_stats(client):
    auth.load_api_keys("admin:admin-key")
    assert client.get("/admin/stats").status_code == 403

    response = client.get("/admin/stats", headers={"Authorization": "Bearer admin-key"})
    assert response.status_code == 200
    data = response.json()
    assert "tester" in data["stats"]
    assert "refreshes" in data["engine"]


def test_cross_origin_pages_get_no_cors_by_default(client):
    preflight = client.options(
        "/fetch",
        headers={
            "Origin": EVIL_ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert "access-control-allow-origin" not in preflight.headers

    del client.headers["Authorization"]
    response = client.post(
        "/fetch",
        json={"url": "https://httpbin.org/anything"},
        headers={"Origin": EVIL_ORIGIN},
    )
    assert response.status_code == 401
    assert "access-control-allow-origin" not in response.headers
    assert "y=b" not in response.text


def test_cors_only_for_configured_origins(browser_state, clock):
    engine = SyncEngine(ClientSettings(), connector=browser_state.connect, clock=clock)
    api = CDPHttpAPI(
        engine=engine,
        transport=httpx.MockTransport(upstream),
        cors_origins=["https://app.example"],
    )
    with TestClient(api.app) as test_client:
        allowed = test_client.options(
            "/cookies",
            headers={"Origin": "https://app.example", "Access-Control-Request-Method": "GET"},
        )
        assert allowed.status_code == 200
        assert allowed.headers["access-control-allow-origin"] == "https://app.example"
        assert "access-control-allow-credentials" not in allowed.headers

        denied = test_client.options(
            "/cookies",
            headers={"Origin": EVIL_ORIGIN, "Access-Control-Request-Method": "GET"},
        )
        assert denied.headers.get("access-control-allow-origin") != EVIL_ORIGIN


def test_add_and_revoke_api_key():
    key = auth.add_api_key("tmp", rate_limit=5)
    assert len(key) == 32
    assert auth.validate_api_key(key) == {"name": "tmp", "rate_limit": 5}
    assert auth.revoke_api_key(key)
    assert not auth.revoke_api_key(key)


def test_load_api_keys_skips_malformed():
    assert auth.load_api_keys("broken, :nokey, ok:k1:10") == 1
    assert auth.validate_api_key("k1")["rate_limit"] == 10
