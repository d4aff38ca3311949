import pytest
from fastapi.testclient import TestClient

from livecart.core.errors import (
    BroadcastEndedError,
    BrowserConnectionError,
    BrowserOperationError,
    InvalidSessionIdError,
    ResponseTimeoutError,
)
from livecart.core.browser import BrowserConnector
from livecart.core.config import Settings
from livecart.core.service import LiveCartService, normalize_session_id
from livecart.web.app import create_app

from conftest import FakeBrowser, FakeTab


class StubService:
    def __init__(self, error=None):
        self.error = error

    async def collect_count(self, session_id):
        normalize_session_id(session_id)
        if self.error:
            raise self.error
        return {"success": True, "sessionId": int(session_id), "itemsCount": 3}

    async def collect_products(self, session_id):
        normalize_session_id(session_id)
        if self.error:
            raise self.error
        return {
            "success": True,
            "sessionId": int(session_id),
            "metadata": {"expectedItemsCount": 1, "productsFound": 1, "collectionComplete": True, "session": {}},
            "products": [{"item_id": 1, "shop_id": 2, "stock": None}],
        }


def client(error=None):
    return TestClient(create_app(StubService(error)))


def test_health_and_index():
    c = client()
    assert c.get("/health").json() == {"status": "ok"}
    assert "usage" in c.get("/").json()


def test_items_count():
    r = client().get("/api/items-count/176778196")
    assert r.status_code == 200
    assert r.json()["itemsCount"] == 3


def test_products():
    r = client().get("/api/products/42")
    assert r.status_code == 200
    assert r.json()["products"][0]["item_id"] == 1


def test_non_numeric_id_is_client_error():
    r = client().get("/api/items-count/abc")
    assert r.status_code == 400
    assert r.json()["kind"] == InvalidSessionIdError.kind
    assert r.json()["success"] is False


@pytest.mark.parametrize(
    "error, status",
    [
        (BroadcastEndedError("Live streaming has ended"), 400),
        (BrowserConnectionError("http://localhost:9222"), 500),
        (ResponseTimeoutError("joinv2 API response not received"), 500),
        (BrowserOperationError("Target crashed"), 500),
    ],
)
def test_error_mapping(error, status):
    r = client(error).get("/api/products/42")
    assert r.status_code == status
    body = r.json()
    assert body["success"] is False
    assert body["kind"] == error.kind
    assert body["error"] == str(error)


def test_crashed_tab_returns_json_error():
    browser = FakeBrowser()
    tab = FakeTab()

    async def crashed():
        raise RuntimeError("Target crashed")

    tab.get_content = crashed
    browser.next_tab = tab

    async def fake_connect(endpoint):
        return browser

    settings = Settings(nav_timeout=1.0, element_timeout=0.2, response_timeout=0.3, poll_interval=0.01)
    service = LiveCartService(settings, connector=BrowserConnector(settings.cdp_endpoint, connect_fn=fake_connect))
    r = TestClient(create_app(service)).get("/api/products/176778196")
    assert r.status_code == 500
    body = r.json()
    assert body == {"success": False, "error": "Target crashed", "kind": BrowserOperationError.kind}
    assert tab.close_calls == 1
