"""
In-memory stand-ins for a nodriver Browser and Tab.

FakeTab answers the page scripts the core evaluates by recognising them
(popup removal, list scroll, bottom check, click, element count) and
records every call in `calls`, so tests can assert on ordering.
"""

import json
from types import SimpleNamespace
from typing import Any, Awaitable, Callable, Dict, List, Optional

import pytest

from livecart.core.config import Settings

JOIN_URL = "https://live.shopee.co.id/api/v1/session/{sid}/joinv2?uuid=abc"
ITEMS_URL = "https://live.shopee.co.id/api/v1/session/{sid}/more_items?offset={offset}"


def join_body(items_cnt: Any = 2, **session: Any) -> str:
    s = {"session_id": 123, "title": "Flash sale", "items_cnt": items_cnt}
    s.update(session)
    return json.dumps({"data": {"session": s}})


def items_body(*items: Dict[str, Any]) -> str:
    return json.dumps({"data": {"items": list(items)}})


class FakeTab:
    def __init__(self, content: str = "<html><body>live</body></html>", media: bool = True):
        self.target = SimpleNamespace(target_id="T0", type_="page", browser_context_id="CTX0")
        self.content = content
        self.media = media
        self.popup = False
        self.at_bottom = False
        self.url = "about:blank"
        self.calls: List[str] = []
        self.sent: List[str] = []
        self.handlers: Dict[str, Callable[..., Awaitable[Any]]] = {}
        self.on_click: Optional[Callable[["FakeTab"], Awaitable[Any]]] = None
        self.on_scroll: Optional[Callable[["FakeTab", int], Awaitable[Any]]] = None
        self.scrolls = 0
        self.close_calls = 0
        self.close_error: Optional[Exception] = None
        self._next_body: Any = ("", False)
        self._rid = 0

    # nodriver Tab surface

    def add_handler(self, event_type: Any, handler: Callable[..., Awaitable[Any]]) -> None:
        self.handlers[event_type.__name__] = handler

    async def send(self, cmd: Any) -> Any:
        name = getattr(cmd, "__name__", type(cmd).__name__)
        self.sent.append(name)
        if name == "get_response_body":
            return self._next_body
        return None

    async def get(self, url: str) -> "FakeTab":
        self.calls.append("navigate")
        self.url = url
        return self

    async def get_content(self) -> str:
        self.calls.append("content")
        return self.content

    async def evaluate(self, js: str) -> Any:
        if ".remove()" in js:
            self.calls.append("popup")
            if self.popup:
                self.popup = False
                return True
            return False
        if "scrollHeight" in js:
            self.calls.append("bottom")
            return self.at_bottom
        if "scrollTop +=" in js:
            self.calls.append("list_scroll")
            self.scrolls += 1
            if self.on_scroll is not None:
                await self.on_scroll(self, self.scrolls)
            return True
        if ".click()" in js:
            self.calls.append("click")
            if not self.media:
                return False
            if self.on_click is not None:
                await self.on_click(self)
            return True
        if "querySelectorAll(" in js:
            self.calls.append("count")
            return {"type": "number", "value": 1 if self.media else 0}
        if "window.scrollBy" in js:
            self.calls.append("page_scroll")
            return None
        raise AssertionError(f"unexpected script: {js[:80]}")

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    # test helpers

    async def emit_response(self, url: str, body: Any, base64_encoded: bool = False) -> None:
        """Replay the CDP events Chrome sends for one finished response."""
        self._rid += 1
        rid = f"R{self._rid}"
        received = self.handlers.get("ResponseReceived")
        finished = self.handlers.get("LoadingFinished")
        if received is None or finished is None:
            return
        await received(SimpleNamespace(request_id=rid, response=SimpleNamespace(url=url)))
        self._next_body = (body, base64_encoded)
        await finished(SimpleNamespace(request_id=rid))


class FakeConnection:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.sent: List[str] = []

    async def send(self, cmd: Any) -> Any:
        name = getattr(cmd, "__name__", type(cmd).__name__)
        self.sent.append(name)
        # arguments of a not-yet-started cdp command generator
        args = dict(cmd.gi_frame.f_locals) if getattr(cmd, "gi_frame", None) else {}
        b = self.browser
        if name == "get_browser_contexts":
            return list(b.extra_contexts)
        if name == "create_browser_context":
            b.created_contexts += 1
            ctx = f"NEWCTX{b.created_contexts}"
            b.extra_contexts.append(ctx)
            return ctx
        if name == "create_target":
            tab = b.next_tab or FakeTab()
            b.next_tab = None
            b.opened += 1
            tab.target = SimpleNamespace(
                target_id=f"T{b.opened}",
                type_="page",
                browser_context_id=args.get("browser_context_id"),
            )
            if not b.hide_new_tabs:
                b.targets.append(tab)
            b.last_tab = tab
            return tab.target.target_id
        return None


class FakeBrowser:
    def __init__(self, existing_context: Optional[str] = "DEFAULT"):
        self.targets: List[Any] = []
        self.extra_contexts: List[str] = []
        self.created_contexts = 0
        self.opened = 0
        self.next_tab: Optional[FakeTab] = None
        self.last_tab: Optional[FakeTab] = None
        self.hide_new_tabs = False
        self.connection = FakeConnection(self)
        if existing_context:
            warm = FakeTab()
            warm.target = SimpleNamespace(target_id="WARM", type_="page", browser_context_id=existing_context)
            self.targets.append(warm)

    @property
    def tabs(self) -> List[Any]:
        return [t for t in self.targets if t.target.type_ == "page"]

    async def update_targets(self) -> None:
        return None


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        nav_timeout=1.0,
        element_timeout=0.2,
        response_timeout=0.3,
        collect_budget=2.0,
        poll_interval=0.01,
        scroll_pause=0.01,
        initial_settle=0.0,
    )


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()
