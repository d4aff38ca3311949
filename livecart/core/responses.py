from __future__ import annotations

import asyncio
import base64
import json
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from nodriver import cdp

from .errors import ParseError
from .log import log

JOIN = "join"
ITEMS = "items"


def session_pattern(template: str, session_id: str) -> str:
    """Fill `{session_id}` into a URL regex, escaping the id."""
    return template.replace("{session_id}", re.escape(str(session_id)))


def decode_body(body: Any, url: str = "") -> Any:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    try:
        return json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"response from {url or '?'} is not JSON: {e}") from e


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """{data:{items:[...]}} -> items; anything else -> []."""
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict):
        return []
    items = data.get("items")
    if not isinstance(items, list):
        return []
    return [it for it in items if isinstance(it, dict)]


class DedupStore:
    """item_id -> record. First occurrence wins, insertion order is kept."""

    def __init__(self):
        self._items: Dict[Any, Dict[str, Any]] = {}

    def add(self, record: Dict[str, Any]) -> bool:
        item_id = record.get("item_id")
        if item_id is None or item_id in self._items:
            return False
        self._items[item_id] = record
        return True

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: Any) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._items.values())

    def values(self) -> List[Dict[str, Any]]:
        return list(self._items.values())


class ResponseCorrelator:
    """
    Watches one tab's network traffic for the join and item responses.

    The CDP handlers only decode and enqueue; state (join payload, dedup
    store) is changed by `pump()` on the consumer side, so readers never race
    the interception callbacks.
    """

    def __init__(self, join_pattern: str, items_pattern: str, log_fn: Callable[..., None] = log):
        self.join_re = re.compile(join_pattern)
        self.items_re = re.compile(items_pattern)
        self.queue: "asyncio.Queue[Tuple[str, Any]]" = asyncio.Queue()
        self.join_payload: Optional[Dict[str, Any]] = None
        self.store = DedupStore()
        self.log = log_fn
        self.tab: Any = None
        self._pending: Dict[str, str] = {}

    # ---- producer side

    def classify(self, url: str) -> Optional[str]:
        if self.join_re.search(url):
            return JOIN
        if self.items_re.search(url):
            return ITEMS
        return None

    def feed(self, url: str, body: Any) -> Optional[str]:
        """Decode a matching response body and enqueue it. Returns its kind."""
        kind = self.classify(url)
        if kind is None:
            return None
        try:
            payload = decode_body(body, url)
        except ParseError as e:
            self.log(f"[net] dropped {kind} response:", e)
            return None
        self.queue.put_nowait((kind, payload))
        return kind

    async def attach(self, tab: Any) -> None:
        self.tab = tab
        tab.add_handler(cdp.network.ResponseReceived, self._on_response)
        tab.add_handler(cdp.network.LoadingFinished, self._on_finished)
        await tab.send(cdp.network.enable())

    async def _on_response(self, event: Any) -> None:
        url = event.response.url
        if self.classify(url) is not None:
            self._pending[str(event.request_id)] = url

    async def _on_finished(self, event: Any) -> None:
        # the body is only retrievable once loading has finished
        url = self._pending.pop(str(event.request_id), None)
        if url is None:
            return
        try:
            body, base64_encoded = await self.tab.send(cdp.network.get_response_body(event.request_id))
        except Exception as e:
            self.log("[net] body unavailable", url, repr(e))
            return
        if base64_encoded:
            body = base64.b64decode(body)
        self.feed(url, body)

    # ---- consumer side

    def pump(self) -> int:
        """Apply everything queued so far. Returns how many responses were applied."""
        applied = 0
        while True:
            try:
                kind, payload = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            applied += 1
            if kind == JOIN:
                self.join_payload = payload
            else:
                self._merge(payload)
        return applied

    def _merge(self, payload: Any) -> None:
        items = extract_items(payload)
        for it in items:
            if it.get("item_id") is None:
                self.log("[net] item missing item_id:", it)
                continue
            self.store.add(it)
        if items:
            self.log(f"[net] received {len(items)} items, total unique: {len(self.store)}")

    def has_join(self) -> bool:
        self.pump()
        return self.join_payload is not None
