from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from .browser import BrowserConnector
from .collector import collect_items
from .config import Settings
from .errors import (
    BroadcastEndedError,
    BrowserConnectionError,
    BrowserOperationError,
    InvalidSessionIdError,
    LiveCartError,
    ResponseTimeoutError,
)
from .interaction import InteractionDriver
from .log import request_log
from .popup import remove_popup
from .responses import ResponseCorrelator, session_pattern
from .results import count_payload, expected_count, products_payload
from .session import DEFAULT_PROFILE, BrowserProfile, PageSession, open_session
from .waiter import wait_until


def new_request_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def normalize_session_id(session_id: Any) -> str:
    sid = str(session_id if session_id is not None else "").strip()
    if not sid or not (sid.isascii() and sid.isdigit()):
        raise InvalidSessionIdError(f"Session ID is required and must be numeric, got {session_id!r}")
    return sid


class LiveCartService:
    """
    The two public operations: item count and product list of one live session.

    Both run the same preparation (open tab, load page, start playback, wait
    for the join response); products then drive the scroll collector. The tab
    is closed before any result or error leaves this class.
    """

    def __init__(
        self,
        settings: Settings,
        connector: Optional[BrowserConnector] = None,
        driver: Optional[InteractionDriver] = None,
        profile: BrowserProfile = DEFAULT_PROFILE,
    ):
        self.settings = settings
        self.connector = connector or BrowserConnector(settings.cdp_endpoint)
        self.driver = driver
        self.profile = profile

    # -------------------------
    # Public operations
    # -------------------------

    async def collect_count(self, session_id: Any) -> Dict[str, Any]:
        sid = normalize_session_id(session_id)
        rid = new_request_id()
        log = request_log(rid)
        try:
            session = await self._open(rid)
            async with session:
                _, expected = await self._prepare(session, sid)
        except LiveCartError as e:
            log("[error]", type(e).__name__, str(e))
            raise
        except Exception as e:
            # the tab is already closed here
            log("[FAILED]", repr(e))
            raise BrowserOperationError(str(e) or repr(e)) from e
        log(f"[count] session {sid} has {expected} items")
        return count_payload(sid, expected)

    async def collect_products(self, session_id: Any) -> Dict[str, Any]:
        sid = normalize_session_id(session_id)
        rid = new_request_id()
        log = request_log(rid)
        try:
            session = await self._open(rid)
            async with session:
                correlator, expected = await self._prepare(session, sid)
                log("[collect] scrolling to collect all items...")
                result = await collect_items(session.tab, correlator, expected, self.settings, log_fn=log)
                join = correlator.join_payload
        except LiveCartError as e:
            log("[error]", type(e).__name__, str(e))
            raise
        except Exception as e:
            # the tab is already closed here
            log("[FAILED]", repr(e))
            raise BrowserOperationError(str(e) or repr(e)) from e
        log(f"[collect] final item count: {len(result.items)} (expected: {expected}, stop: {result.stop_reason})")
        return products_payload(sid, join, result)

    # -------------------------
    # Shared flow
    # -------------------------

    async def _open(self, rid: str) -> PageSession:
        log = request_log(rid)
        log("[cdp] connecting to browser via CDP:", self.settings.cdp_endpoint)
        browser = await self.connector.acquire()
        try:
            return await open_session(browser, rid, self.connector.profiled_contexts, self.profile)
        except LiveCartError:
            raise
        except Exception as e:
            # a dead CDP connection surfaces here; re-attach on the next request
            self.connector.forget()
            raise BrowserConnectionError(self.settings.cdp_endpoint, e) from e

    def _driver(self, log) -> InteractionDriver:
        if self.driver is not None:
            return self.driver
        return InteractionDriver.from_settings(self.settings, log_fn=log)

    async def _prepare(self, session: PageSession, sid: str) -> Tuple[ResponseCorrelator, int]:
        st = self.settings
        tab = session.tab
        log = session.log

        correlator = ResponseCorrelator(
            session_pattern(st.join_pattern, sid),
            session_pattern(st.items_pattern, sid),
            log_fn=log,
        )
        await correlator.attach(tab)

        url = st.live_url(sid)
        log("[nav] navigating to:", url)
        try:
            await asyncio.wait_for(tab.get(url), timeout=st.nav_timeout)
        except asyncio.TimeoutError:
            raise ResponseTimeoutError(f"Page did not load within {st.nav_timeout:g}s: {url}") from None

        log("[nav] checking if live streaming has ended...")
        content = await tab.get_content()
        if st.ended_marker and st.ended_marker in (content or ""):
            raise BroadcastEndedError("Live streaming has ended")

        async def _clear_popup() -> bool:
            return await remove_popup(tab, st.popup_selector, st.popup_fallback_selector, log_fn=log)

        await _clear_popup()
        await self._driver(log).activate(tab, before_click=_clear_popup)

        log("[net] waiting for joinv2 response to get items count...")
        ok = await wait_until(correlator.has_join, poll_interval=st.poll_interval, timeout=st.response_timeout)
        if not ok:
            raise ResponseTimeoutError("joinv2 API response not received within timeout period")

        return correlator, expected_count(correlator.join_payload)
