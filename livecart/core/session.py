from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from nodriver import cdp

from .errors import LiveCartError
from .log import log, request_log
from .waiter import wait_until


@dataclass(frozen=True)
class BrowserProfile:
    """Regional desktop fingerprint applied to tabs in contexts we create."""

    width: int = 1920
    height: int = 1080
    locale: str = "id-ID"
    timezone: str = "Asia/Jakarta"
    headers: Dict[str, str] = field(default_factory=lambda: {
        "Accept-Language": "id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    })


DEFAULT_PROFILE = BrowserProfile()


# -------------------------
# Browsing context
# -------------------------


def _existing_contexts(browser: Any) -> List[str]:
    out: List[str] = []
    for t in getattr(browser, "targets", []) or []:
        info = getattr(t, "target", None)
        if info is None or getattr(info, "type_", None) != "page":
            continue
        ctx = getattr(info, "browser_context_id", None)
        if ctx and ctx not in out:
            out.append(ctx)
    return out


async def resolve_context(browser: Any, profiled: Set[str]) -> Tuple[str, bool]:
    """
    Pick the browsing context for a new tab -> (context_id, apply_profile).

    The first context that already exists wins so a warmed profile (cookies,
    storage) carries over between requests. Only when the browser has none do
    we create one, and only tabs in contexts we created get the profile.
    """
    await browser.update_targets()
    contexts = _existing_contexts(browser)
    for ctx in await browser.connection.send(cdp.target.get_browser_contexts()) or []:
        if ctx not in contexts:
            contexts.append(ctx)

    if contexts:
        ctx = contexts[0]
        log("[session] using existing browser context")
        return ctx, ctx in profiled

    ctx = await browser.connection.send(
        cdp.target.create_browser_context(dispose_on_detach=False)
    )
    profiled.add(ctx)
    log("[session] created new browser context")
    return ctx, True


async def apply_profile(tab: Any, profile: BrowserProfile) -> None:
    await tab.send(cdp.emulation.set_device_metrics_override(
        width=profile.width,
        height=profile.height,
        device_scale_factor=1,
        mobile=False,
    ))
    await tab.send(cdp.emulation.set_locale_override(locale=profile.locale))
    await tab.send(cdp.emulation.set_timezone_override(timezone_id=profile.timezone))
    await tab.send(cdp.network.enable())
    await tab.send(cdp.network.set_extra_http_headers(headers=cdp.network.Headers(profile.headers)))


async def _find_tab(browser: Any, target_id: str, timeout: float = 5.0) -> Optional[Any]:
    found: List[Any] = []

    async def _lookup() -> bool:
        await browser.update_targets()
        for t in browser.tabs:
            if getattr(t.target, "target_id", None) == target_id:
                found.append(t)
                return True
        return False

    await wait_until(_lookup, poll_interval=0.1, timeout=timeout)
    return found[0] if found else None


# -------------------------
# Page session
# -------------------------


class PageSession:
    """
    One tab owned by one request.

    close() runs at most once and never raises, so it is safe on every
    exit path; `async with` guarantees it is reached.
    """

    def __init__(self, tab: Any, request_id: str, context_id: Optional[str] = None):
        self.tab = tab
        self.request_id = request_id
        self.context_id = context_id
        self.closed = False
        self.log = request_log(request_id)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.tab.close()
            self.log("[session] closed tab")
        except Exception as e:
            self.log("[session] tab already closed or close failed:", repr(e))

    async def __aenter__(self) -> "PageSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def open_session(
    browser: Any,
    request_id: str,
    profiled: Set[str],
    profile: BrowserProfile = DEFAULT_PROFILE,
) -> PageSession:
    ctx, needs_profile = await resolve_context(browser, profiled)
    target_id = await browser.connection.send(
        cdp.target.create_target("about:blank", browser_context_id=ctx)
    )
    tab = await _find_tab(browser, target_id)
    if tab is None:
        # the target exists remotely even if we never saw it; close it by id
        try:
            await browser.connection.send(cdp.target.close_target(target_id))
        except Exception as e:
            log("[session] could not close orphan target", target_id, repr(e))
        raise LiveCartError(f"new tab {target_id} did not show up in the browser target list")

    session = PageSession(tab, request_id, ctx)
    if needs_profile:
        try:
            await apply_profile(tab, profile)
        except Exception:
            await session.close()
            raise
    session.log("[session] opened tab", target_id)
    return session
