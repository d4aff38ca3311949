from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from . import selectors

# Stage timeouts (seconds) per deployment profile.
PROFILES: Dict[str, float] = {
    "standard": 80.0,
    "fast": 30.0,
}

DEFAULT_LIVE_URL = "https://live.shopee.co.id/share?from=live&session={session_id}"
DEFAULT_JOIN_PATTERN = "/api/v1/session/{session_id}/joinv2"
DEFAULT_ITEMS_PATTERN = "/api/v1/session/{session_id}/more_items"
DEFAULT_ENDED_MARKER = "Live Streaming Berakhir"


@dataclass(frozen=True)
class Settings:
    cdp_endpoint: str = "http://localhost:9222"
    host: str = "0.0.0.0"
    port: int = 3000
    profile: str = "standard"

    nav_timeout: float = 80.0
    element_timeout: float = 80.0
    response_timeout: float = 80.0
    collect_budget: float = 80.0
    poll_interval: float = 0.1

    scroll_step: int = 500
    scroll_pause: float = 0.5
    initial_settle: float = 2.0
    stall_limit: int = 3
    bottom_margin: int = 100
    bottom_stall_limit: int = 2

    interaction: str = "direct"
    human_delay_ms: Tuple[int, int] = (300, 1200)

    live_url_template: str = DEFAULT_LIVE_URL
    join_pattern: str = DEFAULT_JOIN_PATTERN
    items_pattern: str = DEFAULT_ITEMS_PATTERN
    ended_marker: str = DEFAULT_ENDED_MARKER

    media_selector: str = selectors.MEDIA_SEL
    popup_selector: str = selectors.POPUP_SEL
    popup_fallback_selector: str = selectors.POPUP_FALLBACK_SEL
    list_selector: str = selectors.LIST_SEL
    list_fallback_selector: str = selectors.LIST_FALLBACK_SEL

    def live_url(self, session_id: str) -> str:
        return self.live_url_template.replace("{session_id}", session_id)

    def with_overrides(self, **kw) -> "Settings":
        return replace(self, **kw)

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from the process environment (call load_dotenv() first)."""
        env = os.environ if env is None else env

        def s(name: str, default: str) -> str:
            v = (env.get(name) or "").strip()
            return v or default

        profile = s("LIVECART_PROFILE", "standard").lower()
        if profile not in PROFILES:
            raise ValueError(f"LIVECART_PROFILE must be one of {sorted(PROFILES)}, got {profile!r}")
        stage = PROFILES[profile]

        interaction = s("INTERACTION", "direct").lower()
        if interaction not in ("direct", "human"):
            raise ValueError(f"INTERACTION must be 'direct' or 'human', got {interaction!r}")

        return cls(
            cdp_endpoint=s("CDP_ENDPOINT", cls.cdp_endpoint),
            host=s("HOST", cls.host),
            port=_int(env, "PORT", cls.port),
            profile=profile,
            nav_timeout=_float(env, "NAV_TIMEOUT", stage),
            element_timeout=_float(env, "ELEMENT_TIMEOUT", stage),
            response_timeout=_float(env, "RESPONSE_TIMEOUT", stage),
            collect_budget=_float(env, "COLLECT_BUDGET", stage),
            poll_interval=_float(env, "POLL_INTERVAL", cls.poll_interval),
            scroll_step=_int(env, "SCROLL_STEP", cls.scroll_step),
            scroll_pause=_float(env, "SCROLL_PAUSE", cls.scroll_pause),
            initial_settle=_float(env, "INITIAL_SETTLE", cls.initial_settle),
            stall_limit=_int(env, "STALL_LIMIT", cls.stall_limit),
            bottom_margin=_int(env, "BOTTOM_MARGIN", cls.bottom_margin),
            bottom_stall_limit=_int(env, "BOTTOM_STALL_LIMIT", cls.bottom_stall_limit),
            interaction=interaction,
            human_delay_ms=_delay_range(env, "HUMAN_DELAY_MS", cls.human_delay_ms),
            live_url_template=s("LIVE_URL_TEMPLATE", DEFAULT_LIVE_URL),
            join_pattern=s("JOIN_PATTERN", DEFAULT_JOIN_PATTERN),
            items_pattern=s("ITEMS_PATTERN", DEFAULT_ITEMS_PATTERN),
            ended_marker=s("ENDED_MARKER", DEFAULT_ENDED_MARKER),
            media_selector=s("MEDIA_SELECTOR", selectors.MEDIA_SEL),
            popup_selector=s("POPUP_SELECTOR", selectors.POPUP_SEL),
            popup_fallback_selector=s("POPUP_FALLBACK_SELECTOR", selectors.POPUP_FALLBACK_SEL),
            list_selector=s("LIST_SELECTOR", selectors.LIST_SEL),
            list_fallback_selector=s("LIST_FALLBACK_SELECTOR", selectors.LIST_FALLBACK_SEL),
        )


def _int(env, name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float(env, name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _delay_range(env, name: str, default: Tuple[int, int]) -> Tuple[int, int]:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    parts = [p.strip() for p in raw.split(",")]
    try:
        lo, hi = int(parts[0]), int(parts[1])
    except (ValueError, IndexError):
        raise ValueError(f"{name} must look like 'min,max' in ms, got {raw!r}") from None
    if lo < 0 or hi < lo:
        raise ValueError(f"{name} needs 0 <= min <= max, got {raw!r}")
    return lo, hi
