from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from nodriver import cdp

from .errors import ElementNotFoundError
from .log import log
from .pagejs import element_count, evaluate, js_str
from .waiter import wait_until

DIRECT = "direct"
HUMAN = "human"
STRATEGIES = (DIRECT, HUMAN)


def click_js(selector: str) -> str:
    return f"""(() => {{
      const el = document.querySelector({js_str(selector)});
      if (el) {{
        el.click();
        return true;
      }}
      return false;
    }})()"""


class InteractionDriver:
    """
    Starts playback of the live video so the page fires its data requests.

    `direct` waits for the media element and clicks it. `human` wraps the same
    wait+click in a fixed sequence of pointer/scroll gestures separated by
    random pauses. Only the order of steps is fixed, never the timings.
    """

    def __init__(
        self,
        strategy: str = DIRECT,
        media_selector: str = "video",
        delay_ms: Tuple[int, int] = (300, 1200),
        element_timeout: float = 80.0,
        poll_interval: float = 0.1,
        viewport: Tuple[int, int] = (1920, 1080),
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        log_fn: Callable[..., None] = log,
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown interaction strategy {strategy!r}")
        self.strategy = strategy
        self.media_selector = media_selector
        self.delay_ms = delay_ms
        self.element_timeout = element_timeout
        self.poll_interval = poll_interval
        self.viewport = viewport
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.log = log_fn
        self.steps: List[str] = []

    @classmethod
    def from_settings(cls, settings: Any, **kw) -> "InteractionDriver":
        return cls(
            strategy=settings.interaction,
            media_selector=settings.media_selector,
            delay_ms=settings.human_delay_ms,
            element_timeout=settings.element_timeout,
            poll_interval=settings.poll_interval,
            **kw,
        )

    async def activate(self, tab: Any, before_click: Optional[Callable[[], Awaitable[Any]]] = None) -> None:
        """Raises ElementNotFoundError when the media element never shows up."""
        self.steps = []
        if self.strategy == HUMAN:
            await self._pause()
            await self._pointer_move(tab)
            await self._pause()
            await self._small_scroll(tab)
            await self._pause()
            await self._wait_for_media(tab)
            await self._pause()
            if before_click is not None:
                await before_click()
            await self._click(tab)
            await self._pause()
        else:
            await self._wait_for_media(tab)
            if before_click is not None:
                await before_click()
            await self._click(tab)

    # -------------------------
    # Steps
    # -------------------------

    async def _pause(self) -> None:
        lo, hi = self.delay_ms
        self.steps.append("delay")
        await self._sleep(self.rng.uniform(lo, hi) / 1000.0)

    async def _pointer_move(self, tab: Any) -> None:
        self.steps.append("pointer")
        w, h = self.viewport
        x = self.rng.randint(int(w * 0.1), int(w * 0.9))
        y = self.rng.randint(int(h * 0.1), int(h * 0.9))
        try:
            await tab.send(cdp.input_.dispatch_mouse_event(type_="mouseMoved", x=x, y=y))
        except Exception as e:
            self.log("[interact] pointer move failed:", repr(e))

    async def _small_scroll(self, tab: Any) -> None:
        self.steps.append("scroll")
        dy = self.rng.randint(40, 240)
        try:
            await tab.evaluate(f"window.scrollBy(0, {dy})")
        except Exception as e:
            self.log("[interact] scroll failed:", repr(e))

    async def _wait_for_media(self, tab: Any) -> None:
        self.steps.append("wait")
        self.log("[interact] waiting for video element to appear...")

        async def _attached() -> bool:
            try:
                return await element_count(tab, self.media_selector) > 0
            except Exception:
                return False

        ok = await wait_until(_attached, poll_interval=self.poll_interval, timeout=self.element_timeout)
        if not ok:
            raise ElementNotFoundError("Video element not found within timeout period")

    async def _click(self, tab: Any) -> None:
        self.steps.append("click")
        self.log("[interact] clicking video element...")
        clicked = await evaluate(tab, click_js(self.media_selector))
        if clicked is not True:
            raise ElementNotFoundError("Video element not found after waiting")
