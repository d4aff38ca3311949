from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from .log import log
from .pagejs import evaluate, js_str
from .popup import remove_popup
from .responses import ResponseCorrelator

COMPLETE = "complete"
STALLED = "stalled"
EXHAUSTED = "exhausted"
BUDGET = "budget"


@dataclass
class CollectionResult:
    items: List[Dict[str, Any]] = field(default_factory=list)
    expected: int = 0
    complete: bool = False
    iterations: int = 0
    stop_reason: str = COMPLETE


def scroll_js(selector: str, fallback: str, step: int) -> str:
    return f"""(() => {{
      const container = document.querySelector({js_str(selector)}) ||
                        document.querySelector({js_str(fallback)});
      if (container) {{
        container.scrollTop += {int(step)};
        return true;
      }}
      window.scrollBy(0, {int(step)});
      return false;
    }})()"""


def at_bottom_js(selector: str, fallback: str, margin: int) -> str:
    return f"""(() => {{
      const container = document.querySelector({js_str(selector)}) ||
                        document.querySelector({js_str(fallback)});
      if (container) {{
        return container.scrollHeight - container.scrollTop <= container.clientHeight + {int(margin)};
      }}
      return window.innerHeight + window.scrollY >= document.body.scrollHeight - {int(margin)};
    }})()"""


async def _scroll(tab: Any, settings: Any, log_fn) -> None:
    try:
        await tab.evaluate(scroll_js(settings.list_selector, settings.list_fallback_selector, settings.scroll_step))
    except Exception as e:
        log_fn("[collect] scroll failed:", repr(e))


async def _at_bottom(tab: Any, settings: Any) -> bool:
    try:
        v = await evaluate(tab, at_bottom_js(settings.list_selector, settings.list_fallback_selector, settings.bottom_margin))
    except Exception:
        return False
    return v is True


async def collect_items(
    tab: Any,
    correlator: ResponseCorrelator,
    expected: int,
    settings: Any,
    log_fn: Callable[..., None] = log,
) -> CollectionResult:
    """
    Scroll the virtualized product list until one of these fires first:
      - collected >= expected                            (complete)
      - no growth for `stall_limit` iterations           (stalled)
      - list within `bottom_margin` px of its end and
        no growth for `bottom_stall_limit` iterations    (exhausted)
      - `collect_budget` seconds elapsed                 (budget)
    """
    store = correlator.store
    log_fn(f"[collect] expected items count: {expected}")

    # the page fetches its first batch by itself once playback starts
    await asyncio.sleep(settings.initial_settle)
    correlator.pump()

    previous = len(store)
    no_new = 0
    iterations = 0
    reason = COMPLETE
    started = time.time()

    while len(store) < expected:
        if time.time() - started > settings.collect_budget:
            log_fn(f"[collect] reached maximum scroll time ({settings.collect_budget:g}s), stopping...")
            reason = BUDGET
            break

        iterations += 1
        await remove_popup(tab, settings.popup_selector, settings.popup_fallback_selector, log_fn=log_fn)
        await _scroll(tab, settings, log_fn)
        await asyncio.sleep(settings.scroll_pause)
        correlator.pump()

        size = len(store)
        if size == previous:
            no_new += 1
            if no_new >= settings.stall_limit:
                log_fn("[collect] no new items after scrolling, stopping...")
                reason = STALLED
                break
        else:
            no_new = 0
        previous = size
        log_fn(f"[collect] collected {size} / {expected} items")

        if size >= expected:
            log_fn("[collect] all items collected!")
            break

        if 0 < size < expected and no_new >= settings.bottom_stall_limit:
            if await _at_bottom(tab, settings):
                log_fn("[collect] reached bottom and no new items, stopping...")
                reason = EXHAUSTED
                break

    items = store.values()
    return CollectionResult(
        items=items,
        expected=expected,
        complete=len(items) >= expected,
        iterations=iterations,
        stop_reason=reason,
    )
