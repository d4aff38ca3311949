from __future__ import annotations

from typing import Any, Callable

from .log import debug, log
from .pagejs import evaluate, js_str


def remove_popup_js(selector: str, fallback: str) -> str:
    return f"""(() => {{
      const dialog = document.querySelector({js_str(selector)}) ||
                     document.querySelector({js_str(fallback)});
      if (dialog) {{
        dialog.remove();
        return true;
      }}
      return false;
    }})()"""


async def remove_popup(
    tab: Any,
    selector: str,
    fallback: str,
    log_fn: Callable[..., None] = log,
) -> bool:
    """
    Delete the interstitial dialog node if it is on the page.

    The dialog can come back at any moment, so callers run this before every
    step that needs the page unobstructed. A missing dialog is the normal case.
    """
    try:
        removed = await evaluate(tab, remove_popup_js(selector, fallback))
    except Exception as e:
        debug("[popup] check failed:", repr(e))
        return False
    if removed is True:
        log_fn("[popup] removed dialog")
        return True
    return False
