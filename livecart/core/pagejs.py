from __future__ import annotations

import json
from typing import Any


def unwrap_js_value(x: Any) -> Any:
    """
    nodriver sometimes returns RemoteObject-like dicts:
    {"type":"number","value":3} instead of plain values.
    """
    if isinstance(x, dict):
        if "value" in x:
            return x["value"]
        if "result" in x and isinstance(x["result"], dict) and "value" in x["result"]:
            return x["result"]["value"]
    return x


def js_str(s: str) -> str:
    return json.dumps(s)


async def evaluate(tab: Any, js: str) -> Any:
    return unwrap_js_value(await tab.evaluate(js))


async def element_count(tab: Any, selector: str) -> int:
    n = await evaluate(tab, f"document.querySelectorAll({js_str(selector)}).length")
    try:
        return int(n)
    except (TypeError, ValueError):
        return 0
