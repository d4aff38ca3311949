from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Set, Tuple
from urllib.parse import urlsplit

import nodriver as nd

from .errors import BrowserConnectionError
from .log import log

DEFAULT_CDP_PORT = 9222
# nodriver looks for a local chrome unless given a path; attaching never spawns it
REMOTE_EXECUTABLE = "remote-browser"


def parse_endpoint(endpoint: str) -> Tuple[str, int]:
    """'http://host:9222' / 'host:9222' / 'host' -> (host, port)."""
    raw = (endpoint or "").strip()
    if "://" not in raw:
        raw = "http://" + raw
    parts = urlsplit(raw)
    return parts.hostname or "localhost", parts.port or DEFAULT_CDP_PORT


async def connect(endpoint: str) -> Any:
    """Attach to an already running browser. Never launches one."""
    log("[cdp] connecting to", endpoint)
    try:
        host, port = parse_endpoint(endpoint)
        # host+port makes nodriver attach to the existing process instead of spawning
        browser = await nd.start(host=host, port=port, browser_executable_path=REMOTE_EXECUTABLE)
    except Exception as e:
        raise BrowserConnectionError(endpoint, e) from e
    log("[cdp] connected", f"{host}:{port}")
    return browser


class BrowserConnector:
    """
    Holds the shared handle to the remote browser.

    The browser process outlives every request; we keep one CDP connection
    to it. A caller that sees that connection fail calls forget(), and the
    next acquire() attaches again.
    """

    def __init__(self, endpoint: str, connect_fn: Callable[[str], Any] = connect):
        self.endpoint = endpoint
        self._connect = connect_fn
        self._browser: Optional[Any] = None
        self._lock = asyncio.Lock()
        # contexts we created ourselves; their tabs get the regional profile
        self.profiled_contexts: Set[str] = set()

    async def acquire(self) -> Any:
        async with self._lock:
            if self._browser is None:
                self._browser = await self._connect(self.endpoint)
                self.profiled_contexts.clear()
            return self._browser

    def forget(self) -> None:
        """Drop the cached handle (the remote process is left running)."""
        self._browser = None
        self.profiled_contexts.clear()
