"""Failure kinds raised by the collection core.

`kind` is a stable machine name surfaced to callers; the HTTP layer maps
kinds to status codes.
"""

from __future__ import annotations


class LiveCartError(Exception):
    kind = "error"


class InvalidSessionIdError(LiveCartError):
    kind = "invalid_session_id"


class BrowserConnectionError(LiveCartError, ConnectionError):
    kind = "connection"

    def __init__(self, endpoint: str, cause: object = None):
        msg = (
            f"Failed to connect to browser via CDP at {endpoint}. "
            "Make sure your browser is launched with --remote-debugging-port=9222."
        )
        if cause is not None:
            msg += f" Error: {cause}"
        super().__init__(msg)
        self.endpoint = endpoint


class BroadcastEndedError(LiveCartError):
    kind = "broadcast_ended"


class ElementNotFoundError(LiveCartError):
    kind = "element_not_found"


class ResponseTimeoutError(LiveCartError):
    kind = "response_timeout"


class PayloadShapeError(LiveCartError):
    kind = "payload_shape"


class ParseError(LiveCartError):
    # recovered inside the correlator, never reaches callers
    kind = "parse"


class BrowserOperationError(LiveCartError):
    """A CDP call failed mid-request (tab crashed, target detached...)."""

    kind = "browser"
