from __future__ import annotations
import datetime, os, sys

def _debug_enabled() -> bool:
    return os.getenv("LOG_DEBUG", "0").strip() not in ("0", "false", "False", "")

def log(*args):
    ts = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    msg = " ".join(str(a) for a in args)
    print(f"[{ts}] {msg}", file=sys.stdout, flush=True)

def debug(*args):
    if _debug_enabled():
        log("[debug]", *args)

def request_log(request_id: str):
    """Bind a request id so every line of one request can be grepped together."""
    def _log(*args):
        log(f"[{request_id}]", *args)
    return _log
