# livecart/main.py
from __future__ import annotations

import asyncio
import traceback

import uvicorn
from dotenv import load_dotenv

from .core.config import Settings
from .core.log import log
from .core.service import LiveCartService
from .web.app import create_app

async def main():
    load_dotenv()
    settings = Settings.from_env()
    service = LiveCartService(settings)
    app = create_app(service)

    log("[boot] cdp endpoint:", settings.cdp_endpoint, "profile:", settings.profile,
        "interaction:", settings.interaction)
    log(f"[boot] listening on http://{settings.host}:{settings.port}")
    log(f"[boot] example: http://{settings.host}:{settings.port}/api/items-count/176778196")

    server = uvicorn.Server(uvicorn.Config(app, host=settings.host, port=settings.port, log_level="info"))
    try:
        await server.serve()
    except Exception as e:
        log("[FATAL]", repr(e))
        traceback.print_exc()
        raise

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log("Interrupted")

if __name__ == "__main__":
    run()
