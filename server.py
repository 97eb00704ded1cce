#!/usr/bin/env python3
"""SNCF Travel Watch — repository root entry point.

Starts the subscription poll loop and the MCP tool server in one process.

Usage:
    uv run server.py           # HTTP mode (default)
    uv run server.py --stdio   # stdio mode for Claude Desktop
"""
from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn
from starlette.middleware.cors import CORSMiddleware

from sncf_watch.infrastructure.settings import Settings, load_settings
from sncf_watch.mcp import Services, create_mcp_app, create_services

logger = logging.getLogger("sncf_watch.server")


async def serve(settings: Settings, services: Services, stdio: bool) -> None:
    mcp = create_mcp_app(services.subscription_svc)
    poll_task = asyncio.create_task(services.poll_loop.run_forever(), name="poll-loop")
    try:
        if stdio:
            # Claude Desktop mode
            await mcp.run_stdio_async()
            return

        # HTTP mode with CORS
        app = mcp.streamable_http_app()
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        server = uvicorn.Server(uvicorn.Config(app, host=settings.host, port=settings.port))

        def _on_poll_done(task: asyncio.Task) -> None:  # type: ignore[type-arg]
            if not task.cancelled() and task.exception() is not None:
                logger.critical("Poll loop terminated: %r, shutting down", task.exception())
                server.should_exit = True

        poll_task.add_done_callback(_on_poll_done)
        logger.info("SNCF Travel Watch listening on http://%s:%d/mcp", settings.host, settings.port)
        await server.serve()
    finally:
        services.pacer.stop()
        try:
            await asyncio.wait_for(poll_task, timeout=settings.fetch_timeout + 5)
        except asyncio.TimeoutError:
            poll_task.cancel()
        except Exception:
            logger.exception("Poll loop exited with an error")
        await services.client.close()


if __name__ == "__main__":
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(serve(settings, create_services(settings), stdio="--stdio" in sys.argv))
