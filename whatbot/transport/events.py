"""Lightweight async HTTP server receiving events from the WhatsApp bridge.

Runs in the same asyncio event loop as the orchestrator. Uses aiohttp's
AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from whatbot.config import settings

if TYPE_CHECKING:
    from whatbot.bot.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

ORCHESTRATOR_KEY = web.AppKey("orchestrator", object)

# Strong references to in-flight handler tasks.
_tasks: set[asyncio.Task] = set()


async def _handle_event(request: web.Request) -> web.Response:
    """Accept POST /events and hand the event to the orchestrator."""
    if settings.event_secret:
        secret = request.headers.get("X-Webhook-Secret", "")
        if secret != settings.event_secret:
            logger.warning("Bridge event rejected: invalid secret")
            return web.json_response({"error": "unauthorized"}, status=401)

    try:
        payload: dict[str, Any] = await request.json()
    except Exception:
        logger.warning("Bridge event bad request: invalid JSON")
        return web.json_response({"error": "invalid JSON"}, status=400)

    event_type = payload.get("type") if isinstance(payload, dict) else None
    if not event_type:
        return web.json_response({"error": "missing type"}, status=400)

    logger.debug("Bridge event received: type=%s", event_type)

    # Return immediately; the orchestrator may block on network I/O or setup.
    orchestrator = request.app[ORCHESTRATOR_KEY]
    task = asyncio.create_task(_run_handler(orchestrator, event_type, payload.get("data") or {}))
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)

    return web.json_response({"ok": True})


async def _run_handler(orchestrator: Orchestrator, event_type: str, data: dict[str, Any]) -> None:
    """Run one event through the orchestrator with error logging."""
    try:
        await orchestrator.handle_event(event_type, data)
    except Exception:
        logger.exception("Bridge event handler failed: type=%s", event_type)


async def _health(request: web.Request) -> web.Response:
    """GET /health — liveness plus current lifecycle state."""
    orchestrator = request.app[ORCHESTRATOR_KEY]
    return web.json_response({"status": "ok", "state": orchestrator.state.value})


def _create_web_app(orchestrator: Orchestrator) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[ORCHESTRATOR_KEY] = orchestrator
    app.router.add_get("/health", _health)
    app.router.add_post("/events", _handle_event)
    return app


class EventServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.host = host or settings.event_host
        self.port = settings.event_port if port is None else port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        if not settings.event_secret:
            logger.warning("EVENT_SECRET empty — bridge events are not authenticated")

        app = _create_web_app(self.orchestrator)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Event server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Event server stopped")
