"""Whatbot entry point."""

import asyncio
import logging
import signal
import sys

from whatbot.bot.dispatcher import ReplyDispatcher
from whatbot.bot.orchestrator import Orchestrator
from whatbot.bot.setup import OperatorSetup
from whatbot.config import ConfigurationError, settings
from whatbot.llm.client import CompletionClient
from whatbot.session_store import SessionStore
from whatbot.transport.bridge import BridgeTransport
from whatbot.transport.events import EventServer

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Wire the components together and run until a shutdown signal."""
    transport = BridgeTransport()
    completion = CompletionClient(api_key=settings.openai_api_key)
    orchestrator = Orchestrator(
        transport=transport,
        session_store=SessionStore(),
        completion=completion,
        dispatcher=ReplyDispatcher(transport),
        setup=OperatorSetup(),
    )
    server = EventServer(orchestrator)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, orchestrator.shutdown)

    try:
        await server.start()
        logger.info("Starting WhatsApp client...")
        await orchestrator.start()
        await orchestrator.wait_closed()
    finally:
        await transport.stop()
        await server.stop()
        await transport.close()
        await completion.close()


def main() -> None:
    """Check configuration, then run the relay."""
    try:
        settings.require_api_key()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    asyncio.run(run())


if __name__ == "__main__":
    main()
