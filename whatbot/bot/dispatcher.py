"""Sends generated replies back into a conversation."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from whatbot.transport.base import DispatchError

if TYPE_CHECKING:
    from whatbot.transport.base import Transport

logger = logging.getLogger(__name__)


class ReplyDispatcher:
    """Composing indicator and reply delivery for one transport."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def composing(self, conversation_id: str) -> None:
        """Show the typing indicator. Best effort; failures are ignored."""
        with contextlib.suppress(Exception):
            await self.transport.send_composing(conversation_id)

    async def dispatch(self, conversation_id: str, text: str, *, sender_name: str) -> bool:
        """Send ``text`` verbatim. Returns True on success."""
        if not text:
            logger.warning("Empty completion for %s — nothing sent", conversation_id)
            return False

        try:
            await self.transport.send_message(conversation_id, text)
        except DispatchError:
            logger.exception("Reply to %s failed", conversation_id)
            return False

        logger.info("%s: %s", sender_name, text)
        return True
