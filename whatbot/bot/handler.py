"""Inbound message processing pipeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from whatbot.llm.client import CompletionError
from whatbot.llm.prompt import build_prompt
from whatbot.transport.base import TransportError

if TYPE_CHECKING:
    from whatbot.bot.dispatcher import ReplyDispatcher
    from whatbot.llm.client import CompletionClient
    from whatbot.models import ActiveConfig, Message
    from whatbot.transport.base import Transport

logger = logging.getLogger(__name__)


async def handle_inbound_message(
    message: Message,
    config: ActiveConfig,
    *,
    transport: Transport,
    completion: CompletionClient,
    dispatcher: ReplyDispatcher,
) -> bool:
    """Answer one inbound message. Returns True if a reply was sent.

    Messages from conversations outside the allow-list are dropped before
    any transport or completion call. Transport and completion failures
    end this cycle only; they are logged and never raised.
    """
    conversation_id = message.conversation_id
    if not config.allow_list.is_enabled(conversation_id):
        logger.debug("Message ignored: %s is not enabled", conversation_id)
        return False

    try:
        contact_name = await transport.resolve_contact_display_name(message.sender_id)
        logger.info("%s: %s", contact_name, message.body)

        history = await transport.fetch_recent_messages(conversation_id, config.window_size)
    except TransportError:
        logger.exception("Could not load context for %s", conversation_id)
        return False

    prompt = build_prompt(
        config.persona,
        config.self_name,
        contact_name,
        message,
        history,
        window_size=config.window_size,
    )

    await dispatcher.composing(conversation_id)

    try:
        reply = await completion.complete(prompt)
    except CompletionError:
        logger.exception("Completion failed for %s — no reply sent", conversation_id)
        return False

    return await dispatcher.dispatch(conversation_id, reply, sender_name=config.self_name)
