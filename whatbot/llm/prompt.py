"""Prompt assembly from persona and recent chat history."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from whatbot.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from whatbot.models import Message

logger = logging.getLogger(__name__)


def first_name(display_name: str) -> str:
    """Return the first word of a display name ("Alex Smith" -> "Alex")."""
    parts = display_name.split(" ", 1)
    return parts[0]


def self_label(self_name: str) -> str:
    return f"Me ({self_name})"


def build_prompt(
    persona: str,
    self_name: str,
    contact_name: str,
    trigger: Message,
    history: Sequence[Message],
    window_size: int | None = None,
) -> str:
    """Render persona plus the recent transcript into a completion prompt.

    Only the last ``window_size`` history messages are considered, oldest
    first. A message whose body already occurs anywhere in the text built
    so far is skipped, which also drops the triggering message when the
    transport includes it in history. Messages from the triggering sender
    are labelled with the contact's name, everything else as
    ``Me (<self_name>)``. The result ends with ``Me (<self_name>):`` so the
    model continues in our voice.

    Args:
        persona: Instruction text prepended to every prompt.
        self_name: Our first name, used in the "Me (...)" label.
        contact_name: Display name of the person who wrote ``trigger``.
        trigger: The inbound message being answered.
        history: Recent messages for the conversation, oldest first.
        window_size: Maximum number of history messages to render.

    Returns:
        The exact prompt text for the completion call.
    """
    limit = settings.history_window_size if window_size is None else window_size
    window = list(history)[-limit:] if limit > 0 else []
    me = self_label(self_name)

    prompt = f"{persona} {contact_name}:\n"
    for item in window:
        label = contact_name if item.sender_id == trigger.sender_id else me
        if item.body in prompt:
            continue
        prompt += f"{label}: {item.body}\n"

    prompt += f"{me}:"

    logger.debug(
        "Built prompt for %s: %d history message(s), %d chars",
        trigger.conversation_id,
        len(window),
        len(prompt),
    )
    return prompt
