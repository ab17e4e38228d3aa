"""Core data types shared across the relay."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from whatbot.allow_list import AllowList


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


def _parse_timestamp(value: Any) -> int:
    """Epoch seconds from an int, float or numeric string; 0 if unparseable."""
    try:
        return int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True)
class Message:
    """A single chat message as reported by the transport."""

    id: str
    conversation_id: str
    sender_id: str
    body: str
    direction: Direction = Direction.INBOUND
    timestamp: int = 0

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Message:
        """Build a Message from a bridge JSON object.

        ``chatId`` falls back to ``from`` for one-to-one chats, where the
        bridge only reports the sender.
        """
        sender = str(data.get("from", ""))
        return cls(
            id=str(data.get("id", "")),
            conversation_id=str(data.get("chatId") or sender),
            sender_id=sender,
            body=data.get("body") or "",
            direction=Direction.OUTBOUND if data.get("fromMe") else Direction.INBOUND,
            timestamp=_parse_timestamp(data.get("timestamp")),
        )


@dataclass(frozen=True)
class AllowListEntry:
    """A conversation the operator enabled for automated replies."""

    conversation_id: str
    display_name: str


@dataclass(frozen=True)
class ActiveConfig:
    """Configuration captured when the relay becomes active.

    Shared read-only by every message cycle for the rest of the run.
    """

    persona: str
    self_name: str
    allow_list: AllowList
    window_size: int
