"""Transport protocol — the narrow interface the relay needs from a chat transport."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from whatbot.models import AllowListEntry, Message


class TransportError(Exception):
    """Raised when a transport operation fails."""


class HistoryFetchError(TransportError):
    """Raised when recent messages for a conversation cannot be fetched."""


class DispatchError(TransportError):
    """Raised when a message cannot be sent."""


@runtime_checkable
class Transport(Protocol):
    """Operations the relay consumes from the messaging transport."""

    async def start(self, session: Any | None) -> None:
        """Connect, restoring ``session`` if given (else begin pairing)."""
        ...

    async def stop(self) -> None:
        ...

    async def list_conversations(self) -> list[AllowListEntry]:
        """Known conversations in the transport's order."""
        ...

    async def fetch_recent_messages(self, conversation_id: str, limit: int) -> list[Message]:
        """Most recent ``limit`` messages, oldest first. Raises HistoryFetchError."""
        ...

    async def send_composing(self, conversation_id: str) -> None:
        ...

    async def send_message(self, conversation_id: str, text: str) -> None:
        """Send text to a conversation. Raises DispatchError."""
        ...

    async def resolve_self_display_name(self) -> str:
        ...

    async def resolve_contact_display_name(self, sender_id: str) -> str:
        ...
