"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from whatbot.models import AllowListEntry, Direction, Message
from whatbot.transport.base import DispatchError, HistoryFetchError


def make_message(
    body: str,
    *,
    sender: str = "c1",
    conversation: str | None = None,
    msg_id: str = "m1",
    outbound: bool = False,
) -> Message:
    return Message(
        id=msg_id,
        conversation_id=conversation or sender,
        sender_id=sender,
        body=body,
        direction=Direction.OUTBOUND if outbound else Direction.INBOUND,
    )


class FakeTransport:
    """In-memory transport that records every call."""

    def __init__(self) -> None:
        self.chats: list[AllowListEntry] = [
            AllowListEntry("c1", "Sam"),
            AllowListEntry("c2", "Kim"),
        ]
        self.history: dict[str, list[Message]] = {}
        self.contact_names: dict[str, str] = {"c1": "Sam", "c2": "Kim"}
        self.self_name = "Alex Smith"
        self.fail_history: set[str] = set()
        self.fail_send: set[str] = set()
        self.fail_composing = False

        self.started_with: list[Any] = []
        self.stopped = False
        self.fetches: list[tuple[str, int]] = []
        self.composing: list[str] = []
        self.sent: list[tuple[str, str]] = []
        self.contact_lookups: list[str] = []

    async def start(self, session: Any | None) -> None:
        self.started_with.append(session)

    async def stop(self) -> None:
        self.stopped = True

    async def list_conversations(self) -> list[AllowListEntry]:
        return list(self.chats)

    async def fetch_recent_messages(self, conversation_id: str, limit: int) -> list[Message]:
        self.fetches.append((conversation_id, limit))
        if conversation_id in self.fail_history:
            raise HistoryFetchError("bridge unavailable")
        return self.history.get(conversation_id, [])[-limit:]

    async def send_composing(self, conversation_id: str) -> None:
        if self.fail_composing:
            raise RuntimeError("typing failed")
        self.composing.append(conversation_id)

    async def send_message(self, conversation_id: str, text: str) -> None:
        if conversation_id in self.fail_send:
            raise DispatchError("send failed")
        self.sent.append((conversation_id, text))

    async def resolve_self_display_name(self) -> str:
        return self.self_name

    async def resolve_contact_display_name(self, sender_id: str) -> str:
        self.contact_lookups.append(sender_id)
        return self.contact_names.get(sender_id, sender_id)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
