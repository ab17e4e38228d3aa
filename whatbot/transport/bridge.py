"""WhatsApp HTTP bridge client using aiohttp."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from whatbot.config import settings
from whatbot.models import AllowListEntry, Message
from whatbot.transport.base import DispatchError, HistoryFetchError, TransportError

logger = logging.getLogger(__name__)


class BridgeTransport:
    """Talks to a local WhatsApp Web bridge over its REST API.

    The bridge owns the browser session; events flow back through the
    event server (see ``whatbot.transport.events``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        webhook_url: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.bridge_url).rstrip("/")
        self._token = token if token is not None else settings.bridge_token
        self.webhook_url = webhook_url or settings.get_webhook_url()
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the shared aiohttp session."""
        if self._session is None or self._session.closed:
            headers = {}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._session = aiohttp.ClientSession(headers=headers)
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def _chat_path(conversation_id: str) -> str:
        return f"/chats/{quote(conversation_id, safe='')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error: type[TransportError] = TransportError,
        **kwargs: Any,
    ) -> Any:
        """Perform a request and return the decoded JSON body (or None)."""
        session = self._get_session()
        try:
            async with session.request(method, self._url(path), **kwargs) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    msg = f"{method} {path} failed: status={resp.status} body={text[:200]}"
                    raise error(msg)
                if resp.content_type == "application/json":
                    return await resp.json()
                return None
        except aiohttp.ClientError as exc:
            msg = f"{method} {path} failed (network error): {exc}"
            raise error(msg) from exc

    async def start(self, session: Any | None) -> None:
        logger.info("Starting WhatsApp bridge session (restore=%s)", session is not None)
        await self._request(
            "POST",
            "/session/start",
            json={"session": session, "webhook_url": self.webhook_url},
        )

    async def stop(self) -> None:
        try:
            await self._request("POST", "/session/stop")
        except TransportError:
            logger.warning("Bridge session stop failed", exc_info=True)

    async def list_conversations(self) -> list[AllowListEntry]:
        chats = await self._request("GET", "/chats") or []
        return [
            AllowListEntry(conversation_id=str(c["id"]), display_name=c.get("name") or str(c["id"]))
            for c in chats
        ]

    async def fetch_recent_messages(self, conversation_id: str, limit: int) -> list[Message]:
        data = await self._request(
            "GET",
            f"{self._chat_path(conversation_id)}/messages",
            params={"limit": str(limit)},
            error=HistoryFetchError,
        )
        if not isinstance(data, list):
            msg = f"Unexpected history payload for {conversation_id}"
            raise HistoryFetchError(msg)
        return [Message.from_payload(item) for item in data]

    async def send_composing(self, conversation_id: str) -> None:
        await self._request("POST", f"{self._chat_path(conversation_id)}/typing")

    async def send_message(self, conversation_id: str, text: str) -> None:
        await self._request(
            "POST",
            f"{self._chat_path(conversation_id)}/messages",
            json={"text": text},
            error=DispatchError,
        )
        logger.debug("Message sent to %s (%d chars)", conversation_id, len(text))

    async def resolve_self_display_name(self) -> str:
        info = await self._request("GET", "/me") or {}
        return info.get("pushname") or ""

    async def resolve_contact_display_name(self, sender_id: str) -> str:
        contact = await self._request("GET", f"/contacts/{quote(sender_id, safe='')}") or {}
        return contact.get("shortName") or contact.get("name") or contact.get("pushname") or sender_id

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
