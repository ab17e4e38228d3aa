"""Connection lifecycle state machine and message-cycle driver."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from whatbot.allow_list import AllowList
from whatbot.bot.handler import handle_inbound_message
from whatbot.config import settings
from whatbot.llm.prompt import first_name
from whatbot.models import ActiveConfig, Direction, Message
from whatbot.session_store import PersistenceError

if TYPE_CHECKING:
    from whatbot.bot.dispatcher import ReplyDispatcher
    from whatbot.llm.client import CompletionClient
    from whatbot.models import AllowListEntry
    from whatbot.session_store import SessionStore
    from whatbot.transport.base import Transport

logger = logging.getLogger(__name__)

SetupFunc = Callable[["Transport"], Awaitable[tuple[str, list["AllowListEntry"]]]]

PAIRING_INSTRUCTIONS = (
    "1. Open WhatsApp on your phone\n"
    "2. Tap Menu or Settings and select Linked devices\n"
    "3. Link this device with the code below\n"
)


class AuthenticationError(Exception):
    """The transport rejected the pairing handshake or stored session."""


class State(str, Enum):
    DISCONNECTED = "disconnected"
    PAIRING_REQUIRED = "pairing_required"
    AUTHENTICATING = "authenticating"
    CONFIG_PENDING = "config_pending"
    ACTIVE = "active"
    AUTH_FAILED = "auth_failed"
    SHUTTING_DOWN = "shutting_down"


class Orchestrator:
    """Drives the relay from pairing through to answering messages.

    Lifecycle events move the state forward; only ``ACTIVE`` processes
    messages. Everything arriving in another state is dropped.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        session_store: SessionStore,
        completion: CompletionClient,
        dispatcher: ReplyDispatcher,
        setup: SetupFunc | None = None,
        window_size: int | None = None,
        display: Callable[[str], None] = print,
    ) -> None:
        self.transport = transport
        self.session_store = session_store
        self.completion = completion
        self.dispatcher = dispatcher
        self.setup = setup
        self.window_size = window_size or settings.history_window_size
        self._display = display

        self.state = State.DISCONNECTED
        self.config: ActiveConfig | None = None
        self._conversation_locks: dict[str, asyncio.Lock] = {}
        self._setup_in_progress = False
        self._closed = asyncio.Event()

    def _transition(self, new_state: State) -> None:
        logger.info("State %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    async def start(self) -> None:
        """Load any stored session and connect the transport."""
        session = self.session_store.load()
        if session is None:
            logger.info("No stored session — waiting for pairing challenge")
        await self.transport.start(session)

    async def handle_event(self, event_type: str, data: dict[str, Any]) -> None:
        """Route a raw transport event by type."""
        if event_type == "qr":
            await self.on_pairing_challenge(data.get("qr") or data.get("code") or "")
        elif event_type == "authenticated":
            await self.on_authenticated(data.get("session"))
        elif event_type == "auth_failure":
            await self.on_auth_failure(data.get("message") or data.get("reason") or "")
        elif event_type == "ready":
            await self.on_ready()
        elif event_type == "message":
            await self.on_message(Message.from_payload(data))
        elif event_type == "disconnected":
            if self.state is not State.SHUTTING_DOWN:
                logger.warning("Transport disconnected: %s", data.get("reason", "unknown"))
        else:
            logger.debug("Unhandled transport event: %s", event_type)

    async def on_pairing_challenge(self, payload: str) -> None:
        if self.state not in (State.DISCONNECTED, State.PAIRING_REQUIRED):
            logger.warning("Pairing challenge ignored in state %s", self.state.value)
            return
        if self.state is not State.PAIRING_REQUIRED:
            self._transition(State.PAIRING_REQUIRED)
        logger.info("Pairing challenge received — waiting for the phone to link")
        self._display(f"\n{PAIRING_INSTRUCTIONS}\n{payload}\n")

    async def on_authenticated(self, session: Any) -> None:
        if self.state not in (State.DISCONNECTED, State.PAIRING_REQUIRED):
            logger.warning("Authentication event ignored in state %s", self.state.value)
            return
        self._transition(State.AUTHENTICATING)
        logger.info("WhatsApp authentication successful")

        if session is not None:
            try:
                self.session_store.save(session)
            except PersistenceError:
                logger.exception("SESSION FAILURE — pairing will be required on next start")

        self._transition(State.CONFIG_PENDING)

    async def on_auth_failure(self, reason: str) -> None:
        if self.state is State.SHUTTING_DOWN:
            return
        error = AuthenticationError(reason or "handshake rejected")
        logger.error("WHATSAPP AUTHENTICATION FAILURE: %s", error)
        self.session_store.clear()
        self._transition(State.AUTH_FAILED)

    async def on_ready(self) -> None:
        if self.state is not State.CONFIG_PENDING:
            logger.info("Transport ready in state %s — nothing to configure", self.state.value)
            return
        logger.info("Whatbot is ready")
        if self.setup is None:
            logger.warning("No operator setup configured — call configure() to activate")
            return

        if self._setup_in_progress:
            logger.info("Operator setup already running — ready event ignored")
            return

        self._setup_in_progress = True
        try:
            persona, entries = await self.setup(self.transport)
            await self.configure(persona, entries)
        except ValueError:
            logger.exception("PROMPT FAILURE — relay stays unconfigured")
        finally:
            self._setup_in_progress = False

    async def configure(self, persona: str, entries: list[AllowListEntry]) -> ActiveConfig:
        """Capture persona and allow-list, then start answering messages.

        Raises ValueError for an empty selection; the state is unchanged.
        """
        if self.state is not State.CONFIG_PENDING:
            msg = f"Cannot configure in state {self.state.value}"
            raise RuntimeError(msg)

        allow_list = AllowList()
        allow_list.configure(entries)

        self_name = first_name(await self.transport.resolve_self_display_name())
        self.config = ActiveConfig(
            persona=persona,
            self_name=self_name,
            allow_list=allow_list,
            window_size=self.window_size,
        )
        self._transition(State.ACTIVE)
        logger.info("AI activated. Listening for messages...")
        return self.config

    async def on_message(self, message: Message) -> bool:
        """Run one message cycle. Returns True if a reply was sent."""
        if self.state is not State.ACTIVE or self.config is None:
            logger.debug("Message %s dropped in state %s", message.id, self.state.value)
            return False
        if message.direction is Direction.OUTBOUND:
            return False

        if not self.config.allow_list.is_enabled(message.conversation_id):
            logger.debug("Message ignored: %s is not enabled", message.conversation_id)
            return False

        lock = self._conversation_locks.setdefault(message.conversation_id, asyncio.Lock())
        async with lock:
            try:
                return await handle_inbound_message(
                    message,
                    self.config,
                    transport=self.transport,
                    completion=self.completion,
                    dispatcher=self.dispatcher,
                )
            except Exception:
                logger.exception("Message cycle failed for %s", message.conversation_id)
                return False

    def shutdown(self) -> None:
        """Enter SHUTTING_DOWN and release ``wait_closed()``."""
        if self.state is not State.SHUTTING_DOWN:
            self._transition(State.SHUTTING_DOWN)
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()
