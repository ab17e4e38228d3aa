"""Interactive console setup: persona text and enabled contacts."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from whatbot.config import settings

if TYPE_CHECKING:
    from whatbot.models import AllowListEntry
    from whatbot.transport.base import Transport

logger = logging.getLogger(__name__)

NO_SELECTION = "You must choose at least one contact."


def parse_selection(answer: str, choices: list[AllowListEntry]) -> list[AllowListEntry]:
    """Turn "1, 3" into the matching entries (1-based, duplicates ignored).

    Raises ValueError for an empty selection or an unknown number.
    """
    picked: list[AllowListEntry] = []
    for token in answer.replace(" ", ",").split(","):
        if not token:
            continue
        if not token.isdigit() or not 1 <= int(token) <= len(choices):
            msg = f"Invalid choice: {token}"
            raise ValueError(msg)
        entry = choices[int(token) - 1]
        if entry not in picked:
            picked.append(entry)
    if not picked:
        raise ValueError(NO_SELECTION)
    return picked


def _read_in_daemon(func: Callable[[str], str], prompt: str) -> asyncio.Future[str]:
    """Run a blocking prompt in a daemon thread and return a future for its answer.

    The default executor is joined when the event loop closes, so a prompt
    still waiting on stdin there would block shutdown. A daemon thread
    is abandoned at exit instead.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def _settle(result: str | None, exc: BaseException | None) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _worker() -> None:
        try:
            answer = func(prompt)
        except BaseException as exc:  # noqa: BLE001
            outcome: tuple[str | None, BaseException | None] = (None, exc)
        else:
            outcome = (answer, None)
        # Loop is closed when the process is already shutting down.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_settle, *outcome)

    threading.Thread(target=_worker, name="operator-prompt", daemon=True).start()
    return future


class OperatorSetup:
    """Asks the operator for a persona and which chats to enable.

    Blocking ``input()`` runs in a daemon thread so bridge events keep
    flowing while the prompt waits, and a shutdown signal is not held up
    by an unanswered prompt.
    """

    def __init__(
        self,
        *,
        default_persona: str | None = None,
        max_choices: int | None = None,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
    ) -> None:
        self.default_persona = (
            default_persona if default_persona is not None else settings.default_prompt
        )
        self.max_choices = max_choices or settings.max_setup_choices
        self._input = input_func
        self._output = output_func

    async def _ask(self, prompt: str) -> str:
        return await _read_in_daemon(self._input, prompt)

    async def __call__(self, transport: Transport) -> tuple[str, list[AllowListEntry]]:
        chats = await transport.list_conversations()
        choices = chats[: self.max_choices]
        if not choices:
            logger.warning("No conversations available to enable")

        hint = f" [{self.default_persona}]" if self.default_persona else ""
        answer = await self._ask(
            f"Define your AI personality (press enter for default){hint}:\n"
        )
        persona = answer.strip() or self.default_persona

        self._output("Select contacts:")
        for i, entry in enumerate(choices, start=1):
            self._output(f"  {i}) {entry.display_name}")

        while True:
            answer = await self._ask("Numbers, comma separated: ")
            try:
                selected = parse_selection(answer.strip(), choices)
            except ValueError as exc:
                self._output(str(exc) if str(exc) == NO_SELECTION else f"{exc}. {NO_SELECTION}")
                continue
            return persona, selected
