"""Conversations enabled for automated replies."""

import logging
from collections.abc import Iterable

from whatbot.models import AllowListEntry

logger = logging.getLogger(__name__)


class AllowList:
    """Set of enabled conversation IDs, fixed after ``configure()``."""

    def __init__(self) -> None:
        self._entries: dict[str, AllowListEntry] | None = None

    @property
    def configured(self) -> bool:
        return self._entries is not None

    @property
    def entries(self) -> tuple[AllowListEntry, ...]:
        if self._entries is None:
            return ()
        return tuple(self._entries.values())

    def configure(self, entries: Iterable[AllowListEntry]) -> None:
        """Set the enabled conversations. Allowed exactly once.

        Raises ValueError on an empty selection and RuntimeError if the
        list was already configured.
        """
        if self._entries is not None:
            msg = "Allow-list is already configured; reconfiguration is not supported"
            raise RuntimeError(msg)

        selected = {e.conversation_id: e for e in entries}
        if not selected:
            msg = "You must choose at least one contact."
            raise ValueError(msg)

        self._entries = selected
        logger.info(
            "AI enabled for %d conversation(s): %s",
            len(selected),
            ", ".join(e.display_name for e in selected.values()),
        )

    def is_enabled(self, conversation_id: str) -> bool:
        if self._entries is None:
            return False
        return conversation_id in self._entries

    def display_name(self, conversation_id: str) -> str | None:
        if self._entries is None or conversation_id not in self._entries:
            return None
        return self._entries[conversation_id].display_name
