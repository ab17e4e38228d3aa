"""Durable storage for the transport's opaque session blob."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from whatbot.config import settings

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the session cannot be written to disk."""


class SessionStore:
    """Reads and writes a single JSON session file.

    The blob is whatever the transport produced on authentication; this
    class never inspects it.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.session_path)

    def load(self) -> Any | None:
        """Return the stored session, or None if absent or unreadable."""
        if not self.path.exists():
            logger.info("No stored session at %s — pairing required", self.path)
            return None
        try:
            session = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Stored session at %s is unreadable — ignoring it", self.path)
            return None
        logger.info("Loaded stored session from %s", self.path)
        return session

    def save(self, session: Any) -> None:
        """Write the session atomically (temp file + rename).

        Raises PersistenceError on failure; the previous file, if any, is
        left untouched.
        """
        tmp_name = ""
        try:
            data = json.dumps(session)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".session-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            msg = f"Failed to write session to {self.path}: {exc}"
            raise PersistenceError(msg) from exc
        logger.info("Session saved to %s", self.path)

    def clear(self) -> None:
        """Delete the stored session so the next start re-pairs."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to remove stored session at %s", self.path)
