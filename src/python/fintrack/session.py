"""Durable storage for the authenticated user id."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SESSION_KEY = "user_id"
DEFAULT_SESSION_FILE_NAME = "session.json"


class SessionStore:
    """Persist the logged-in user id across process restarts.

    An absent or unreadable file means nobody is logged in.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_user_id(self) -> int | None:
        payload = self._load()
        value = payload.get(SESSION_KEY)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed session value in %s", self.path)
            return None

    def set_user_id(self, user_id: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump({SESSION_KEY: int(user_id)}, handle)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError):
            return {}
        if not isinstance(payload, dict):
            return {}
        return payload
