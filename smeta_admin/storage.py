from __future__ import annotations

import json
import logging
import os
from typing import Any

from msal_extensions import FilePersistence, FilePersistenceWithDataProtection
from msal_extensions.persistence import PersistenceNotFound

logger = logging.getLogger(__name__)


class SessionStorage:
    """Session payload persisted between runs of the client.

    The payload is a small JSON object (``accessToken``, ``refreshToken``,
    ``isAuthenticated``, ``user``). On Windows the file is DPAPI-encrypted.
    """

    def __init__(self, path: str):
        self._persistence = self._build_persistence(path)

    @staticmethod
    def _build_persistence(path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            return FilePersistenceWithDataProtection(path)
        except Exception:
            return FilePersistence(path)

    @property
    def location(self) -> str:
        return self._persistence.get_location()

    def load(self) -> dict[str, Any] | None:
        try:
            raw = self._persistence.load()
        except (PersistenceNotFound, OSError):
            return None

        if not raw or not raw.strip():
            return None

        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable session payload at %s", self.location)
            return None

        if not isinstance(payload, dict):
            logger.warning("Ignoring non-object session payload at %s", self.location)
            return None
        return payload

    def save(self, payload: dict[str, Any]) -> None:
        self._persistence.save(json.dumps(payload))

    def clear(self) -> None:
        self._persistence.save("")
