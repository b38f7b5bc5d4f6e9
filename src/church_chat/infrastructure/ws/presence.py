"""In-process presence registry."""
from __future__ import annotations

import logging

from church_chat.domain.value_objects.enums import PresenceStatus

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Counts live connections per user.

    A user is online while at least one connection is open. State lives for
    the life of the process; every process keeps its own view.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def connect(self, user_id: str) -> bool:
        """Register one more connection. Return True if the user just came online."""
        count = self._counts.get(user_id, 0) + 1
        self._counts[user_id] = count
        logger.debug("Presence connect %s (connections=%d)", user_id, count)
        return count == 1

    def disconnect(self, user_id: str) -> bool:
        """Drop one connection. Return True if the user just went offline."""
        count = self._counts.get(user_id, 0)
        if count <= 0:
            return False
        if count == 1:
            del self._counts[user_id]
            logger.debug("Presence disconnect %s (offline)", user_id)
            return True
        self._counts[user_id] = count - 1
        logger.debug("Presence disconnect %s (connections=%d)", user_id, count - 1)
        return False

    def status_of(self, user_id: str) -> PresenceStatus:
        if self._counts.get(user_id, 0) > 0:
            return PresenceStatus.ONLINE
        return PresenceStatus.OFFLINE

    def connection_count(self, user_id: str) -> int:
        return self._counts.get(user_id, 0)

    def online_users(self) -> list[str]:
        return list(self._counts)

    def online_count(self) -> int:
        return len(self._counts)
