"""In-process room membership and delivery."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from church_chat.application.ports.connection import Connection
from church_chat.domain.value_objects.ids import room_key

logger = logging.getLogger(__name__)

SEND_FAILED_CLOSE_CODE = 1011


class RoomRouter:
    """Tracks live connections per user and their conversation room memberships."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._by_user: dict[str, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}

    def register(self, conn: Connection) -> None:
        assert conn.principal is not None, "only authenticated connections are registered"
        self._connections[conn.id] = conn
        self._by_user.setdefault(conn.principal.user_id, set()).add(conn.id)
        logger.debug("Registered %s (total=%d)", conn.id, len(self._connections))

    def unregister(self, conn: Connection) -> None:
        self.leave_all(conn)
        self._connections.pop(conn.id, None)
        if conn.principal is not None:
            ids = self._by_user.get(conn.principal.user_id)
            if ids is not None:
                ids.discard(conn.id)
                if not ids:
                    del self._by_user[conn.principal.user_id]
        logger.debug("Unregistered %s", conn.id)

    def join(self, conn: Connection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(conn.id)
        self._memberships.setdefault(conn.id, set()).add(room)

    def leave(self, conn: Connection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(conn.id)
            if not members:
                del self._rooms[room]
        rooms = self._memberships.get(conn.id)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._memberships[conn.id]

    def leave_all(self, conn: Connection) -> None:
        for room in list(self._memberships.get(conn.id, ())):
            self.leave(conn, room)

    def rooms_of(self, conn: Connection) -> set[str]:
        return set(self._memberships.get(conn.id, ()))

    def members(self, room: str) -> list[Connection]:
        return [self._connections[cid] for cid in self._rooms.get(room, ()) if cid in self._connections]

    def is_member(self, conn: Connection, room: str) -> bool:
        return conn.id in self._rooms.get(room, ())

    def connections_of(self, user_id: str) -> list[Connection]:
        return [self._connections[cid] for cid in self._by_user.get(user_id, ())]

    def all_connections(self) -> list[Connection]:
        return list(self._connections.values())

    def admin_connections(self) -> list[Connection]:
        return [c for c in self._connections.values() if c.principal is not None and c.principal.is_admin]

    def watchers_of(self, user_id: str) -> list[Connection]:
        """Other users' connections that have the room with ``user_id`` open."""
        watchers = []
        for conn in self._connections.values():
            if conn.principal is None or conn.principal.user_id == user_id:
                continue
            if room_key(user_id, conn.principal.user_id) in self._memberships.get(conn.id, ()):
                watchers.append(conn)
        return watchers

    async def broadcast(
        self,
        room: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        """Send an event to every member of ``room`` except the ``exclude`` connection id."""
        await self.send_many(
            (c for c in self.members(room) if c.id != exclude),
            event_type,
            data,
        )

    async def send_to_user(
        self,
        user_id: str,
        event_type: str,
        data: dict[str, Any],
        *,
        skip_room: str | None = None,
    ) -> None:
        targets = self.connections_of(user_id)
        if skip_room is not None:
            targets = [c for c in targets if not self.is_member(c, skip_room)]
        await self.send_many(targets, event_type, data)

    async def send_many(
        self,
        targets: Iterable[Connection],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        dead: list[Connection] = []
        for conn in list(targets):
            try:
                await conn.send(event_type, data)
            except Exception:
                logger.debug("Send to %s failed, dropping connection", conn.id, exc_info=True)
                dead.append(conn)
        for conn in dead:
            self.unregister(conn)
            try:
                await conn.close(code=SEND_FAILED_CLOSE_CODE, reason="Send failed")
            except Exception:
                logger.debug("Close of %s failed", conn.id, exc_info=True)


class LocalBroadcaster:
    """Room broadcaster for a single chat-serving process."""

    def __init__(self, rooms: RoomRouter) -> None:
        self._rooms = rooms

    async def broadcast(
        self,
        room: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        await self._rooms.broadcast(room, event_type, data, exclude=exclude)
