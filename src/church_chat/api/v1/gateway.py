"""Per-connection chat state machine and event dispatch."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError as PydanticValidationError

from church_chat.api.v1.schemas.message import MessageResponse
from church_chat.application.dto.message import MessageView, SendMessageDTO
from church_chat.application.exceptions import (
    AppError,
    AuthError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from church_chat.application.policies.permissions import authenticate, resolve_counterpart
from church_chat.application.ports.auth import TokenVerifier
from church_chat.application.ports.bus import RoomBroadcaster
from church_chat.application.ports.connection import Connection
from church_chat.application.uow import UoWFactory
from church_chat.config import settings
from church_chat.domain.entities.account import Account
from church_chat.domain.value_objects.enums import ConnectionState, PresenceStatus
from church_chat.domain.value_objects.ids import is_valid_account_id, room_key
from church_chat.infrastructure.db.uow import open_uow
from church_chat.infrastructure.ws.presence import PresenceTracker
from church_chat.infrastructure.ws.protocol import WsInbound
from church_chat.infrastructure.ws.rooms import LocalBroadcaster, RoomRouter
from church_chat.services import message_service

logger = logging.getLogger(__name__)

AUTH_FAILED_CLOSE_CODE = 4001

Handler = Callable[[Connection, dict[str, Any]], Awaitable[None]]

_ACTIVE_STATES = (ConnectionState.AUTHENTICATED, ConnectionState.ROOM_JOINED)

_FAILURE_MESSAGES = {
    "join-room": "Error joining chat",
    "send-message": "Error sending message",
    "mark-read": "Error marking messages as read",
}


_ERROR_CODES: dict[type[AppError], str] = {
    ValidationError: "validation_error",
    ForbiddenError: "forbidden",
    NotFoundError: "not_found",
}


def _error_code(exc: AppError) -> str:
    for cls, code in _ERROR_CODES.items():
        if isinstance(exc, cls):
            return code
    return "internal_error"


class ChatGateway:
    """Live chat for one server process.

    Presence and room registries are injected; nothing is module-global.
    """

    def __init__(
        self,
        *,
        verifier: TokenVerifier,
        presence: PresenceTracker,
        rooms: RoomRouter,
        uow_factory: UoWFactory = open_uow,
        broadcaster: RoomBroadcaster | None = None,
    ) -> None:
        self.verifier = verifier
        self.presence = presence
        self.rooms = rooms
        self.uow_factory = uow_factory
        self.broadcaster: RoomBroadcaster = broadcaster or LocalBroadcaster(rooms)
        self._accounts: dict[str, Account] = {}
        self._handlers: dict[str, Handler] = {
            "join-room": self._on_join_room,
            "leave-room": self._on_leave_room,
            "send-message": self._on_send_message,
            "typing": self._on_typing,
            "mark-read": self._on_mark_read,
            "notify-online": self._on_notify_online,
            "ping": self._on_ping,
        }

    def use_broadcaster(self, broadcaster: RoomBroadcaster) -> None:
        self.broadcaster = broadcaster

    # -- lifecycle ---------------------------------------------------------

    async def open(self, conn: Connection, token: str | None) -> bool:
        """Authenticate a freshly accepted connection.

        On failure one ``error`` event is sent and the connection is closed.
        """
        try:
            async with self.uow_factory() as uow:
                principal, account = await authenticate(self.verifier, token, uow.accounts)
        except AuthError as exc:
            logger.info("WS auth failed for %s: %s", conn.id, exc.detail)
            await self._reject(conn, f"Authentication error: {exc.detail}")
            return False
        except Exception:
            logger.exception("WS auth error for %s", conn.id)
            await self._reject(conn, "Authentication error")
            return False

        conn.principal = principal
        conn.state = ConnectionState.AUTHENTICATED
        self._accounts[conn.id] = account
        self.rooms.register(conn)
        logger.info("User connected: %s (%s) via %s", principal.user_id, principal.role, conn.id)

        if self.presence.connect(principal.user_id):
            await self._announce_status(conn, PresenceStatus.ONLINE)
        return True

    async def close(self, conn: Connection) -> None:
        """Tear down a connection that went away. Safe to call more than once."""
        account = self._accounts.pop(conn.id, None)
        conn.state = ConnectionState.DISCONNECTED
        if account is None or conn.principal is None:
            return
        self.rooms.unregister(conn)
        logger.info("User disconnected: %s via %s", conn.principal.user_id, conn.id)
        if self.presence.disconnect(conn.principal.user_id):
            await self._announce_status(conn, PresenceStatus.OFFLINE)

    async def dispatch(self, conn: Connection, raw: str) -> None:
        """Handle one inbound frame. Frames of one connection are handled in order."""
        if conn.state not in _ACTIVE_STATES or conn.principal is None:
            await self._reject(conn, "Not authenticated")
            return

        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await self._send_error(conn, "Invalid payload", "invalid_payload")
            return

        handler = self._handlers.get(msg.type)
        if handler is None:
            await self._send_error(conn, f"Unknown event type: {msg.type}", "unknown_type")
            return

        try:
            await handler(conn, msg.data)
        except AppError as exc:
            if isinstance(exc, AuthError):
                await self._reject(conn, exc.detail)
                return
            if exc.status_code >= 500:
                logger.error("%s failed for %s: %s", msg.type, conn.id, exc.detail)
                await self._send_error(conn, _FAILURE_MESSAGES.get(msg.type, "Internal error"), "internal_error")
                return
            await self._send_error(conn, exc.detail, _error_code(exc))
        except Exception:
            logger.exception("%s failed for %s", msg.type, conn.id)
            await self._send_error(conn, _FAILURE_MESSAGES.get(msg.type, "Internal error"), "internal_error")

    # -- event handlers ----------------------------------------------------

    async def _on_join_room(self, conn: Connection, data: dict[str, Any]) -> None:
        assert conn.principal is not None
        async with self.uow_factory() as uow:
            counterpart = await resolve_counterpart(conn.principal, data.get("userId"), uow.accounts)
            updated = await message_service.mark_read(conn.principal, counterpart.id, uow)
        room = room_key(conn.principal.user_id, counterpart.id)
        self.rooms.join(conn, room)
        conn.state = ConnectionState.ROOM_JOINED
        await conn.send(
            "joined",
            {
                "roomId": room,
                "userId": counterpart.id,
                "status": self.presence.status_of(counterpart.id).value,
            },
        )
        if updated:
            await self.publish_read(conn.principal.user_id, counterpart.id, updated, exclude=conn.id)

    async def _on_leave_room(self, conn: Connection, data: dict[str, Any]) -> None:
        assert conn.principal is not None
        counterpart_id = self._require_counterpart_id(data)
        room = room_key(conn.principal.user_id, counterpart_id)
        self.rooms.leave(conn, room)
        if not self.rooms.rooms_of(conn):
            conn.state = ConnectionState.AUTHENTICATED
        await conn.send("left", {"roomId": room, "userId": counterpart_id})

    async def _on_send_message(self, conn: Connection, data: dict[str, Any]) -> None:
        assert conn.principal is not None
        body = data.get("message")
        if body is not None and not isinstance(body, str):
            raise ValidationError("Message must be a string")
        dto = SendMessageDTO(
            recipient_id=data.get("userId"),  # type: ignore[arg-type]
            body=body,
            attachment=data.get("attachment"),
            attachment_type=data.get("attachmentType"),
        )
        async with self.uow_factory() as uow:
            view = await message_service.send_message(conn.principal, dto, uow)

        payload = await self.publish_message(view, exclude=conn.id)
        await conn.send("messageSent", payload)

    async def _on_typing(self, conn: Connection, data: dict[str, Any]) -> None:
        assert conn.principal is not None
        counterpart_id = self._require_counterpart_id(data)
        account = self._accounts.get(conn.id)
        await self.broadcaster.broadcast(
            room_key(conn.principal.user_id, counterpart_id),
            "typing",
            {
                "userId": conn.principal.user_id,
                "userName": account.name if account else None,
                "isTyping": bool(data.get("isTyping", False)),
            },
            exclude=conn.id,
        )

    async def _on_mark_read(self, conn: Connection, data: dict[str, Any]) -> None:
        assert conn.principal is not None
        counterpart_id = data.get("userId")
        async with self.uow_factory() as uow:
            updated = await message_service.mark_read(conn.principal, counterpart_id, uow)  # type: ignore[arg-type]

        await self.publish_read(conn.principal.user_id, counterpart_id, updated, exclude=conn.id)  # type: ignore[arg-type]
        await conn.send("readConfirmed", {"userId": counterpart_id, "updatedCount": updated})

    async def _on_notify_online(self, conn: Connection, data: dict[str, Any]) -> None:
        await self._announce_status(conn, PresenceStatus.ONLINE)

    async def _on_ping(self, conn: Connection, data: dict[str, Any]) -> None:
        await conn.send("pong", {})

    # -- fan-out shared with the REST facade --------------------------------

    async def publish_message(
        self,
        view: MessageView,
        *,
        exclude: str | None = None,
    ) -> dict[str, Any]:
        """Broadcast a stored message to its room and notify the recipient elsewhere.

        The message is already committed, so a broadcaster failure is logged
        and the payload is still returned for the sender's confirmation.
        """
        msg = view.message
        payload = MessageResponse.from_view(view).model_dump(mode="json", by_alias=True)
        room = room_key(msg.sender_id, msg.recipient_id)
        await self._broadcast(room, "message", payload, exclude=exclude)

        preview = msg.body[: settings.NOTIFICATION_PREVIEW_LENGTH]
        await self.rooms.send_to_user(
            msg.recipient_id,
            "notification",
            {
                "type": "new_message",
                "from": {
                    "id": msg.sender_id,
                    "name": view.sender.name if view.sender else None,
                },
                "userId": msg.sender_id,
                "message": preview,
            },
            skip_room=room,
        )
        return payload

    async def publish_read(
        self,
        reader_id: str,
        counterpart_id: str,
        updated: int,
        *,
        exclude: str | None = None,
    ) -> None:
        await self._broadcast(
            room_key(reader_id, counterpart_id),
            "read",
            {"userId": reader_id, "counterpartId": counterpart_id, "updatedCount": updated},
            exclude=exclude,
        )

    # -- helpers -------------------------------------------------------------

    async def _broadcast(
        self,
        room: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        try:
            await self.broadcaster.broadcast(room, event_type, data, exclude=exclude)
        except Exception:
            logger.exception("Fan-out of %s to %s failed", event_type, room)

    @staticmethod
    def _require_counterpart_id(data: dict[str, Any]) -> str:
        counterpart_id = data.get("userId")
        if not is_valid_account_id(counterpart_id):
            raise ValidationError("Invalid user ID")
        return counterpart_id  # type: ignore[return-value]

    async def _announce_status(self, conn: Connection, status: PresenceStatus) -> None:
        """Tell interested connections that ``conn``'s user went online or offline.

        An admin's status goes to everybody; a user's status goes to the
        admins and to whoever has the user's room open.
        """
        assert conn.principal is not None
        user_id = conn.principal.user_id
        if conn.principal.is_admin:
            targets = self.rooms.all_connections()
        else:
            targets = self.rooms.admin_connections() + self.rooms.watchers_of(user_id)
        unique = {
            c.id: c
            for c in targets
            if c.principal is not None and c.principal.user_id != user_id
        }
        await self.rooms.send_many(
            unique.values(), "userStatus", {"userId": user_id, "status": status.value},
        )

    async def _send_error(self, conn: Connection, message: str, code: str) -> None:
        await conn.send("error", {"error": message, "code": code})

    async def _reject(self, conn: Connection, message: str) -> None:
        try:
            await self._send_error(conn, message, "auth_error")
            await conn.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        except Exception:
            logger.debug("Could not notify rejected connection %s", conn.id, exc_info=True)
        conn.state = ConnectionState.DISCONNECTED
