from __future__ import annotations

from enum import StrEnum


class AccountRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class AttachmentType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class PresenceStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


class ConnectionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    ROOM_JOINED = "room_joined"
    DISCONNECTED = "disconnected"
