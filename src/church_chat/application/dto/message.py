from __future__ import annotations

from dataclasses import dataclass

from church_chat.domain.entities.account import Account
from church_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    recipient_id: str
    body: str | None = None
    attachment: str | None = None
    attachment_type: str | None = None


@dataclass(frozen=True, slots=True)
class SenderProfile:
    id: str
    name: str
    email: str | None
    profile_image: str | None
    role: str

    @classmethod
    def from_account(cls, account: Account) -> SenderProfile:
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            profile_image=account.profile_image,
            role=account.role.value,
        )


@dataclass(frozen=True, slots=True)
class MessageView:
    """A stored message with its sender's public profile resolved."""

    message: Message
    sender: SenderProfile | None


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: list[MessageView]
    page: int
    limit: int
    total: int
    marked_read: int = 0

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0
