from __future__ import annotations

from church_chat.domain.entities.message import Message
from church_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        recipient_id=model.recipient_id,
        sender_role=model.sender_role,
        body=model.body,
        attachment=model.attachment,
        attachment_type=model.attachment_type,
        is_read=model.is_read,
        read_at=model.read_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
        deleted_at=model.deleted_at,
    )


def entity_to_values(entity: Message) -> dict[str, object]:
    return {
        "id": entity.id,
        "sender_id": entity.sender_id,
        "recipient_id": entity.recipient_id,
        "sender_role": entity.sender_role,
        "body": entity.body,
        "attachment": entity.attachment,
        "attachment_type": entity.attachment_type,
        "is_read": entity.is_read,
        "read_at": entity.read_at,
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
    }
