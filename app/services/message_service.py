from datetime import datetime, timezone
from uuid import UUID

from app.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.logging_config import get_logger
from app.models import Message
from app.models.enums import MEDIA_KINDS, Channel, DeliveryStatus, MessageKind
from app.repositories.base import MessageRepository
from app.schemas.message import Attachment, CreateMessageInput, LastMessageSnapshot
from app.services.conversation_service import ConversationResolver

logger = get_logger("message_service")


def validate_message_input(payload: CreateMessageInput) -> None:
    """Reject an input before anything is written."""
    if payload.organization_id is None:
        raise InvalidInputError("organization_id is required")

    if payload.kind == MessageKind.TEXT:
        if not (payload.content or "").strip():
            raise InvalidInputError("content is required for text messages")
    elif payload.kind in MEDIA_KINDS:
        if not (payload.media_url or "").strip():
            raise InvalidInputError(f"media_url is required for {payload.kind.value} messages")
    else:
        raise InvalidInputError(f"invalid message type: {payload.kind.value}")

    if payload.conversation_id is None:
        if payload.user_id is None:
            raise InvalidInputError("user_id is required when conversation_id is not provided")
        if payload.contact_id is None:
            raise InvalidInputError("contact_id is required when conversation_id is not provided")


class MessageService:
    def __init__(self, messages: MessageRepository, resolver: ConversationResolver):
        self.messages = messages
        self.resolver = resolver

    def create_message(self, payload: CreateMessageInput) -> Message:
        """Validate, attach to a conversation, persist, then refresh the conversation snapshot."""
        validate_message_input(payload)
        organization_id = payload.organization_id

        if payload.conversation_id is not None:
            conversation = self.resolver.conversations.get(payload.conversation_id)
            # Another organization's conversation is reported as missing.
            if conversation is None or conversation.organization_id != organization_id:
                raise NotFoundError(f"conversation {payload.conversation_id} not found")
        else:
            conversation = self.resolver.resolve(
                organization_id,
                payload.user_id,
                payload.contact_id,
                payload.channel or Channel.WHATSAPP,
            )

        now = datetime.now(timezone.utc)
        message = self.messages.create(
            Message(
                conversation_id=conversation.id,
                organization_id=organization_id,
                sender_type=payload.sender_type.value,
                sender_id=payload.sender_id,
                direction=payload.direction.value,
                message_type=payload.kind.value,
                content=payload.content or "",
                media_url=payload.media_url,
                attachments=[],
                channel_message_id=payload.channel_message_id,
                ai_generated=payload.ai_generated,
                ai_confidence_score=payload.ai_confidence_score,
                status=(payload.status or DeliveryStatus.PENDING).value,
                message_metadata=payload.metadata or {},
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "Message created",
            extra={
                "context": {
                    "message_id": str(message.id),
                    "conversation_id": str(conversation.id),
                    "kind": payload.kind.value,
                }
            },
        )

        self.resolver.record_last_message(
            conversation.id,
            LastMessageSnapshot(
                sender_id=payload.sender_id,
                sender_type=payload.sender_type,
                sender_name=payload.sender_name,
                content=message.content,
                kind=payload.kind,
                media_url=message.media_url,
                sent_at=now,
            ),
        )
        return message

    def get_message(self, organization_id: UUID, message_id: UUID) -> Message:
        message = self.messages.get(message_id)
        if message is None:
            raise NotFoundError(f"message {message_id} not found")
        if message.organization_id != organization_id:
            raise ForbiddenError(f"message {message_id} belongs to another organization")
        return message

    def append_attachment(
        self, organization_id: UUID, message_id: UUID, media_url: str, attachment: Attachment
    ) -> Message:
        """Point the message at its uploaded media and add one attachment to the end of its list."""
        message = self.get_message(organization_id, message_id)
        attachments = list(message.attachments or [])
        attachments.append(attachment.model_dump(mode="json"))
        return self.messages.update_media(message, media_url, attachments)
