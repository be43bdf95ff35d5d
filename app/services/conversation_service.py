from datetime import datetime, timezone
from uuid import UUID

from app.errors import ConflictError, ForbiddenError, NotFoundError
from app.logging_config import get_logger
from app.models import Conversation
from app.models.enums import Channel, ConversationPriority, ConversationStatus
from app.repositories.base import ConversationRepository
from app.schemas.message import LastMessageSnapshot
from app.services.result import Result

logger = get_logger("conversation_service")


class ConversationResolver:
    """Keeps one active conversation per (organization, user, contact, channel)."""

    def __init__(self, conversations: ConversationRepository):
        self.conversations = conversations

    def resolve(self, organization_id: UUID, user_id: UUID, contact_id: UUID, channel: Channel) -> Conversation:
        """Return the active conversation for the identity, creating it if there is none.

        A new conversation is followed by a best-effort demotion of any other
        active row for the same identity. When a concurrent resolve wins the
        insert (the active-identity unique index rejects ours), the winner is
        returned instead.
        """
        medium = Channel(channel).value
        existing = self.conversations.find_active(organization_id, user_id, contact_id, medium)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        conversation = Conversation(
            organization_id=organization_id,
            user_id=user_id,
            contact_id=contact_id,
            medium=medium,
            status=ConversationStatus.OPEN.value,
            priority=ConversationPriority.LOW.value,
            ai_enabled=True,
            ai_config={},
            is_active=True,
            is_archived=False,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        try:
            conversation = self.conversations.create(conversation)
        except ConflictError:
            winner = self.conversations.find_active(organization_id, user_id, contact_id, medium)
            if winner is None:
                raise
            logger.info(
                "Concurrent resolve created the active conversation first",
                extra={"context": {"conversation_id": str(winner.id), "contact_id": str(contact_id)}},
            )
            return winner

        self.deactivate_siblings(conversation)
        return conversation

    def deactivate_siblings(self, conversation: Conversation) -> Result[int]:
        """Best effort: failures are logged and reported in the result, never raised."""
        try:
            count = self.conversations.deactivate_siblings(conversation)
        except Exception as e:
            logger.warning(
                "Failed to deactivate sibling conversations",
                extra={"context": {"conversation_id": str(conversation.id), "error": str(e)}},
            )
            return Result.from_exception(e, code="deactivate_siblings_failed")

        if count:
            logger.info(
                "Deactivated sibling conversations",
                extra={"context": {"conversation_id": str(conversation.id), "count": count}},
            )
        return Result.success(count)

    def record_last_message(self, conversation_id: UUID, snapshot: LastMessageSnapshot) -> Result[None]:
        """Best effort: overwrite the conversation's last-message snapshot."""
        try:
            self.conversations.update_last_message(conversation_id, snapshot)
        except Exception as e:
            logger.warning(
                "Failed to update last message snapshot",
                extra={"context": {"conversation_id": str(conversation_id), "error": str(e)}},
            )
            return Result.from_exception(e, code="last_message_update_failed")
        return Result.success(None)

    def get_conversation(self, organization_id: UUID, conversation_id: UUID) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError(f"conversation {conversation_id} not found")
        if conversation.organization_id != organization_id:
            raise ForbiddenError(f"conversation {conversation_id} belongs to another organization")
        return conversation
