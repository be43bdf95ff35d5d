"""SQLAlchemy implementations of the repository contracts.

Writes ``flush`` inside a savepoint; committing is left to the caller that
owns the session (the webhook router).
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError
from app.models import Contact, Conversation, Message, Organization, OrganizationIntegration, User
from app.repositories.base import (
    ContactRepository,
    ConversationRepository,
    MessageRepository,
    OrganizationRepository,
)
from app.schemas.message import LastMessageSnapshot


def _insert(db: Session, row, conflict_message: str):
    try:
        with db.begin_nested():
            db.add(row)
            db.flush()
    except IntegrityError as e:
        raise ConflictError(conflict_message) from e
    return row


class SqlOrganizationRepository(OrganizationRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, organization_id: UUID) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.id == organization_id).first()

    def get_by_key(self, organization_key: str) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.organization_key == organization_key).first()

    def get_integration(self, organization_id: UUID, integration_type: str) -> Optional[OrganizationIntegration]:
        return (
            self.db.query(OrganizationIntegration)
            .filter(
                OrganizationIntegration.organization_id == organization_id,
                OrganizationIntegration.integration_type == integration_type,
            )
            .first()
        )

    def get_default_user(self, organization_id: UUID) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.organization_id == organization_id, User.is_default_responder.is_(True))
            .order_by(User.created_at)
            .first()
        )


class SqlContactRepository(ContactRepository):
    def __init__(self, db: Session):
        self.db = db

    def get_by_phone(self, organization_id: UUID, phone_number: str) -> Optional[Contact]:
        return (
            self.db.query(Contact)
            .filter(Contact.organization_id == organization_id, Contact.phone_number == phone_number)
            .first()
        )

    def create(self, contact: Contact) -> Contact:
        return _insert(self.db, contact, f"contact with phone number {contact.phone_number} already exists")


class SqlConversationRepository(ConversationRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, conversation_id: UUID) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.is_deleted.is_(False))
            .first()
        )

    def find_active(
        self, organization_id: UUID, user_id: UUID, contact_id: UUID, medium: str
    ) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(
                Conversation.organization_id == organization_id,
                Conversation.user_id == user_id,
                Conversation.contact_id == contact_id,
                Conversation.medium == medium,
                Conversation.is_active.is_(True),
                Conversation.is_deleted.is_(False),
            )
            .order_by(Conversation.created_at.desc())
            .first()
        )

    def create(self, conversation: Conversation) -> Conversation:
        return _insert(self.db, conversation, "an active conversation already exists for this contact")

    def update_last_message(self, conversation_id: UUID, snapshot: LastMessageSnapshot) -> None:
        with self.db.begin_nested():
            updated = (
                self.db.query(Conversation)
                .filter(Conversation.id == conversation_id)
                .update(
                    {
                        Conversation.last_message_sender_id: snapshot.sender_id,
                        Conversation.last_message_sender_type: snapshot.sender_type.value,
                        Conversation.last_message_sender_name: snapshot.sender_name,
                        Conversation.last_message_content: snapshot.content,
                        Conversation.last_message_type: snapshot.kind.value,
                        Conversation.last_message_media_url: snapshot.media_url,
                        Conversation.last_message_at: snapshot.sent_at,
                        Conversation.updated_at: datetime.now(timezone.utc),
                    },
                    synchronize_session="fetch",
                )
            )
        if not updated:
            raise NotFoundError(f"conversation {conversation_id} not found")

    def deactivate_siblings(self, conversation: Conversation) -> int:
        with self.db.begin_nested():
            return (
                self.db.query(Conversation)
                .filter(
                    Conversation.organization_id == conversation.organization_id,
                    Conversation.user_id == conversation.user_id,
                    Conversation.contact_id == conversation.contact_id,
                    Conversation.medium == conversation.medium,
                    Conversation.id != conversation.id,
                    Conversation.is_active.is_(True),
                    Conversation.is_deleted.is_(False),
                )
                .update(
                    {Conversation.is_active: False, Conversation.updated_at: datetime.now(timezone.utc)},
                    synchronize_session="fetch",
                )
            )


class SqlMessageRepository(MessageRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, message_id: UUID) -> Optional[Message]:
        return self.db.query(Message).filter(Message.id == message_id).first()

    def create(self, message: Message) -> Message:
        self.db.add(message)
        self.db.flush()
        return message

    def update_media(self, message: Message, media_url: str, attachments: List[dict]) -> Message:
        message.media_url = media_url
        # Reassign so the JSONB column is marked dirty.
        message.attachments = list(attachments)
        message.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return message
