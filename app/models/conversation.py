import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        # At most one active, non-deleted row per identity tuple; matches find_active.
        Index(
            "uq_conversations_active_identity",
            "organization_id",
            "user_id",
            "contact_id",
            "medium",
            unique=True,
            postgresql_where=text("is_active AND NOT is_deleted"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    contact_id = Column(UUID(as_uuid=True), ForeignKey("contacts.id"), nullable=False)
    medium = Column(Text, nullable=False)  # whatsapp
    status = Column(Text, nullable=False)  # open, pending, resolved, closed
    priority = Column(Text, nullable=False)  # low, medium, high, urgent
    ai_enabled = Column(Boolean, nullable=False, default=True)
    ai_config = Column(JSONB, nullable=False, default=dict)

    last_message_sender_id = Column(UUID(as_uuid=True))
    last_message_sender_type = Column(Text)
    last_message_sender_name = Column(Text)
    last_message_content = Column(Text)
    last_message_type = Column(Text)
    last_message_media_url = Column(Text)
    last_message_at = Column(TIMESTAMP(timezone=True))

    is_active = Column(Boolean, nullable=False, default=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True))

    user = relationship("User", back_populates="conversations")
    contact = relationship("Contact", back_populates="conversations")
    messages = relationship("Message", back_populates="conversation")
