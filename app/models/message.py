import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(UUID(as_uuid=True), ForeignKey("conversations.id"), nullable=False)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    sender_type = Column(Text, nullable=False)  # customer, agent, ai, system
    sender_id = Column(UUID(as_uuid=True))
    direction = Column(Text, nullable=False)  # inbound, outbound
    message_type = Column(Text, nullable=False)
    content = Column(Text, nullable=False, default="")
    media_url = Column(Text)  # channel media id until the upload resolves it
    attachments = Column(JSONB, nullable=False, default=list)
    channel_message_id = Column(Text)
    ai_generated = Column(Boolean, nullable=False, default=False)
    ai_confidence_score = Column(Numeric(5, 3))
    status = Column(Text, nullable=False)  # pending, sent, delivered, read, failed
    failure_reason = Column(Text)
    message_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True))

    conversation = relationship("Conversation", back_populates="messages")
