import uuid

from sqlalchemy import Column, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("organization_id", "phone_number", name="uq_contacts_org_phone"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    phone_number = Column(Text, nullable=False)  # sanitized, +62...
    name = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    conversations = relationship("Conversation", back_populates="contact")
