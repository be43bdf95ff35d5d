import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_code = Column(Text, nullable=False, unique=True)  # used in bucket names
    organization_key = Column(Text, nullable=False, unique=True)  # ?key= on webhook URLs
    name = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    integrations = relationship("OrganizationIntegration", back_populates="organization")
    users = relationship("User", back_populates="organization")


class OrganizationIntegration(Base):
    __tablename__ = "organization_integrations"
    __table_args__ = (UniqueConstraint("organization_id", "integration_type"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    integration_type = Column(Text, nullable=False)  # WhatsApp
    token = Column(Text)  # webhook verify token
    is_active = Column(Boolean, nullable=False, default=True)
    is_ai_enabled = Column(Boolean, nullable=False, default=False)
    config = Column(JSONB, nullable=False, default=dict)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True))

    organization = relationship("Organization", back_populates="integrations")
