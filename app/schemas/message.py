from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import AttachmentType, Channel, DeliveryStatus, Direction, MessageKind, SenderType


class CreateMessageInput(BaseModel):
    organization_id: Optional[UUID] = None
    conversation_id: Optional[UUID] = None
    user_id: Optional[UUID] = None  # assigned responder, part of the conversation identity
    contact_id: Optional[UUID] = None
    channel: Optional[Channel] = None
    sender_type: SenderType = SenderType.CUSTOMER
    sender_id: Optional[UUID] = None
    sender_name: Optional[str] = None
    direction: Direction = Direction.INBOUND
    kind: MessageKind = MessageKind.TEXT
    content: str = ""
    media_url: Optional[str] = None
    channel_message_id: Optional[str] = None
    ai_generated: bool = False
    ai_confidence_score: Optional[Decimal] = None
    status: Optional[DeliveryStatus] = None
    metadata: dict = Field(default_factory=dict)


class Attachment(BaseModel):
    id: str
    type: AttachmentType
    url: str
    filename: str
    size: int = 0
    mime_type: str = ""


class LastMessageSnapshot(BaseModel):
    sender_id: Optional[UUID] = None
    sender_type: SenderType
    sender_name: Optional[str] = None
    content: str = ""
    kind: MessageKind
    media_url: Optional[str] = None
    sent_at: datetime
