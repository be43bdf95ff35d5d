"""Outbound WhatsApp Cloud API envelopes and media metadata."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

MESSAGING_PRODUCT = "whatsapp"


class TemplateLanguage(BaseModel):
    code: str = "en_US"


class TemplateBody(BaseModel):
    name: str
    language: TemplateLanguage = Field(default_factory=TemplateLanguage)


class TemplateEnvelope(BaseModel):
    messaging_product: str = MESSAGING_PRODUCT
    to: str
    type: Literal["template"] = "template"
    template: TemplateBody


class TextContent(BaseModel):
    preview_url: bool = True
    body: str


class TextEnvelope(BaseModel):
    messaging_product: str = MESSAGING_PRODUCT
    recipient_type: str = "individual"
    to: str
    type: Literal["text"] = "text"
    text: TextContent


class TypingIndicator(BaseModel):
    type: str = "text"


class ReadStatusEnvelope(BaseModel):
    messaging_product: str = MESSAGING_PRODUCT
    status: Literal["read"] = "read"
    message_id: str
    typing_indicator: Optional[TypingIndicator] = None


class MediaInfo(BaseModel):
    id: Optional[str] = None
    url: str
    mime_type: Optional[str] = None
    sha256: Optional[str] = None
    file_size: Optional[int] = None


class DownloadedMedia(BaseModel):
    info: MediaInfo
    content: bytes
    content_type: str
