"""Inbound WhatsApp Cloud API webhook shapes.

Each message ``type`` has its own variant; ``ChannelMessage`` is the tagged
union the decoder validates against.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from app.models.enums import MessageKind


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TextBody(_Payload):
    body: str = ""


class MediaObject(_Payload):
    id: str
    caption: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None


class DocumentObject(MediaObject):
    filename: Optional[str] = None


class AudioObject(MediaObject):
    voice: Optional[bool] = None


class StickerObject(MediaObject):
    animated: Optional[bool] = None


class LocationObject(_Payload):
    latitude: float = 0.0
    longitude: float = 0.0
    name: Optional[str] = None
    address: Optional[str] = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def parse_coordinate(cls, value: Any) -> float:
        # Coordinates arrive as numbers or numeric strings; anything else reads as 0.
        if isinstance(value, bool):
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0


class ContactName(_Payload):
    formatted_name: str = ""


class ContactPhone(_Payload):
    phone: Optional[str] = None


class SharedContact(_Payload):
    name: ContactName = Field(default_factory=ContactName)
    phones: List[ContactPhone] = Field(default_factory=list)


class _ChannelMessageBase(_Payload):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    id: Optional[str] = None
    timestamp: Optional[str] = None


class TextMessage(_ChannelMessageBase):
    type: Literal["text"]
    text: TextBody


class ImageMessage(_ChannelMessageBase):
    type: Literal["image"]
    image: MediaObject


class VideoMessage(_ChannelMessageBase):
    type: Literal["video"]
    video: MediaObject


class AudioMessage(_ChannelMessageBase):
    type: Literal["audio"]
    audio: AudioObject


class DocumentMessage(_ChannelMessageBase):
    type: Literal["document"]
    document: DocumentObject


class LocationMessage(_ChannelMessageBase):
    type: Literal["location"]
    location: LocationObject


class ContactsMessage(_ChannelMessageBase):
    type: Literal["contacts"]
    contacts: List[SharedContact] = Field(min_length=1)


class StickerMessage(_ChannelMessageBase):
    type: Literal["sticker"]
    sticker: StickerObject


ChannelMessage = Annotated[
    Union[
        TextMessage,
        ImageMessage,
        VideoMessage,
        AudioMessage,
        DocumentMessage,
        LocationMessage,
        ContactsMessage,
        StickerMessage,
    ],
    Field(discriminator="type"),
]

channel_message_adapter = TypeAdapter(ChannelMessage)


class WebhookMessageEvent(BaseModel):
    """Canonical, channel-independent view of one inbound message."""

    phone_number: Optional[str] = None
    channel_message_id: Optional[str] = None
    kind: MessageKind
    content: str = ""
    media_id: Optional[str] = None
    metadata: dict = Field(default_factory=dict)


class WebhookResponse(BaseModel):
    status: str = "received"
    processed: int = 0
    skipped: int = 0
