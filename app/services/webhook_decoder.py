"""Decode WhatsApp webhook deliveries into canonical message events."""

from typing import Any, Callable, Dict, Iterator, List

from pydantic import ValidationError

from app.errors import WebhookDecodeError
from app.logging_config import get_logger
from app.models.enums import MessageKind
from app.schemas.webhook import (
    AudioMessage,
    ContactsMessage,
    DocumentMessage,
    ImageMessage,
    LocationMessage,
    StickerMessage,
    TextMessage,
    VideoMessage,
    WebhookMessageEvent,
    channel_message_adapter,
)

logger = get_logger("webhook_decoder")

KIND_BY_CHANNEL_TYPE: Dict[str, MessageKind] = {
    "text": MessageKind.TEXT,
    "image": MessageKind.IMAGE,
    "video": MessageKind.VIDEO,
    "audio": MessageKind.AUDIO,
    "document": MessageKind.DOCUMENT,
    "location": MessageKind.LOCATION,
    "contacts": MessageKind.CONTACT_CARD,
    "sticker": MessageKind.STICKER,
}
CHANNEL_TYPE_BY_KIND = {kind: channel_type for channel_type, kind in KIND_BY_CHANNEL_TYPE.items()}

# Unknown channel types are decoded as text rather than dropped.
FALLBACK_KIND = MessageKind.TEXT


def infer_kind(channel_type: Any) -> MessageKind:
    if not isinstance(channel_type, str):
        return FALLBACK_KIND
    return KIND_BY_CHANNEL_TYPE.get(channel_type.strip().lower(), FALLBACK_KIND)


def _media_metadata(media) -> dict:
    metadata = {}
    if media.mime_type is not None:
        metadata["mime_type"] = media.mime_type
    if media.sha256 is not None:
        metadata["sha256"] = media.sha256
    return metadata


def _event(message, kind: MessageKind, **fields) -> WebhookMessageEvent:
    return WebhookMessageEvent(
        phone_number=message.from_,
        channel_message_id=message.id,
        kind=kind,
        **fields,
    )


def _from_text(message: TextMessage) -> WebhookMessageEvent:
    return _event(message, MessageKind.TEXT, content=message.text.body)


def _from_image(message: ImageMessage) -> WebhookMessageEvent:
    image = message.image
    return _event(
        message, MessageKind.IMAGE, content=image.caption or "", media_id=image.id, metadata=_media_metadata(image)
    )


def _from_video(message: VideoMessage) -> WebhookMessageEvent:
    video = message.video
    return _event(
        message, MessageKind.VIDEO, content=video.caption or "", media_id=video.id, metadata=_media_metadata(video)
    )


def _from_audio(message: AudioMessage) -> WebhookMessageEvent:
    audio = message.audio
    metadata = _media_metadata(audio)
    if audio.voice is not None:
        metadata["voice"] = audio.voice
    return _event(message, MessageKind.AUDIO, content="Voice message", media_id=audio.id, metadata=metadata)


def _from_document(message: DocumentMessage) -> WebhookMessageEvent:
    document = message.document
    parts = []
    if document.filename:
        parts.append(f"Document: {document.filename}")
    if document.caption:
        parts.append(document.caption)
    metadata = _media_metadata(document)
    if document.filename is not None:
        metadata["filename"] = document.filename
    return _event(message, MessageKind.DOCUMENT, content=" - ".join(parts), media_id=document.id, metadata=metadata)


def _from_location(message: LocationMessage) -> WebhookMessageEvent:
    location = message.location
    lat, lng = location.latitude, location.longitude
    if location.name:
        content = f"Location: {location.name} ({lat:f}, {lng:f})"
    else:
        content = f"Location: {lat:f}, {lng:f}"
    if location.address:
        content += f" - {location.address}"

    metadata = {"latitude": lat, "longitude": lng}
    if location.name:
        metadata["name"] = location.name
    if location.address:
        metadata["address"] = location.address
    return _event(message, MessageKind.LOCATION, content=content, metadata=metadata)


def _from_contacts(message: ContactsMessage) -> WebhookMessageEvent:
    card = message.contacts[0]
    name = card.name.formatted_name
    phones = [entry.phone for entry in card.phones if entry.phone]
    content = f"Contact: {name}"
    if phones:
        content += f" ({', '.join(phones)})"
    return _event(
        message,
        MessageKind.CONTACT_CARD,
        content=content,
        metadata={"contact_name": name, "phones": phones},
    )


def _from_sticker(message: StickerMessage) -> WebhookMessageEvent:
    sticker = message.sticker
    metadata = _media_metadata(sticker)
    if sticker.animated is not None:
        metadata["animated"] = sticker.animated
    return _event(message, MessageKind.STICKER, content="Sticker", media_id=sticker.id, metadata=metadata)


EXTRACTORS: Dict[MessageKind, Callable[[Any], WebhookMessageEvent]] = {
    MessageKind.TEXT: _from_text,
    MessageKind.IMAGE: _from_image,
    MessageKind.VIDEO: _from_video,
    MessageKind.AUDIO: _from_audio,
    MessageKind.DOCUMENT: _from_document,
    MessageKind.LOCATION: _from_location,
    MessageKind.CONTACT_CARD: _from_contacts,
    MessageKind.STICKER: _from_sticker,
}


def decode_message(raw: Any) -> WebhookMessageEvent:
    """Decode one channel message. Raises ``ValidationError`` when it matches no variant."""
    if not isinstance(raw, dict):
        raise TypeError(f"message must be an object, got {type(raw).__name__}")
    kind = infer_kind(raw.get("type"))
    message = channel_message_adapter.validate_python({**raw, "type": CHANNEL_TYPE_BY_KIND[kind]})
    return EXTRACTORS[kind](message)


def _iter_raw_messages(entries: List[Any]) -> Iterator[Any]:
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("changes"), list):
            continue
        for change in entry["changes"]:
            if not isinstance(change, dict) or change.get("field", "messages") != "messages":
                continue
            value = change.get("value")
            if not isinstance(value, dict) or not isinstance(value.get("messages"), list):
                continue
            yield from value["messages"]


def _iter_events(entries: List[Any]) -> Iterator[WebhookMessageEvent]:
    for raw in _iter_raw_messages(entries):
        try:
            yield decode_message(raw)
        except (ValidationError, TypeError) as e:
            logger.debug(
                "Skipping undecodable webhook message",
                extra={"context": {"error": str(e), "type": raw.get("type") if isinstance(raw, dict) else None}},
            )


def decode_webhook(payload: Any) -> Iterator[WebhookMessageEvent]:
    """Lazily decode every message in a delivery.

    Structural problems with the delivery itself (no ``entry`` list) raise
    ``WebhookDecodeError`` immediately; individual messages that match no
    known shape are skipped.
    """
    if not isinstance(payload, dict) or "entry" not in payload:
        raise WebhookDecodeError("no entry field in payload")
    entries = payload["entry"]
    if not isinstance(entries, list):
        raise WebhookDecodeError("entry field is not an array")
    return _iter_events(entries)
