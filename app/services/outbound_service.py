"""Outbound WhatsApp messages: templates, free text, read receipts and typing indicators."""

from typing import Optional

from app.errors import InvalidInputError
from app.logging_config import get_logger
from app.schemas.whatsapp import (
    ReadStatusEnvelope,
    TemplateBody,
    TemplateEnvelope,
    TemplateLanguage,
    TextContent,
    TextEnvelope,
    TypingIndicator,
)
from app.services.channel.base import ChannelClient
from app.services.deadline import Deadline
from app.services.result import Result

logger = get_logger("outbound_service")

DEFAULT_TEMPLATE_LANGUAGE = "en_US"


def build_template_envelope(to: str, template_name: str, language_code: str = "") -> dict:
    envelope = TemplateEnvelope(
        to=to,
        template=TemplateBody(
            name=template_name,
            language=TemplateLanguage(code=language_code or DEFAULT_TEMPLATE_LANGUAGE),
        ),
    )
    return envelope.model_dump()


def build_text_envelope(to: str, body: str, preview_url: bool = True) -> dict:
    return TextEnvelope(to=to, text=TextContent(body=body, preview_url=preview_url)).model_dump()


def build_read_status_envelope(message_id: str, typing: bool = False) -> dict:
    envelope = ReadStatusEnvelope(message_id=message_id, typing_indicator=TypingIndicator() if typing else None)
    return envelope.model_dump(exclude_none=True)


def send_template_message(
    channel: ChannelClient,
    to: str,
    template_name: str,
    language_code: str = "",
    deadline: Optional[Deadline] = None,
) -> dict:
    if not to or not template_name:
        raise InvalidInputError("recipient and template name are required")
    return channel.send(build_template_envelope(to, template_name, language_code), deadline=deadline)


def send_text_message(channel: ChannelClient, to: str, body: str, deadline: Optional[Deadline] = None) -> dict:
    if not to or not body:
        raise InvalidInputError("recipient and message body are required")
    response = channel.send(build_text_envelope(to, body), deadline=deadline)
    logger.info("WhatsApp text sent", extra={"context": {"to": to, "length": len(body)}})
    return response


def send_read_status(channel: ChannelClient, message_id: str, deadline: Optional[Deadline] = None) -> dict:
    if not message_id:
        raise InvalidInputError("message_id is required for read status")
    return channel.send(build_read_status_envelope(message_id), deadline=deadline)


def send_typing_indicator(
    channel: ChannelClient, message_id: Optional[str], deadline: Optional[Deadline] = None
) -> Result[bool]:
    """Best effort. The Cloud API ties typing indicators to an inbound message, so no id means no indicator."""
    if not message_id:
        return Result.success(False)
    try:
        channel.send(build_read_status_envelope(message_id, typing=True), deadline=deadline)
    except Exception as e:
        logger.warning(
            "Failed to send typing indicator",
            extra={"context": {"message_id": message_id, "error": str(e)}},
        )
        return Result.from_exception(e, code="typing_indicator_failed")
    return Result.success(True)
