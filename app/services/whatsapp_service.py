"""WhatsApp webhook orchestration."""

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from app.config import settings
from app.errors import InvalidInputError
from app.logging_config import ContextLogger, get_logger
from app.models import Contact, User
from app.models.enums import MEDIA_KINDS, Channel, Direction, MessageKind, SenderType
from app.schemas.message import CreateMessageInput
from app.schemas.webhook import WebhookMessageEvent
from app.services.ai_responder import AIResponder
from app.services.channel.base import ChannelClient
from app.services.contact_service import ContactService, sanitize_phone_number
from app.services.deadline import Deadline
from app.services.media_pipeline import MediaPipeline
from app.services.message_service import MessageService
from app.services.organization_service import WHATSAPP_INTEGRATION, OrganizationService
from app.services.outbound_service import send_text_message, send_typing_indicator
from app.services.webhook_decoder import decode_webhook

logger = get_logger("whatsapp_service")

WEBHOOK_OBJECT = "whatsapp_business_account"


@dataclass
class WebhookResult:
    processed: int = 0
    skipped: int = 0
    ai_replies: int = 0


class WhatsAppGateway:
    def __init__(
        self,
        organizations: OrganizationService,
        contacts: ContactService,
        messages: MessageService,
        media: MediaPipeline,
        responder: AIResponder,
        channel: ChannelClient,
        typing_indicator: Optional[bool] = None,
    ):
        self.organizations = organizations
        self.contacts = contacts
        self.messages = messages
        self.media = media
        self.responder = responder
        self.channel = channel
        self.typing_indicator = settings.whatsapp_typing_indicator if typing_indicator is None else typing_indicator

    def handle_webhook(
        self, payload: Any, organization_id: UUID, deadline: Optional[Deadline] = None
    ) -> WebhookResult:
        """Process one webhook delivery for an organization.

        Messages are handled one after another; the first failure is raised and
        the rest of the delivery is left unprocessed. Media messages are stored
        and re-hosted but never answered by the AI.
        """
        if not isinstance(payload, dict) or payload.get("object") != WEBHOOK_OBJECT:
            raise InvalidInputError("invalid webhook object type")

        log = ContextLogger(logger, {"organization_id": str(organization_id)})
        result = WebhookResult()

        integration = self.organizations.get_integration(organization_id, WHATSAPP_INTEGRATION)
        if not integration.is_active or not integration.is_ai_enabled:
            log.info("WhatsApp automation disabled, ignoring delivery")
            return result

        for event in decode_webhook(payload):
            phone_number = sanitize_phone_number(event.phone_number)
            contact = self.contacts.get_or_create_contact(organization_id, phone_number)
            responder = self.organizations.get_default_user(organization_id)

            if event.kind == MessageKind.TEXT:
                if self._handle_text(event, organization_id, contact, responder, phone_number, deadline):
                    result.ai_replies += 1
            elif event.kind in MEDIA_KINDS:
                self._handle_media(event, organization_id, contact, responder, deadline)
            else:
                log.info("Skipping unsupported message kind", context={"kind": event.kind.value})
                result.skipped += 1
                continue
            result.processed += 1

        log.info(
            "WhatsApp delivery processed",
            context={"processed": result.processed, "skipped": result.skipped, "ai_replies": result.ai_replies},
        )
        return result

    def _inbound_input(
        self, event: WebhookMessageEvent, organization_id: UUID, contact: Contact, responder: User
    ) -> CreateMessageInput:
        return CreateMessageInput(
            organization_id=organization_id,
            user_id=responder.id,
            contact_id=contact.id,
            channel=Channel.WHATSAPP,
            sender_type=SenderType.CUSTOMER,
            sender_id=contact.id,
            sender_name=contact.name,
            direction=Direction.INBOUND,
            kind=event.kind,
            content=event.content,
            media_url=event.media_id,
            channel_message_id=event.channel_message_id,
            metadata=event.metadata,
        )

    def _handle_text(
        self,
        event: WebhookMessageEvent,
        organization_id: UUID,
        contact: Contact,
        responder: User,
        phone_number: str,
        deadline: Optional[Deadline],
    ) -> bool:
        message = self.messages.create_message(self._inbound_input(event, organization_id, contact, responder))
        if self.typing_indicator:
            send_typing_indicator(self.channel, event.channel_message_id, deadline=deadline)
        reply = self.responder.respond(message.content, deadline=deadline)
        if not reply.strip():
            logger.warning("AI returned an empty reply", extra={"context": {"message_id": str(message.id)}})
            return False
        send_text_message(self.channel, phone_number, reply, deadline=deadline)
        return True

    def _handle_media(
        self,
        event: WebhookMessageEvent,
        organization_id: UUID,
        contact: Contact,
        responder: User,
        deadline: Optional[Deadline],
    ) -> None:
        message = self.messages.create_message(self._inbound_input(event, organization_id, contact, responder))
        organization = self.organizations.get_organization(organization_id)
        self.media.enrich_message(
            self.messages, message, organization.organization_code, event.media_id, deadline=deadline
        )
