from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import ServiceError
from app.logging_config import get_logger
from app.repositories import (
    SqlContactRepository,
    SqlConversationRepository,
    SqlMessageRepository,
    SqlOrganizationRepository,
)
from app.schemas.webhook import WebhookResponse
from app.services.ai_responder import AIResponder
from app.services.alert_service import alert_error
from app.services.channel import ChannelClient, WhatsAppCloudClient
from app.services.contact_service import ContactService
from app.services.conversation_service import ConversationResolver
from app.services.deadline import Deadline
from app.services.llm import OpenAIProvider
from app.services.media_pipeline import MediaPipeline
from app.services.message_service import MessageService
from app.services.organization_service import OrganizationService
from app.services.storage import BlobStore, S3BlobStore, get_s3_client
from app.services.whatsapp_service import WhatsAppGateway

logger = get_logger("webhook")

router = APIRouter()


@lru_cache
def get_channel_client() -> ChannelClient:
    return WhatsAppCloudClient(
        access_token=settings.whatsapp_access_token,
        phone_number_id=settings.whatsapp_phone_number_id,
        base_url=settings.whatsapp_api_base_url,
        timeout_seconds=settings.whatsapp_timeout_seconds,
    )


@lru_cache
def get_blob_store() -> BlobStore:
    client = get_s3_client(
        endpoint_url=settings.storage_endpoint_url,
        region=settings.storage_region,
        access_key_id=settings.storage_access_key_id,
        secret_access_key=settings.storage_secret_access_key,
    )
    return S3BlobStore(client, public_base_url=settings.storage_public_base_url)


@lru_cache
def get_ai_responder() -> AIResponder:
    provider = OpenAIProvider(
        api_key=settings.openai_api_key,
        default_model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )
    return AIResponder(
        provider,
        persona_path=settings.persona_prompt_path,
        knowledge_path=settings.knowledge_path,
        model=settings.openai_model,
    )


def get_organization_service(db: Session = Depends(get_db)) -> OrganizationService:
    return OrganizationService(SqlOrganizationRepository(db))


def get_gateway(
    db: Session = Depends(get_db),
    organizations: OrganizationService = Depends(get_organization_service),
) -> WhatsAppGateway:
    resolver = ConversationResolver(SqlConversationRepository(db))
    channel = get_channel_client()
    return WhatsAppGateway(
        organizations=organizations,
        contacts=ContactService(SqlContactRepository(db)),
        messages=MessageService(SqlMessageRepository(db), resolver),
        media=MediaPipeline(channel, get_blob_store()),
        responder=get_ai_responder(),
        channel=channel,
    )


@router.get("/webhook/whatsapp", response_class=PlainTextResponse)
def verify_whatsapp_webhook(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    key: Optional[str] = Query(None),
    organizations: OrganizationService = Depends(get_organization_service),
):
    """Subscription handshake: echo ``hub.challenge`` when the verify token matches."""
    if not key:
        raise HTTPException(status_code=400, detail="Organization key is required")

    try:
        organization = organizations.get_organization_by_key(key)
        integration = organizations.get_integration(organization.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if not integration.token:
        raise HTTPException(status_code=403, detail="WhatsApp integration token not found")

    if hub_mode == "subscribe" and (hub_verify_token or "").strip() == integration.token.strip():
        return hub_challenge or ""

    logger.warning("WhatsApp webhook verification failed", extra={"context": {"organization_key": key}})
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook/whatsapp", response_model=WebhookResponse)
def handle_whatsapp_webhook(
    payload: Dict[str, Any] = Body(...),
    key: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    gateway: WhatsAppGateway = Depends(get_gateway),
):
    if not payload:
        raise HTTPException(status_code=400, detail="Empty JSON payload")
    if not key:
        raise HTTPException(status_code=400, detail="Organization key is required")

    deadline = Deadline.after(settings.webhook_deadline_seconds)
    try:
        organization = gateway.organizations.get_organization_by_key(key)
        result = gateway.handle_webhook(payload, organization.id, deadline=deadline)
    except ServiceError as e:
        # Messages handled before the failing one stay persisted.
        db.commit()
        logger.error(
            "WhatsApp webhook failed",
            extra={"context": {"organization_key": key, "error": e.message, "code": e.code}},
        )
        if e.status_code >= 500:
            alert_error("WhatsApp webhook failed", {"organization_key": key, "error": e.message})
        raise HTTPException(status_code=e.status_code, detail=e.message)

    db.commit()
    return WebhookResponse(processed=result.processed, skipped=result.skipped)
