from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest

from app.config import settings
from app.models import Organization, OrganizationIntegration, User
from app.services.channel.base import ChannelClient
from app.services.contact_service import ContactService
from app.services.conversation_service import ConversationResolver
from app.services.media_pipeline import MediaPipeline
from app.services.message_service import MessageService
from app.services.organization_service import OrganizationService
from app.services.whatsapp_service import WhatsAppGateway
from tests.fakes import (
    InMemoryBlobStore,
    InMemoryContactRepository,
    InMemoryConversationRepository,
    InMemoryMessageRepository,
    InMemoryOrganizationRepository,
)


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No real sleeping between retry attempts."""
    monkeypatch.setattr(settings, "external_call_backoff_seconds", 0)
    monkeypatch.setattr(settings, "external_call_backoff_max_seconds", 0)
    monkeypatch.setattr(settings, "external_call_max_attempts", 3)


@pytest.fixture
def org_repo():
    return InMemoryOrganizationRepository()


@pytest.fixture
def contact_repo():
    return InMemoryContactRepository()


@pytest.fixture
def conversation_repo():
    return InMemoryConversationRepository()


@pytest.fixture
def message_repo():
    return InMemoryMessageRepository()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def organization(org_repo):
    now = datetime.now(timezone.utc)
    org = org_repo.add_organization(
        Organization(organization_code="ACME", organization_key="acme-key", name="Acme", created_at=now)
    )
    org_repo.add_integration(
        OrganizationIntegration(
            organization_id=org.id,
            integration_type="WhatsApp",
            token="verify-me",
            is_active=True,
            is_ai_enabled=True,
            config={},
            created_at=now,
        )
    )
    org_repo.add_user(User(organization_id=org.id, name="Acme Bot", is_default_responder=True, created_at=now))
    return org


@pytest.fixture
def integration(org_repo, organization):
    return org_repo.get_integration(organization.id, "WhatsApp")


@pytest.fixture
def resolver(conversation_repo):
    return ConversationResolver(conversation_repo)


@pytest.fixture
def message_service(message_repo, resolver):
    return MessageService(message_repo, resolver)


@pytest.fixture
def channel():
    channel = MagicMock(spec=ChannelClient)
    channel.send.return_value = {"messages": [{"id": "wamid.OUT"}]}
    return channel


@pytest.fixture
def responder():
    responder = Mock()
    responder.respond.return_value = "Hello from the bot"
    return responder


@pytest.fixture
def media_pipeline(channel, blob_store):
    return MediaPipeline(channel, blob_store)


@pytest.fixture
def gateway(org_repo, contact_repo, message_service, media_pipeline, responder, channel):
    return WhatsAppGateway(
        organizations=OrganizationService(org_repo),
        contacts=ContactService(contact_repo),
        messages=message_service,
        media=media_pipeline,
        responder=responder,
        channel=channel,
        typing_indicator=False,
    )
