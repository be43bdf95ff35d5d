from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.errors import ConflictError, ForbiddenError, NotFoundError
from app.models import Conversation
from app.models.enums import Channel, MessageKind, SenderType
from app.schemas.message import LastMessageSnapshot
from app.services.conversation_service import ConversationResolver
from tests.fakes import InMemoryConversationRepository


@pytest.fixture
def identity():
    return {"organization_id": uuid4(), "user_id": uuid4(), "contact_id": uuid4(), "channel": Channel.WHATSAPP}


def active_conversation(identity, **overrides):
    fields = {
        "organization_id": identity["organization_id"],
        "user_id": identity["user_id"],
        "contact_id": identity["contact_id"],
        "medium": "whatsapp",
        "is_active": True,
    }
    fields.update(overrides)
    return Conversation(**fields)


class TestResolve:
    def test_creates_conversation_with_defaults(self, resolver, conversation_repo, identity):
        conversation = resolver.resolve(**identity)

        assert conversation.id is not None
        assert conversation.status == "open"
        assert conversation.priority == "low"
        assert conversation.ai_enabled is True
        assert conversation.is_active is True
        assert conversation.medium == "whatsapp"
        assert conversation_repo.rows == [conversation]

    def test_returns_existing_active_conversation(self, resolver, conversation_repo, identity):
        first = resolver.resolve(**identity)
        second = resolver.resolve(**identity)

        assert second is first
        assert len(conversation_repo.rows) == 1

    def test_different_contact_gets_its_own_conversation(self, resolver, identity):
        first = resolver.resolve(**identity)
        other = resolver.resolve(**{**identity, "contact_id": uuid4()})

        assert other.id != first.id

    def test_inactive_conversation_is_not_reused(self, resolver, conversation_repo, identity):
        stale = conversation_repo.create(active_conversation(identity, is_active=False))

        conversation = resolver.resolve(**identity)

        assert conversation.id != stale.id
        assert len(conversation_repo.active_for(conversation)) == 1

    def test_new_conversation_demotes_other_active_rows(self, identity):
        repo = InMemoryConversationRepository(enforce_unique_active=False)
        resolver = ConversationResolver(repo)
        # Rows created before the unique index existed.
        repo.find_active = lambda *args: None
        legacy = [repo.create(active_conversation(identity)) for _ in range(2)]

        conversation = resolver.resolve(**identity)

        assert repo.active_for(conversation) == [conversation]
        assert all(row.is_active is False for row in legacy)

    def test_lost_insert_race_returns_winner(self, identity):
        repo = InMemoryConversationRepository()
        winner = repo.create(active_conversation(identity))
        lookups = iter([None, winner])
        repo.find_active = lambda *args: next(lookups)

        conversation = ConversationResolver(repo).resolve(**identity)

        assert conversation is winner
        assert len(repo.rows) == 1

    def test_conflict_without_winner_propagates(self, identity):
        repo = InMemoryConversationRepository()
        repo.create(active_conversation(identity))
        repo.find_active = lambda *args: None

        with pytest.raises(ConflictError):
            ConversationResolver(repo).resolve(**identity)

    def test_soft_deleted_active_conversation_is_replaced(self, resolver, conversation_repo, identity):
        first = resolver.resolve(**identity)
        first.is_deleted = True

        second = resolver.resolve(**identity)

        assert second.id != first.id
        assert second.is_active is True
        assert conversation_repo.active_for(second) == [second]
        assert resolver.resolve(**identity) is second

    def test_deactivation_failure_does_not_fail_resolve(self, resolver, conversation_repo, identity):
        conversation_repo.fail_deactivate = True

        conversation = resolver.resolve(**identity)

        assert conversation.is_active is True


class TestDeactivateSiblings:
    def test_reports_count(self, identity):
        repo = InMemoryConversationRepository(enforce_unique_active=False)
        keep = repo.create(active_conversation(identity))
        repo.create(active_conversation(identity))

        result = ConversationResolver(repo).deactivate_siblings(keep)

        assert result.ok is True
        assert result.value == 1

    def test_failure_is_reported_not_raised(self, resolver, conversation_repo, identity):
        conversation_repo.fail_deactivate = True

        result = resolver.deactivate_siblings(active_conversation(identity, id=uuid4()))

        assert result.ok is False
        assert result.error_code == "deactivate_siblings_failed"
        assert "deactivation failed" in result.error


class TestRecordLastMessage:
    def snapshot(self):
        return LastMessageSnapshot(
            sender_id=uuid4(),
            sender_type=SenderType.CUSTOMER,
            sender_name="Budi",
            content="Hello",
            kind=MessageKind.TEXT,
            sent_at=datetime.now(timezone.utc),
        )

    def test_overwrites_snapshot(self, resolver, identity):
        conversation = resolver.resolve(**identity)
        snapshot = self.snapshot()

        result = resolver.record_last_message(conversation.id, snapshot)

        assert result.ok is True
        assert conversation.last_message_content == "Hello"
        assert conversation.last_message_sender_type == "customer"
        assert conversation.last_message_type == "text"
        assert conversation.last_message_at == snapshot.sent_at

    def test_failure_is_reported_not_raised(self, resolver, conversation_repo, identity):
        conversation = resolver.resolve(**identity)
        conversation_repo.fail_snapshot = True

        result = resolver.record_last_message(conversation.id, self.snapshot())

        assert result.ok is False
        assert result.error_code == "last_message_update_failed"


class TestGetConversation:
    def test_returns_own_conversation(self, resolver, identity):
        conversation = resolver.resolve(**identity)

        assert resolver.get_conversation(identity["organization_id"], conversation.id) is conversation

    def test_missing_is_not_found(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.get_conversation(uuid4(), uuid4())

    def test_other_organization_is_forbidden(self, resolver, identity):
        conversation = resolver.resolve(**identity)

        with pytest.raises(ForbiddenError):
            resolver.get_conversation(uuid4(), conversation.id)
