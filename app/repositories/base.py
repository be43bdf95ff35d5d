from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from app.models import Contact, Conversation, Message, Organization, OrganizationIntegration, User
from app.schemas.message import LastMessageSnapshot


class OrganizationRepository(ABC):
    """Organization, integration and responder lookups."""

    @abstractmethod
    def get(self, organization_id: UUID) -> Optional[Organization]:
        pass

    @abstractmethod
    def get_by_key(self, organization_key: str) -> Optional[Organization]:
        pass

    @abstractmethod
    def get_integration(self, organization_id: UUID, integration_type: str) -> Optional[OrganizationIntegration]:
        pass

    @abstractmethod
    def get_default_user(self, organization_id: UUID) -> Optional[User]:
        pass


class ContactRepository(ABC):
    @abstractmethod
    def get_by_phone(self, organization_id: UUID, phone_number: str) -> Optional[Contact]:
        pass

    @abstractmethod
    def create(self, contact: Contact) -> Contact:
        """Persist a new contact. Raises ``ConflictError`` on a duplicate phone number."""


class ConversationRepository(ABC):
    @abstractmethod
    def get(self, conversation_id: UUID) -> Optional[Conversation]:
        pass

    @abstractmethod
    def find_active(
        self, organization_id: UUID, user_id: UUID, contact_id: UUID, medium: str
    ) -> Optional[Conversation]:
        pass

    @abstractmethod
    def create(self, conversation: Conversation) -> Conversation:
        """Persist a new conversation. Raises ``ConflictError`` when another active row holds the identity."""

    @abstractmethod
    def update_last_message(self, conversation_id: UUID, snapshot: LastMessageSnapshot) -> None:
        pass

    @abstractmethod
    def deactivate_siblings(self, conversation: Conversation) -> int:
        """Set ``is_active=False`` on every other conversation with the same identity."""


class MessageRepository(ABC):
    @abstractmethod
    def get(self, message_id: UUID) -> Optional[Message]:
        pass

    @abstractmethod
    def create(self, message: Message) -> Message:
        pass

    @abstractmethod
    def update_media(self, message: Message, media_url: str, attachments: List[dict]) -> Message:
        pass
