from app.repositories.base import (
    ContactRepository,
    ConversationRepository,
    MessageRepository,
    OrganizationRepository,
)
from app.repositories.sql import (
    SqlContactRepository,
    SqlConversationRepository,
    SqlMessageRepository,
    SqlOrganizationRepository,
)

__all__ = [
    "OrganizationRepository",
    "ContactRepository",
    "ConversationRepository",
    "MessageRepository",
    "SqlOrganizationRepository",
    "SqlContactRepository",
    "SqlConversationRepository",
    "SqlMessageRepository",
]
