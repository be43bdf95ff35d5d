from app.models.contact import Contact
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.organization import Organization, OrganizationIntegration
from app.models.user import User

__all__ = [
    "Organization",
    "OrganizationIntegration",
    "User",
    "Contact",
    "Conversation",
    "Message",
]
