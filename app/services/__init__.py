from app.services.contact_service import ContactService, sanitize_phone_number
from app.services.conversation_service import ConversationResolver
from app.services.message_service import MessageService
from app.services.organization_service import OrganizationService
from app.services.result import Result

__all__ = [
    "ContactService",
    "ConversationResolver",
    "MessageService",
    "OrganizationService",
    "Result",
    "sanitize_phone_number",
]
