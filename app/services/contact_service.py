from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from app.config import settings
from app.errors import ConflictError, InvalidInputError
from app.logging_config import get_logger
from app.models import Contact
from app.repositories.base import ContactRepository

logger = get_logger("contact_service")


def sanitize_phone_number(phone_number: Optional[str], country_code: Optional[str] = None) -> str:
    """Normalize to ``+<digits>``: local ``0...`` numbers get the default country code."""
    phone = (phone_number or "").strip()
    if not phone:
        raise InvalidInputError("phone number is required")

    country_code = country_code if country_code is not None else settings.default_country_code
    if phone.startswith("0"):
        phone = country_code + phone[1:]

    phone = phone.replace(" ", "").replace("-", "")
    if not phone.startswith("+"):
        phone = "+" + phone
    return phone


class ContactService:
    def __init__(self, contacts: ContactRepository):
        self.contacts = contacts

    def create_contact(self, organization_id: UUID, phone_number: str, name: Optional[str] = None) -> Contact:
        phone = sanitize_phone_number(phone_number)
        if self.contacts.get_by_phone(organization_id, phone):
            raise ConflictError(f"contact with phone number {phone} already exists")

        contact = self.contacts.create(
            Contact(
                organization_id=organization_id,
                phone_number=phone,
                name=name,
                created_at=datetime.now(timezone.utc),
            )
        )
        logger.info(
            "Contact created",
            extra={"context": {"organization_id": str(organization_id), "contact_id": str(contact.id)}},
        )
        return contact

    def get_or_create_contact(self, organization_id: UUID, phone_number: str, name: Optional[str] = None) -> Contact:
        phone = sanitize_phone_number(phone_number)
        contact = self.contacts.get_by_phone(organization_id, phone)
        if contact:
            return contact

        try:
            return self.create_contact(organization_id, phone, name)
        except ConflictError:
            # Created by a concurrent delivery between lookup and insert.
            contact = self.contacts.get_by_phone(organization_id, phone)
            if contact is None:
                raise
            return contact
