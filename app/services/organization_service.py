from uuid import UUID

from app.errors import InvalidInputError, NotFoundError
from app.models import Organization, OrganizationIntegration, User
from app.repositories.base import OrganizationRepository

WHATSAPP_INTEGRATION = "WhatsApp"


class OrganizationService:
    """Lookups that turn missing rows into 404 errors."""

    def __init__(self, organizations: OrganizationRepository):
        self.organizations = organizations

    def get_organization(self, organization_id: UUID) -> Organization:
        organization = self.organizations.get(organization_id)
        if organization is None:
            raise NotFoundError(f"organization {organization_id} not found")
        return organization

    def get_organization_by_key(self, organization_key: str) -> Organization:
        if not organization_key:
            raise InvalidInputError("organization key is required")
        organization = self.organizations.get_by_key(organization_key)
        if organization is None:
            raise NotFoundError("organization not found")
        return organization

    def get_integration(
        self, organization_id: UUID, integration_type: str = WHATSAPP_INTEGRATION
    ) -> OrganizationIntegration:
        integration = self.organizations.get_integration(organization_id, integration_type)
        if integration is None:
            raise NotFoundError(f"{integration_type} integration not configured for organization {organization_id}")
        return integration

    def get_default_user(self, organization_id: UUID) -> User:
        user = self.organizations.get_default_user(organization_id)
        if user is None:
            raise NotFoundError(f"no default responder for organization {organization_id}")
        return user
