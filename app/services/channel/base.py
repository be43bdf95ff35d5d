from abc import ABC, abstractmethod
from typing import Optional, Tuple

from app.schemas.whatsapp import MediaInfo
from app.services.deadline import Deadline


class ChannelClient(ABC):
    """Abstract messaging channel (send API plus media endpoint)."""

    @abstractmethod
    def send(self, envelope: dict, deadline: Optional[Deadline] = None) -> dict:
        """POST one envelope to the channel's send endpoint and return the decoded response."""

    @abstractmethod
    def get_media_info(self, media_id: str, deadline: Optional[Deadline] = None) -> MediaInfo:
        """Resolve a channel media id to a short-lived download URL and metadata."""

    @abstractmethod
    def download_media(self, url: str, deadline: Optional[Deadline] = None) -> Tuple[bytes, Optional[str]]:
        """Fetch raw media bytes and the reported content type."""
