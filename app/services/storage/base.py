from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.services.deadline import Deadline


class UploadResult(BaseModel):
    file_name: str
    file_url: str
    file_size: int
    content_type: str
    uploaded_at: datetime
    bucket_name: str
    object_name: str


class BlobStore(ABC):
    """Bucketed object storage with public-read objects."""

    @abstractmethod
    def ensure_bucket(self, bucket: str, deadline: Optional[Deadline] = None) -> None:
        """Create the bucket unless it already exists."""

    @abstractmethod
    def put_object(
        self, bucket: str, key: str, data: bytes, content_type: str, deadline: Optional[Deadline] = None
    ) -> None:
        pass

    @abstractmethod
    def make_public(self, bucket: str, key: str, deadline: Optional[Deadline] = None) -> None:
        pass

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        pass
