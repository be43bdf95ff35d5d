"""Move channel media into the blob store and describe it as attachments."""

import mimetypes
import os
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Optional, Protocol
from uuid import UUID

from app.config import settings
from app.errors import InvalidInputError
from app.logging_config import get_logger
from app.models import Message
from app.models.enums import AttachmentType
from app.schemas.message import Attachment
from app.schemas.whatsapp import DownloadedMedia
from app.services.channel.base import ChannelClient
from app.services.deadline import Deadline
from app.services.message_service import MessageService
from app.services.storage.base import BlobStore, UploadResult

logger = get_logger("media_pipeline")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class InlineFile(Protocol):
    """What ``upload_inline`` needs from an uploaded file (FastAPI's ``UploadFile`` fits)."""

    filename: Optional[str]
    content_type: Optional[str]
    file: BinaryIO


def organization_bucket_name(organization_code: str, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.storage_bucket_prefix}-org-{organization_code.lower()}"


def conversation_bucket_name(organization_code: str, conversation_id: UUID, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.storage_bucket_prefix}-conv-{organization_code.lower()}-{conversation_id}"


def generate_object_name(file_name: str, now: Optional[datetime] = None) -> str:
    """``<base>-<YYYYmmdd-HHMMSS>-<8 hex><ext>``: unique even for identical file names."""
    now = now or datetime.now(timezone.utc)
    base, ext = os.path.splitext(file_name)
    return f"{base}-{now.strftime('%Y%m%d-%H%M%S')}-{str(uuid.uuid4())[:8]}{ext}"


def attachment_type_for(content_type: Optional[str]) -> AttachmentType:
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return AttachmentType.IMAGE
    if content_type.startswith("video/"):
        return AttachmentType.VIDEO
    if content_type.startswith("audio/"):
        return AttachmentType.AUDIO
    return AttachmentType.DOCUMENT


def channel_media_filename(media_id: str, content_type: Optional[str], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    base_type = (content_type or "").split(";")[0].strip()
    ext = (mimetypes.guess_extension(base_type) or "") if base_type else ""
    return f"whatsapp_{media_id}_{now.strftime('%Y%m%d-%H%M%S')}{ext}"


class MediaPipeline:
    def __init__(self, channel: ChannelClient, blob_store: BlobStore):
        self.channel = channel
        self.blob_store = blob_store

    def download_inline(self, media_id: str, deadline: Optional[Deadline] = None) -> DownloadedMedia:
        """Two hops: media id -> signed URL and metadata, then URL -> bytes."""
        if not media_id:
            raise InvalidInputError("media id is required")
        info = self.channel.get_media_info(media_id, deadline=deadline)
        content, content_type = self.channel.download_media(info.url, deadline=deadline)
        return DownloadedMedia(
            info=info,
            content=content,
            content_type=content_type or info.mime_type or DEFAULT_CONTENT_TYPE,
        )

    def upload_from_bytes(
        self,
        organization_code: str,
        conversation_id: Optional[UUID],
        file_name: str,
        data: bytes,
        content_type: Optional[str],
        deadline: Optional[Deadline] = None,
    ) -> UploadResult:
        """Upload into the conversation bucket, or the organization bucket when there is no conversation."""
        if not organization_code:
            raise InvalidInputError("organization code is required")
        if not file_name:
            raise InvalidInputError("file name is required")

        if conversation_id is None:
            bucket = organization_bucket_name(organization_code)
        else:
            bucket = conversation_bucket_name(organization_code, conversation_id)
        object_name = generate_object_name(file_name)
        content_type = content_type or DEFAULT_CONTENT_TYPE

        self.blob_store.ensure_bucket(bucket, deadline=deadline)
        self.blob_store.put_object(bucket, object_name, data, content_type, deadline=deadline)
        self.blob_store.make_public(bucket, object_name, deadline=deadline)

        result = UploadResult(
            file_name=file_name,
            file_url=self.blob_store.public_url(bucket, object_name),
            file_size=len(data),
            content_type=content_type,
            uploaded_at=datetime.now(timezone.utc),
            bucket_name=bucket,
            object_name=object_name,
        )
        logger.info(
            "Media uploaded",
            extra={"context": {"bucket": bucket, "object": object_name, "size": result.file_size}},
        )
        return result

    def upload_inline(
        self,
        organization_code: str,
        conversation_id: Optional[UUID],
        file: InlineFile,
        deadline: Optional[Deadline] = None,
    ) -> UploadResult:
        data = file.file.read()
        return self.upload_from_bytes(
            organization_code,
            conversation_id,
            file.filename or "upload",
            data,
            file.content_type,
            deadline=deadline,
        )

    @staticmethod
    def build_attachment(upload: UploadResult) -> Attachment:
        return Attachment(
            id=upload.object_name,
            type=attachment_type_for(upload.content_type),
            url=upload.file_url,
            filename=upload.file_name,
            size=upload.file_size,
            mime_type=upload.content_type,
        )

    def enrich_message(
        self,
        messages: MessageService,
        message: Message,
        organization_code: str,
        media_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Message:
        """Download the channel media for ``message``, re-host it and record the attachment.

        A failure in any hop propagates; the message keeps the channel media id
        as its media reference.
        """
        media = self.download_inline(media_id, deadline=deadline)
        upload = self.upload_from_bytes(
            organization_code,
            message.conversation_id,
            channel_media_filename(media_id, media.content_type),
            media.content,
            media.content_type,
            deadline=deadline,
        )
        return messages.append_attachment(
            message.organization_id, message.id, upload.file_url, self.build_attachment(upload)
        )
