import io
import re
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.errors import ExternalServiceError, InvalidInputError
from app.models.enums import AttachmentType, Channel, MessageKind
from app.schemas.message import CreateMessageInput
from app.schemas.whatsapp import MediaInfo
from app.services.media_pipeline import (
    attachment_type_for,
    channel_media_filename,
    conversation_bucket_name,
    generate_object_name,
    organization_bucket_name,
)


@pytest.fixture
def media_channel(channel):
    channel.get_media_info.return_value = MediaInfo(
        id="MEDIA1", url="https://lookaside.example/MEDIA1", mime_type="application/pdf"
    )
    channel.download_media.return_value = (b"%PDF-1.4", "application/pdf")
    return channel


class TestNaming:
    def test_organization_bucket(self):
        assert organization_bucket_name("ACME", prefix="inbox") == "inbox-org-acme"

    def test_conversation_bucket(self):
        conversation_id = uuid4()

        assert conversation_bucket_name("ACME", conversation_id, prefix="inbox") == f"inbox-conv-acme-{conversation_id}"

    def test_object_name_layout(self):
        name = generate_object_name("photo.jpg", now=datetime(2024, 5, 1, 13, 45, 7, tzinfo=timezone.utc))

        assert re.fullmatch(r"photo-20240501-134507-[0-9a-f]{8}\.jpg", name)

    def test_identical_file_names_get_distinct_objects(self):
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)

        assert generate_object_name("a.png", now) != generate_object_name("a.png", now)

    def test_channel_media_filename(self):
        now = datetime(2024, 5, 1, 13, 45, 7, tzinfo=timezone.utc)

        assert channel_media_filename("M1", "application/pdf", now) == "whatsapp_M1_20240501-134507.pdf"
        assert channel_media_filename("M1", None, now) == "whatsapp_M1_20240501-134507"


class TestAttachmentTypeFor:
    @pytest.mark.parametrize(
        "content_type,expected",
        [
            ("image/jpeg", AttachmentType.IMAGE),
            ("video/mp4", AttachmentType.VIDEO),
            ("audio/ogg; codecs=opus", AttachmentType.AUDIO),
            ("application/pdf", AttachmentType.DOCUMENT),
            (None, AttachmentType.DOCUMENT),
        ],
    )
    def test_maps_content_type(self, content_type, expected):
        assert attachment_type_for(content_type) == expected


class TestDownloadInline:
    def test_two_hops(self, media_pipeline, media_channel):
        media = media_pipeline.download_inline("MEDIA1")

        media_channel.get_media_info.assert_called_once_with("MEDIA1", deadline=None)
        media_channel.download_media.assert_called_once_with("https://lookaside.example/MEDIA1", deadline=None)
        assert media.content == b"%PDF-1.4"
        assert media.content_type == "application/pdf"

    def test_content_type_falls_back_to_metadata(self, media_pipeline, media_channel):
        media_channel.download_media.return_value = (b"data", None)

        assert media_pipeline.download_inline("MEDIA1").content_type == "application/pdf"

    def test_content_type_defaults_to_octet_stream(self, media_pipeline, media_channel):
        media_channel.get_media_info.return_value = MediaInfo(url="https://lookaside.example/MEDIA1")
        media_channel.download_media.return_value = (b"data", None)

        assert media_pipeline.download_inline("MEDIA1").content_type == "application/octet-stream"

    def test_empty_media_id_rejected(self, media_pipeline):
        with pytest.raises(InvalidInputError):
            media_pipeline.download_inline("")

    def test_metadata_failure_skips_download(self, media_pipeline, media_channel):
        media_channel.get_media_info.side_effect = ExternalServiceError("whatsapp.media_info", "expired")

        with pytest.raises(ExternalServiceError, match="whatsapp.media_info"):
            media_pipeline.download_inline("MEDIA1")

        media_channel.download_media.assert_not_called()


class TestUploadFromBytes:
    def test_conversation_bucket_and_public_object(self, media_pipeline, blob_store):
        conversation_id = uuid4()

        upload = media_pipeline.upload_from_bytes("ACME", conversation_id, "a.png", b"png", "image/png")

        assert upload.bucket_name == f"inbox-conv-acme-{conversation_id}"
        assert upload.file_size == 3
        assert upload.content_type == "image/png"
        assert upload.file_url == f"https://storage.googleapis.com/{upload.bucket_name}/{upload.object_name}"
        assert (upload.bucket_name, upload.object_name) in blob_store.public_objects

    def test_organization_bucket_without_conversation(self, media_pipeline):
        upload = media_pipeline.upload_from_bytes("ACME", None, "a.png", b"png", "image/png")

        assert upload.bucket_name == "inbox-org-acme"

    def test_bucket_created_once(self, media_pipeline, blob_store):
        conversation_id = uuid4()

        media_pipeline.upload_from_bytes("ACME", conversation_id, "a.png", b"1", "image/png")
        media_pipeline.upload_from_bytes("ACME", conversation_id, "a.png", b"2", "image/png")

        assert blob_store.created_buckets == [f"inbox-conv-acme-{conversation_id}"]
        assert blob_store.object_count() == 2

    def test_missing_content_type_defaults(self, media_pipeline):
        upload = media_pipeline.upload_from_bytes("ACME", None, "blob", b"x", None)

        assert upload.content_type == "application/octet-stream"

    @pytest.mark.parametrize("code,name", [("", "a.png"), ("ACME", "")])
    def test_requires_organization_code_and_file_name(self, media_pipeline, code, name):
        with pytest.raises(InvalidInputError):
            media_pipeline.upload_from_bytes(code, None, name, b"x", "image/png")


class TestUploadInline:
    def test_reads_uploaded_file(self, media_pipeline, blob_store):
        file = SimpleNamespace(filename="notes.txt", content_type="text/plain", file=io.BytesIO(b"hello"))

        upload = media_pipeline.upload_inline("ACME", None, file)

        assert upload.file_name == "notes.txt"
        assert upload.file_size == 5
        assert blob_store.buckets["inbox-org-acme"][upload.object_name] == b"hello"


class TestEnrichMessage:
    def test_appends_attachment_to_message(self, media_pipeline, media_channel, message_service):
        payload = CreateMessageInput(
            organization_id=uuid4(),
            user_id=uuid4(),
            contact_id=uuid4(),
            channel=Channel.WHATSAPP,
            kind=MessageKind.DOCUMENT,
            content="Document: invoice.pdf",
            media_url="MEDIA1",
        )
        message = message_service.create_message(payload)

        updated = media_pipeline.enrich_message(message_service, message, "ACME", "MEDIA1")

        assert len(updated.attachments) == 1
        attachment = updated.attachments[0]
        assert attachment["type"] == "document"
        assert attachment["filename"].startswith("whatsapp_MEDIA1_")
        assert attachment["filename"].endswith(".pdf")
        assert attachment["size"] == len(b"%PDF-1.4")
        assert updated.media_url == attachment["url"]
