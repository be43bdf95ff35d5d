from app.services.storage.base import BlobStore, UploadResult
from app.services.storage.s3_store import S3BlobStore, get_s3_client

__all__ = ["BlobStore", "UploadResult", "S3BlobStore", "get_s3_client"]
