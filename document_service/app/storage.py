import enum
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .logger import get_logger

logger = get_logger(__name__)

CLOUD_CONTENT_TYPE = "application/octet-stream"


class StorageBackend(str, enum.Enum):
    CLOUD = "cloud"
    LOCAL = "local"


class BlobCleanupError(Exception):
    """Raised when a stored blob could not be removed."""


@dataclass(frozen=True)
class StoredBlob:
    locator: str
    public_url: Optional[str] = None
    bucket: Optional[str] = None  # cloud container that holds the blob


def select_backend(is_production: bool, has_cloud_credentials: bool) -> StorageBackend:
    if is_production and has_cloud_credentials:
        return StorageBackend.CLOUD
    return StorageBackend.LOCAL


class BlobStore(ABC):

    @abstractmethod
    def store(self, content: bytes, filename: str) -> StoredBlob:
        ...

    @abstractmethod
    def delete(self, locator: str) -> None:
        ...


class LocalBlobStore(BlobStore):
    """
    Files under a fixed upload directory, addressed by a relative URL path.

    With `ephemeral=True` (read-only or throwaway filesystems such as
    serverless runtimes) nothing is written; the intended locator is still
    returned so the upload can go on.
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads/documents", ephemeral: bool = False):
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.ephemeral = ephemeral

    def store(self, content: bytes, filename: str) -> StoredBlob:
        locator = f"{self.url_prefix}/{filename}"
        if self.ephemeral:
            logger.warning(f"Ephemeral filesystem, not persisting {filename}; recorded as {locator}")
            return StoredBlob(locator=locator)

        os.makedirs(self.upload_dir, exist_ok=True)
        with open(os.path.join(self.upload_dir, filename), "wb") as fh:
            fh.write(content)
        logger.info(f"Stored {len(content)} bytes at {locator}")
        return StoredBlob(locator=locator)

    def delete(self, locator: str) -> None:
        # Local files are not reclaimed when their document is deleted.
        logger.info(f"Leaving local blob {locator} on disk")


class S3BlobStore(BlobStore):
    """Raw binary objects in an S3 bucket, keyed `<folder>/<filename stem>`."""

    def __init__(self, client, bucket: str, folder: str = "documents", public_base_url: Optional[str] = None):
        self.client = client
        self.bucket = bucket
        self.folder = folder.strip("/")
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def public_id_for(self, filename: str) -> str:
        stem = filename.rsplit(".", 1)[0] if "." in filename else filename
        return f"{self.folder}/{stem}" if self.folder else stem

    def secure_url_for(self, public_id: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{public_id}"
        endpoint = getattr(self.client.meta, "endpoint_url", None) or ""
        if endpoint and "amazonaws.com" not in endpoint:
            # LocalStack and other S3-compatible endpoints use path-style URLs
            return f"{endpoint.rstrip('/')}/{self.bucket}/{public_id}"
        region = self.client.meta.region_name or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{public_id}"

    def store(self, content: bytes, filename: str) -> StoredBlob:
        public_id = self.public_id_for(filename)
        self.client.put_object(
            Bucket=self.bucket,
            Key=public_id,
            Body=content,
            ContentType=CLOUD_CONTENT_TYPE,
        )
        logger.info(f"Uploaded {len(content)} bytes to s3://{self.bucket}/{public_id}")
        return StoredBlob(locator=public_id, public_url=self.secure_url_for(public_id), bucket=self.bucket)

    def delete(self, locator: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=locator)
        except (ClientError, BotoCoreError) as e:
            raise BlobCleanupError(f"Failed to delete s3://{self.bucket}/{locator}: {e}") from e
        logger.info(f"Deleted s3://{self.bucket}/{locator}")


def create_s3_client(settings: Settings):
    boto3_kwargs = {"region_name": settings.aws_region}
    if settings.localstack_endpoint:
        boto3_kwargs["endpoint_url"] = settings.localstack_endpoint
    return boto3.client("s3", **boto3_kwargs)


def build_blob_store(backend: StorageBackend, settings: Settings) -> BlobStore:
    if backend is StorageBackend.CLOUD:
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET is not configured")
        return S3BlobStore(
            create_s3_client(settings),
            settings.s3_bucket,
            folder=settings.s3_folder,
            public_base_url=settings.s3_public_base_url,
        )
    return LocalBlobStore(
        settings.upload_dir,
        url_prefix=settings.upload_url_prefix,
        ephemeral=settings.ephemeral_filesystem,
    )
