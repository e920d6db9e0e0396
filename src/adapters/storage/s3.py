"""
S3 file store adapter - Implements FileStore protocol via boto3.

Objects are addressed by public URL in the rest of the system. The URL
is either ``{s3_base_url}/{key}`` (CDN or custom domain) or the
virtual-hosted bucket URL ``https://{bucket}.s3.{region}.amazonaws.com/{key}``.
"""

import logging
import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.config.settings import Settings
from src.domain.exceptions import NotConfigured, StorageFailed
from src.domain.models import PresignedDownload, PresignedUpload

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(file_name: str) -> str:
    """Reduce a client supplied file name to a safe key segment."""
    name = PurePosixPath(file_name.replace("\\", "/")).name
    name = _UNSAFE_NAME_CHARS.sub("-", name).strip("-.")
    return name[:100] or "file"


class S3FileStore:
    """
    Implements FileStore protocol against a single bucket.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        client,
        bucket: str,
        region: str,
        base_url: str | None = None,
        presign_ttl_seconds: int = 900,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._base_url = (base_url or f"https://{bucket}.s3.{region}.amazonaws.com").rstrip("/")
        self._presign_ttl = presign_ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3FileStore":
        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
        return cls(
            client,
            bucket=settings.s3_bucket,
            region=settings.aws_region,
            base_url=settings.s3_base_url or None,
            presign_ttl_seconds=settings.s3_presign_expires_seconds,
        )

    def url_for(self, key: str) -> str:
        return f"{self._base_url}/{key}"

    def key_from_url(self, url: str) -> str | None:
        """Return the object key for a URL this store issued, else None."""
        prefix = f"{self._base_url}/"
        if not url.startswith(prefix):
            return None
        key = unquote(urlparse(url).path).lstrip("/")
        base_path = urlparse(self._base_url).path.strip("/")
        if base_path:
            key = key[len(base_path) + 1 :]
        return key or None

    def upload(self, data: bytes, content_type: str, folder: str, file_name: str) -> str:
        """
        Store bytes under ``{folder}/{uuid}{ext}`` and return the public URL.

        Raises:
            StorageFailed: S3 rejected the upload or was unreachable
        """
        extension = PurePosixPath(safe_file_name(file_name)).suffix.lower()
        key = f"{folder}/{uuid4()}{extension}"
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise StorageFailed(str(e)) from e

        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return self.url_for(key)

    def delete(self, url: str) -> None:
        """
        Delete the object behind ``url``. S3 deletes are idempotent, so a
        missing object is not an error; foreign URLs are skipped.

        Raises:
            StorageFailed: S3 rejected the delete
        """
        key = self.key_from_url(url)
        if key is None:
            logger.warning("Not deleting %s: not an object in bucket %s", url, self._bucket)
            return
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 delete of %s failed: %s", key, e)
            raise StorageFailed(str(e)) from e

        logger.info("Deleted %s", key)

    def presign_upload(
        self, key_prefix: str, file_name: str, content_type: str, ttl_seconds: int | None = None
    ) -> PresignedUpload:
        """
        Presign a PUT for ``{key_prefix}/{uuid}-{file_name}``.

        The client must send the same Content-Type header it declared here.
        """
        ttl = ttl_seconds or self._presign_ttl
        key = f"{key_prefix.strip('/')}/{uuid4().hex}-{safe_file_name(file_name)}"
        upload_url = self._presign(
            "put_object", {"Bucket": self._bucket, "Key": key, "ContentType": content_type}, ttl
        )
        return PresignedUpload(upload_url=upload_url, file_url=self.url_for(key), key=key, expires_in=ttl)

    def presign_download(self, key: str, ttl_seconds: int | None = None) -> PresignedDownload:
        ttl = ttl_seconds or self._presign_ttl
        url = self._presign("get_object", {"Bucket": self._bucket, "Key": key}, ttl)
        return PresignedDownload(url=url, expires_in=ttl)

    def _presign(self, operation: str, params: dict, ttl: int) -> str:
        try:
            return self._client.generate_presigned_url(operation, Params=params, ExpiresIn=ttl)
        except (ClientError, BotoCoreError) as e:
            logger.error("Presigning %s for %s failed: %s", operation, params.get("Key"), e)
            raise StorageFailed(str(e)) from e


class UnconfiguredFileStore:
    """Stands in when no bucket is configured; every operation is refused."""

    def upload(self, data: bytes, content_type: str, folder: str, file_name: str) -> str:
        raise NotConfigured("S3 bucket is not configured")

    def delete(self, url: str) -> None:
        raise NotConfigured("S3 bucket is not configured")

    def key_from_url(self, url: str) -> str | None:
        return None

    def presign_upload(
        self, key_prefix: str, file_name: str, content_type: str, ttl_seconds: int | None = None
    ) -> PresignedUpload:
        raise NotConfigured("S3 bucket is not configured")

    def presign_download(self, key: str, ttl_seconds: int | None = None) -> PresignedDownload:
        raise NotConfigured("S3 bucket is not configured")
