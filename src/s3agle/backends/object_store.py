"""Object-store backend (S3-compatible, via boto3)."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config

from s3agle.config import Settings, expand_folder_template
from s3agle.exceptions import ObjectStoreError
from s3agle.models import Attachment

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)


def object_key(folder_template: str, name: str) -> str:
    """Build the object key from a (possibly date-templated) folder and a name."""
    folder = expand_folder_template(folder_template)
    return f"{folder}/{name}" if folder else name


def escape_url(url: str) -> str:
    return url.replace(" ", "%20")


def public_url(settings: Settings, key: str) -> str:
    """Compose the public URL an object is served from.

    Subdomain style:  scheme://bucket.host/key
    Path style:       scheme://host/bucket/key
    """
    base = settings.content_base_url()
    scheme = "https://"
    for prefix in ("http://", "https://"):
        if base.startswith(prefix):
            scheme, base = prefix, base[len(prefix):]
            break
    host = base.rstrip("/")
    bucket = settings.bucket.strip("/")
    host_parts = host.split("/")

    if settings.use_custom_content_url and (
        bucket in host_parts or host_parts[0].startswith(f"{bucket}.")
    ):
        # Custom content URLs that already carry the bucket are used as-is
        url = f"{scheme}{host}/{key}"
    elif settings.use_bucket_subdomain and not settings.force_path_style:
        url = f"{scheme}{bucket}.{host}/{key}"
    else:
        url = f"{scheme}{host}/{bucket}/{key}"
    return escape_url(url)


def create_s3_client(settings: Settings) -> S3Client:
    """Create a boto3 S3 client for the configured endpoint."""
    return boto3.client(
        "s3",
        region_name=settings.region or None,
        endpoint_url=settings.endpoint_url(),
        aws_access_key_id=settings.access_key,
        aws_secret_access_key=settings.secret_key,
        config=Config(
            s3={"addressing_style": "path" if settings.force_path_style else "auto"}
        ),
    )


class ObjectStoreAdapter:
    """Stores attachments in an S3-compatible bucket.

    The boto3 client is blocking, so calls run in a worker thread.
    """

    def __init__(self, s3_client: S3Client | None = None) -> None:
        self._s3_client = s3_client

    def _client(self, settings: Settings) -> S3Client:
        if self._s3_client is None:
            try:
                self._s3_client = create_s3_client(settings)
            except Exception as e:
                raise ObjectStoreError(f"Failed to create object-store client: {e}") from e
        return self._s3_client

    async def exists(self, settings: Settings, key: str) -> bool:
        """Check whether key is already in the bucket.

        Best-effort: a failed check is logged and reported as "absent".
        """
        client = self._client(settings)
        try:
            response: dict[str, Any] = await asyncio.to_thread(
                client.list_objects_v2, Bucket=settings.bucket, Prefix=key
            )
        except Exception as e:
            logger.warning(f"Existence check for {key} failed, assuming absent: {e}")
            return False
        return any(obj.get("Key") == key for obj in response.get("Contents") or [])

    async def store(self, attachment: Attachment, settings: Settings) -> str:
        """Upload the attachment unless the key is already present.

        Returns:
            Public URL of the object

        Raises:
            ObjectStoreError: If the upload fails
        """
        key = object_key(settings.object_store_folder, attachment.name)
        url = public_url(settings, key)

        if await self.exists(settings, key):
            logger.info(f"{key} already exists in {settings.bucket}, reusing it")
            return url

        client = self._client(settings)
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=settings.bucket,
                Key=key,
                Body=attachment.data,
                ContentType=attachment.content_type or "application/octet-stream",
            )
        except Exception as e:
            raise ObjectStoreError(f"Error uploading {key} to {settings.bucket}: {e}") from e

        logger.info(f"Uploaded {attachment.name} to {settings.bucket}/{key}")
        return url


def content_url(settings: Settings) -> str:
    """URL prefix every stored object is served under, ending with a slash."""
    return public_url(settings, "")
