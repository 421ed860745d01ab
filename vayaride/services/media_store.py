"""
Media store — S3-compatible object storage for driver documents.

boto3 is blocking, so every call runs in a worker thread and is bounded by
an overall deadline. Nothing is retried; the driver resends the file.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import anyio
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from vayaride.config import settings
from vayaride.services.exceptions import ExternalIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    format: str
    size_bytes: int


class S3MediaStore:
    def __init__(
        self,
        bucket: str | None = None,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        client: Any = None,
    ):
        self.bucket = bucket or settings.MEDIA_S3_BUCKET
        self.region = region if region is not None else settings.MEDIA_S3_REGION
        self.endpoint_url = endpoint_url if endpoint_url is not None else settings.MEDIA_S3_ENDPOINT_URL
        self.public_base_url = (
            public_base_url if public_base_url is not None else settings.MEDIA_PUBLIC_BASE_URL
        )
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        if not self.bucket:
            raise ExternalIOError("❌ Media store is not configured (MEDIA_S3_BUCKET).")
        self._client = boto3.client(
            "s3",
            region_name=self.region or None,
            endpoint_url=self.endpoint_url or None,
            aws_access_key_id=settings.MEDIA_S3_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.MEDIA_S3_SECRET_ACCESS_KEY or None,
            config=Config(
                connect_timeout=10,
                read_timeout=settings.MEDIA_UPLOAD_TIMEOUT_SEC,
                retries={"mode": "standard", "total_max_attempts": 1},
            ),
        )
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        host = f"s3.{self.region}.amazonaws.com" if self.region else "s3.amazonaws.com"
        return f"https://{self.bucket}.{host}/{key}"

    async def upload(
        self,
        data: bytes,
        *,
        folder: str,
        name: str,
        resource_type: str,
        fmt: str,
        content_type: str,
        timeout: float,
    ) -> UploadedMedia:
        """
        Store ``data`` under ``{folder}/{resource_type}/{name}.{fmt}``.

        Raises:
            ExternalIOError: the store rejected the upload or it timed out.
        """
        client = self._get_client()
        key = f"{folder.strip('/')}/{resource_type}/{name}.{fmt}"

        def _put() -> None:
            client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )

        try:
            await asyncio.wait_for(
                anyio.to_thread.run_sync(_put, abandon_on_cancel=True), timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Media upload timed out: key=%s, timeout=%ss", key, timeout)
            raise ExternalIOError("❌ Upload timed out. Please send the file again.") from e
        except (BotoCoreError, ClientError) as e:
            logger.error("Media upload failed: key=%s", key, exc_info=True)
            raise ExternalIOError(f"❌ Upload failed: {e}") from e

        logger.info("Media stored: key=%s, bytes=%d", key, len(data))
        return UploadedMedia(url=self.public_url(key), format=fmt, size_bytes=len(data))
