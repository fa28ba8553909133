import asyncio
import logging
from functools import partial

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from carmarket.config import settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class ObjectStorage:
    """Public image bucket on an S3-compatible store."""

    def __init__(self, bucket: str, public_base_url: str, client=None):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self._client = client

    @classmethod
    def from_settings(cls) -> "ObjectStorage":
        client = boto3.client(
            "s3",
            endpoint_url=settings.STORAGE_ENDPOINT_URL,
            region_name=settings.STORAGE_REGION,
            aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID,
            aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
        )
        return cls(settings.STORAGE_BUCKET, settings.STORAGE_PUBLIC_URL, client=client)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"

    async def _run(self, func, **kwargs):
        # boto3 is synchronous, keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, **kwargs))

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            await self._run(
                self._client.put_object,
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload of {path} to {self.bucket} failed: {e}")
            raise StorageError(f"Error uploading image: {e}") from e
        logger.debug(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")
        return self.public_url(path)

    async def delete_folder(self, prefix: str) -> int:
        """Delete every object under ``prefix``. Returns the number removed."""
        prefix = prefix.rstrip("/") + "/"
        try:
            listing = await self._run(
                self._client.list_objects_v2, Bucket=self.bucket, Prefix=prefix
            )
            keys = [{"Key": obj["Key"]} for obj in listing.get("Contents", [])]
            if keys:
                await self._run(
                    self._client.delete_objects,
                    Bucket=self.bucket,
                    Delete={"Objects": keys},
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Could not delete {self.bucket}/{prefix}: {e}")
            raise StorageError(f"Error deleting images: {e}") from e
        logger.info(f"Deleted {len(keys)} objects under {self.bucket}/{prefix}")
        return len(keys)


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        _storage = ObjectStorage.from_settings()
    return _storage
