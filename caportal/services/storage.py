"""
Object storage for client documents.

WHAT: A minimal put/get/delete interface over an S3 bucket.

WHY: Document bytes never touch the database. Keeping the storage calls
behind one small interface lets the file service stay unaware of boto3 and
lets tests swap in an in-memory store through the FastAPI dependency.

HOW: boto3's client is synchronous, so each call runs in Starlette's
threadpool to keep the event loop free while large files transfer.
"""

import logging
from functools import lru_cache
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from caportal.core.config import settings
from caportal.core.exceptions import FileStorageError


logger = logging.getLogger(__name__)


class FileStorage(Protocol):
    """Interface the file service expects from a storage backend."""

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        ...

    async def get(self, key: str) -> bytes:
        ...

    async def delete(self, key: str) -> None:
        ...


class S3FileStorage:
    """
    S3 (or S3-compatible, e.g. MinIO) storage backend.

    Raises FileStorageError (502) for any failure reported by the bucket.
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        client=None,
    ):
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self.s3_client = client or boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
        )

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            await run_in_threadpool(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                **extra,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise FileStorageError(
                message="Failed to upload file to storage",
                error=str(e),
            )

    async def get(self, key: str) -> bytes:
        try:
            response = await run_in_threadpool(
                self.s3_client.get_object,
                Bucket=self.bucket_name,
                Key=key,
            )
            return await run_in_threadpool(response["Body"].read)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 download of %s failed: %s", key, e)
            raise FileStorageError(
                message="Failed to download file from storage",
                error=str(e),
            )

    async def delete(self, key: str) -> None:
        try:
            await run_in_threadpool(
                self.s3_client.delete_object,
                Bucket=self.bucket_name,
                Key=key,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 delete of %s failed: %s", key, e)
            raise FileStorageError(
                message="Failed to delete file from storage",
                error=str(e),
            )


@lru_cache
def get_file_storage() -> FileStorage:
    """
    FastAPI dependency returning the process-wide storage backend.

    Overridden in tests with an in-memory implementation.
    """
    return S3FileStorage()
