# 储存服务相关
"""
Object upload gateway and the storage backends behind it.

A backend knows how to put a local file under a key, delete a key and
build the public URL of a key. The gateway stages the uploaded bytes in a
local file, hands them to the backend and returns the generated key.
"""

import logging
import os
import tempfile
import time
from typing import Optional, Protocol
from urllib.parse import quote

import b2sdk.v2 as b2
import boto3
from b2sdk.v2.exception import B2Error
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from util.errors import UploadError

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    def put(self, path: str, key: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def url(self, key: str) -> str:
        ...


class S3StorageBackend:
    """
    Amazon S3. Objects are publicly readable through the bucket's
    virtual-hosted URL.
    """

    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self._client = client or boto3.client("s3", region_name=region)

    def put(self, path: str, key: str) -> None:
        try:
            with open(path, "rb") as body:
                self._client.put_object(Bucket=self.bucket, Key=key, Body=body)
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(f"Error uploading to S3: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(f"Error deleting from S3: {exc}") from exc

    def url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"


class BackblazeStorageBackend:
    """
    Backblaze B2 through b2sdk. ``authorize`` must run before the backend
    serves URLs; uploads and deletes authorize on first use.
    """

    def __init__(self, key_id: str, application_key: str, bucket_name: str, api=None):
        self.key_id = key_id
        self.application_key = application_key
        self.bucket_name = bucket_name
        self._api = api
        self._bucket = None

    def authorize(self):
        try:
            if self._api is None:
                api = b2.B2Api(b2.InMemoryAccountInfo())
                api.authorize_account("production", self.key_id, self.application_key)
                self._api = api
            if self._bucket is None:
                self._bucket = self._api.get_bucket_by_name(self.bucket_name)
        except B2Error as exc:
            raise UploadError(f"Could not authorize Backblaze account: {exc}") from exc
        return self._bucket

    def put(self, path: str, key: str) -> None:
        try:
            self.authorize().upload_local_file(
                local_file=path,
                file_name=key,
            )
        except B2Error as exc:
            raise UploadError(f"Error uploading to Backblaze: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            bucket = self.authorize()
            info = bucket.get_file_info_by_name(key)
            bucket.delete_file_version(info.id_, key)
        except B2Error as exc:
            raise UploadError(f"Error deleting from Backblaze: {exc}") from exc

    def url(self, key: str) -> str:
        # no network here: the download URL comes from the cached account info
        if self._api is None:
            raise UploadError("Backblaze account is not authorized")
        return self._api.get_download_url_for_file_name(self.bucket_name, key)


class InMemoryStorageBackend:
    """Keeps objects in a dict. For development and tests."""

    def __init__(self, base_url: str = "https://storage.example.test"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, bytes] = {}

    def put(self, path: str, key: str) -> None:
        with open(path, "rb") as f:
            self.objects[key] = f.read()

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)

    def url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key)}"


def generate_key(original_name: str) -> str:
    """
    ``{milliseconds since epoch}-{original name}``. The name is not
    sanitized, so the key must be quoted before use in a URL path.
    """
    return f"{int(time.time() * 1000)}-{original_name}"


class ObjectUploadGateway:
    def __init__(self, backend: StorageBackend, staging_dir: Optional[str] = None):
        self.backend = backend
        self.staging_dir = staging_dir

    async def upload(self, file_bytes: bytes, original_name: str) -> str:
        """
        Store ``file_bytes`` and return the generated object key.

        Raises ``UploadError`` when staging fails or the backend rejects
        the object. The staging file is removed either way.
        """
        key = generate_key(original_name)
        path = None
        try:
            if self.staging_dir:
                os.makedirs(self.staging_dir, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=self.staging_dir, delete=False) as staged:
                path = staged.name
                staged.write(file_bytes)
        except OSError as exc:
            if path and os.path.exists(path):
                os.remove(path)
            raise UploadError(f"Could not stage upload: {exc}") from exc

        try:
            await run_in_threadpool(self.backend.put, path, key)
        except UploadError:
            logger.exception("Upload of %s failed", key)
            raise
        finally:
            if os.path.exists(path):
                os.remove(path)

        logger.info("Uploaded object %s (%d bytes)", key, len(file_bytes))
        return key

    async def remove(self, key: str) -> None:
        await run_in_threadpool(self.backend.delete, key)
        logger.info("Removed object %s", key)

    def url_for(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        return self.backend.url(key)


def build_storage_backend(settings) -> StorageBackend:
    if settings.storage == "s3":
        return S3StorageBackend(settings.aws_s3_bucket_name, settings.aws_region)
    elif settings.storage == "backblaze":
        backend = BackblazeStorageBackend(
            settings.b2_key_id,
            settings.b2_application_key,
            settings.b2_bucket_name,
        )
        backend.authorize()
        return backend
    elif settings.storage == "memory":
        return InMemoryStorageBackend()
    raise ValueError(f"Unknown storage method: {settings.storage}")
