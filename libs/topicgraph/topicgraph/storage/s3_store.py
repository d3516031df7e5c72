"""S3/MinIO storage."""

from __future__ import annotations

import asyncio
import builtins
import logging
from typing import Any

from botocore.config import Config
from botocore.exceptions import ClientError

from topicgraph.storage.port import StoragePort
from topicgraph.storage.s3_pagination import iter_list_objects_v2

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "") or "")


class S3Storage(StoragePort):
    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        *,
        default_ttl_s: int = 24 * 3600,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket
        self.default_ttl_s = default_ttl_s

        self._client: Any | None = None
        self._bucket_ready: bool = False
        self._bucket_lock = asyncio.Lock()

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client

        import boto3

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            config=Config(s3={"addressing_style": "path"}),
        )
        return self._client

    async def _ensure_bucket(self) -> Any:
        client = self._ensure_client()
        if self._bucket_ready:
            return client

        async with self._bucket_lock:
            if self._bucket_ready:
                return client

            def _head_or_create() -> None:
                try:
                    client.head_bucket(Bucket=self.bucket)
                    return
                except ClientError as exc:
                    if _error_code(exc) not in _MISSING_CODES:
                        raise
                client.create_bucket(Bucket=self.bucket)
                logger.info("s3 bucket created (bucket=%s)", self.bucket)

            try:
                await asyncio.to_thread(_head_or_create)
            except ClientError as exc:
                raise RuntimeError(f"Failed to ensure S3 bucket {self.bucket!r}: {exc}") from exc
            self._bucket_ready = True
        return client

    async def read(self, path: str) -> bytes:
        client = await self._ensure_bucket()

        def _get() -> bytes:
            resp = client.get_object(Bucket=self.bucket, Key=path)
            return bytes(resp["Body"].read())

        try:
            return await asyncio.to_thread(_get)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise FileNotFoundError(f"S3 artifact not found: {path}") from exc
            raise

    async def write(self, path: str, data: bytes) -> None:
        client = await self._ensure_bucket()
        await asyncio.to_thread(client.put_object, Bucket=self.bucket, Key=path, Body=data)

    async def exists(self, path: str) -> bool:
        client = await self._ensure_bucket()
        try:
            await asyncio.to_thread(client.head_object, Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise
        return True

    async def delete(self, path: str) -> None:
        client = await self._ensure_bucket()
        await asyncio.to_thread(client.delete_object, Bucket=self.bucket, Key=path)

    async def get_url(self, path: str, ttl_s: int | None = None) -> str:
        client = await self._ensure_bucket()
        expires = max(1, int(ttl_s if ttl_s is not None else self.default_ttl_s))

        def _gen() -> str:
            return str(
                client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": path},
                    ExpiresIn=expires,
                )
            )

        return await asyncio.to_thread(_gen)

    async def list(self, prefix: str) -> builtins.list[str]:
        client = await self._ensure_bucket()

        def _list() -> builtins.list[str]:
            out: list[str] = []
            for page in iter_list_objects_v2(client, bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents") or []:
                    key = str(obj.get("Key") or "")
                    if key:
                        out.append(key)
            return sorted(out)

        try:
            return await asyncio.to_thread(_list)
        except ClientError as exc:
            raise RuntimeError(f"Failed to list S3 artifacts (prefix={prefix!r}): {exc}") from exc
