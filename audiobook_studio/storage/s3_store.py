"""S3-compatible object store (Cloudflare R2 by default)."""

from __future__ import annotations

from typing import Any, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StudioSettings
from ..errors import NotFoundError, StorageError, describe_error
from .object_store import ObjectStore, StoredObject, logger

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "")) if exc.response else ""


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3 API bucket."""

    def __init__(self, bucket: str, *, client: Any) -> None:
        self._bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: StudioSettings) -> "S3ObjectStore":
        endpoint = settings.s3_endpoint_url
        if not endpoint and settings.r2_account_id:
            endpoint = f"https://{settings.r2_account_id}.r2.cloudflarestorage.com"
        client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            region_name="auto",
            aws_access_key_id=settings.secret("r2_access_key_id"),
            aws_secret_access_key=settings.secret("r2_secret_access_key"),
            config=Config(signature_version="s3v4"),
        )
        return cls(settings.r2_bucket_name, client=client)

    def _fail(self, action: str, key: str, exc: Exception) -> StorageError:
        logger.error(
            "Object storage request failed",
            extra={
                "event": "storage.s3.error",
                "attributes": {"action": action, "key": key, "error": str(exc)},
            },
        )
        return StorageError(describe_error(exc))

    def list(self, prefix: str) -> List[StoredObject]:
        results: List[StoredObject] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for entry in page.get("Contents", []) or []:
                    results.append(StoredObject(key=entry["Key"], size=int(entry.get("Size", 0))))
        except (BotoCoreError, ClientError) as exc:
            raise self._fail("list", prefix, exc) from exc
        return results

    def read_bytes(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise NotFoundError(f"Object {key} not found") from exc
            raise self._fail("get", key, exc) from exc
        except BotoCoreError as exc:
            raise self._fail("get", key, exc) from exc

    def write_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        params = {"Bucket": self._bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        try:
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            raise self._fail("put", key, exc) from exc

    def copy(self, source_key: str, target_key: str) -> None:
        try:
            self._client.copy_object(
                Bucket=self._bucket,
                Key=target_key,
                CopySource={"Bucket": self._bucket, "Key": source_key},
            )
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise NotFoundError(f"Object {source_key} not found") from exc
            raise self._fail("copy", source_key, exc) from exc
        except BotoCoreError as exc:
            raise self._fail("copy", source_key, exc) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise self._fail("delete", key, exc) from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise self._fail("head", key, exc) from exc
        except BotoCoreError as exc:
            raise self._fail("head", key, exc) from exc
        return True

    def signed_url(self, key: str, *, expires_in: int = 3600) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise self._fail("sign", key, exc) from exc


__all__ = ["S3ObjectStore"]
