"""
Object storage for user media and account exports (S3-compatible) with an
in-memory double for tests.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config

from neighborlink.errors import AuthorizationError, ValidationError

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        ...

    def upload_json(self, path: str, payload: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...


def user_media_path(user_id: str, filename: str, folder: str = "media") -> str:
    """Build an upload key under the caller's own prefix."""
    name = filename.strip().lstrip("/")
    if not name or ".." in name.split("/"):
        raise ValidationError("Invalid file name")
    folder = folder.strip("/") or "media"
    return f"users/{user_id}/{folder}/{name}"


def ensure_owned(user_id: str, path: str) -> str:
    """Reject keys outside ``users/{user_id}/``."""
    if not path.startswith(f"users/{user_id}/") or ".." in path.split("/"):
        raise AuthorizationError("You can only manage your own files")
    return path


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        return f"{self.base_url}/{path}?op=put&expires={expires_in}"

    def upload_json(self, path: str, payload: dict) -> None:
        # Round-trip through JSON to mimic real upload behavior
        self.stored_objects[path] = json.loads(json.dumps(payload, default=str))

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, R2, MinIO, ...).
    """

    bucket: str
    region: str
    endpoint: Optional[str]
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": path, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def upload_json(self, path: str, payload: dict) -> None:
        body = json.dumps(payload, default=str).encode("utf-8")
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=body,
            ContentType="application/json",
        )

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)
        logger.info("Deleted object %s", path)
