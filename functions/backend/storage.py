"""
Attachment storage for Firebase Storage, S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Protocol

import boto3
from botocore.config import Config
from firebase_admin import storage as firebase_storage
from google.api_core import exceptions


class StorageClient(Protocol):
    """Defines the operations the tracker needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def delete_file(self, path: str) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def put_bytes(self, path: str, data: bytes) -> None:
        self.stored_objects[path] = data

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def delete_file(self, path: str) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        del self.stored_objects[path]


class FirebaseStorageClient:
    """Attachments stored in a Firebase (Google Cloud Storage) bucket."""

    def __init__(self, bucket_name: str | None = None):
        self._bucket = firebase_storage.bucket(bucket_name)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        blob = self._bucket.blob(path)
        return blob.generate_signed_url(
            expiration=timedelta(seconds=expires_in), method="GET"
        )

    def delete_file(self, path: str) -> None:
        try:
            self._bucket.blob(path).delete()
        except exceptions.NotFound as e:
            raise FileNotFoundError(path) from e


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for self-hosted deployments.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
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

    def delete_file(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)
