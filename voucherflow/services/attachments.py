"""Attachment storage backends.

Uploads return a stable reference (``s3://bucket/key``, ``local://key`` or
``memory://key``) that stays retrievable indefinitely. The workflow engine
only accepts references that :meth:`AttachmentStore.exists` confirms, so a
transition is never committed ahead of its attachment.
"""

from __future__ import annotations

import mimetypes
import re
import threading
from datetime import datetime, timezone
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Protocol
from uuid import uuid4

import boto3
import structlog
from boto3.exceptions import S3UploadFailedError
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from voucherflow.core.config import get_settings
from voucherflow.core.errors import StorageError, ValidationError

LOGGER = structlog.get_logger(__name__)

RECEIPTS = "receipts"
VOUCHERS = "vouchers"
PAID_VOUCHERS = "paid_vouchers"
ATTACHMENT_KINDS = frozenset({RECEIPTS, VOUCHERS, PAID_VOUCHERS})


class AttachmentStore(Protocol):
    """Blob storage returning permanently retrievable references."""

    def upload(
        self,
        data: bytes,
        *,
        filename: str,
        kind: str,
        content_type: str | None = None,
    ) -> str:
        """Persist bytes and return a stable reference."""

    def exists(self, reference: str) -> bool:
        """Return ``True`` when ``reference`` points at a stored blob."""

    def url(self, reference: str) -> str:
        """Return an access URL for ``reference``."""


def _safe_filename(filename: str) -> str:
    safe_name = re.sub(r"[\\/]+", "_", filename or "").strip()
    safe_name = re.sub(r"[^A-Za-z0-9._-]+", "_", safe_name)
    safe_name = re.sub(r"_+", "_", safe_name)
    return safe_name or "attachment"


def build_object_key(filename: str, *, kind: str, now: datetime | None = None) -> str:
    """Return a collision-free object key grouped by kind, year and month."""

    if kind not in ATTACHMENT_KINDS:
        raise ValidationError(f"Unknown attachment kind: {kind!r}")
    moment = now or datetime.now(timezone.utc)
    return f"{kind}/{moment.year:04d}/{moment.month:02d}/{uuid4().hex}-{_safe_filename(filename)}"


def _determine_content_type(filename: str, content_type: str | None = None) -> str:
    """Infer a best-effort content type for uploads."""
    return (
        content_type
        or mimetypes.guess_type(filename)[0]
        or "application/octet-stream"
    )


def _split_reference(reference: str, scheme: str) -> str:
    prefix = f"{scheme}://"
    if not reference or not reference.startswith(prefix):
        raise ValidationError(f"Attachment reference {reference!r} is not a {scheme} reference")
    return reference[len(prefix):]


class InMemoryAttachmentStore:
    """Process-local store used for tests and local experiments."""

    def __init__(self) -> None:
        self._store: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def upload(
        self,
        data: bytes,
        *,
        filename: str,
        kind: str,
        content_type: str | None = None,
    ) -> str:
        key = build_object_key(filename, kind=kind)
        with self._lock:
            self._store[key] = bytes(data)
        return f"memory://{key}"

    def exists(self, reference: str) -> bool:
        if not reference or not reference.startswith("memory://"):
            return False
        with self._lock:
            return _split_reference(reference, "memory") in self._store

    def read(self, reference: str) -> bytes:
        key = _split_reference(reference, "memory")
        with self._lock:
            if key not in self._store:
                raise KeyError(key)
            return self._store[key]

    def url(self, reference: str) -> str:
        if not self.exists(reference):
            raise KeyError(reference)
        return reference


class LocalAttachmentStore:
    """Filesystem-backed store rooted at ``LOCAL_STORAGE_PATH``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        root = self._root.resolve()
        path = (root / key).resolve()
        if root not in path.parents:
            raise ValidationError("Attachment reference escapes the storage root")
        return path

    def upload(
        self,
        data: bytes,
        *,
        filename: str,
        kind: str,
        content_type: str | None = None,
    ) -> str:
        key = build_object_key(filename, kind=kind)
        destination = self._path(key)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as exc:
            LOGGER.warning("attachment_upload_failed", key=key, error=str(exc))
            raise StorageError("Unable to store attachment locally") from exc
        LOGGER.info("attachment_uploaded", backend="local", key=key, path=str(destination))
        return f"local://{key}"

    def exists(self, reference: str) -> bool:
        if not reference or not reference.startswith("local://"):
            return False
        return self._path(_split_reference(reference, "local")).is_file()

    def url(self, reference: str) -> str:
        return self._path(_split_reference(reference, "local")).as_uri()


class S3AttachmentStore:
    """Amazon S3 backed store."""

    def __init__(self, bucket: str, client: BaseClient | None = None) -> None:
        self._bucket = bucket
        self._client = client

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = _client()
        return self._client

    def upload(
        self,
        data: bytes,
        *,
        filename: str,
        kind: str,
        content_type: str | None = None,
    ) -> str:
        key = build_object_key(filename, kind=kind)
        try:
            self.client.upload_fileobj(
                Fileobj=BytesIO(data),
                Bucket=self._bucket,
                Key=key,
                ExtraArgs={"ContentType": _determine_content_type(filename, content_type)},
            )
        except (BotoCoreError, ClientError, S3UploadFailedError) as exc:
            LOGGER.warning("attachment_upload_failed", bucket=self._bucket, key=key, error=str(exc))
            raise StorageError("Unable to upload attachment") from exc
        LOGGER.info("attachment_uploaded", backend="s3", bucket=self._bucket, key=key)
        return f"s3://{self._bucket}/{key}"

    def _bucket_and_key(self, reference: str) -> tuple[str, str]:
        bucket, _, key = _split_reference(reference, "s3").partition("/")
        if not bucket or not key:
            raise ValidationError(f"Malformed attachment reference {reference!r}")
        return bucket, key

    def exists(self, reference: str) -> bool:
        if not reference or not reference.startswith("s3://"):
            return False
        bucket, key = self._bucket_and_key(reference)
        try:
            self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise StorageError("Unable to verify attachment") from exc
        except BotoCoreError as exc:
            raise StorageError("Unable to verify attachment") from exc
        return True

    def url(self, reference: str, *, expires_in: int = 3600) -> str:
        bucket, key = self._bucket_and_key(reference)
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
        )


def _client() -> BaseClient:
    settings = get_settings()
    client_kwargs: dict[str, object] = {
        "config": Config(
            signature_version="s3v4",
            s3={"addressing_style": "virtual"},
        ),
        "region_name": settings.aws_region or "us-east-2",
    }

    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key

    return boto3.client("s3", **client_kwargs)


@lru_cache()
def get_attachment_store() -> AttachmentStore:
    """Return the store selected by configuration."""

    settings = get_settings()
    if settings.local_attachments:
        return LocalAttachmentStore(settings.local_storage_path)
    return S3AttachmentStore(settings.aws_s3_bucket)


__all__ = [
    "ATTACHMENT_KINDS",
    "AttachmentStore",
    "InMemoryAttachmentStore",
    "LocalAttachmentStore",
    "PAID_VOUCHERS",
    "RECEIPTS",
    "S3AttachmentStore",
    "VOUCHERS",
    "build_object_key",
    "get_attachment_store",
]
