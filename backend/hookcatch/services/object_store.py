"""Blob storage backends.

Both backends expose the same capability set (``ObjectStore``): get, put,
delete, has, copy, presign, list and metadata. One of them is chosen at
startup by ``build_object_store``; nothing else in the code base knows which.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import shutil
import tempfile
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, BinaryIO, Protocol
from urllib.parse import quote, urlencode

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from hookcatch.core.config import Settings
from hookcatch.core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PRESIGN_EXPIRES = 3600
S3_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
LOCAL_META_DIR = ".meta"


@dataclass
class ObjectInfo:
    key: str
    size: int
    etag: str
    created_at: datetime | None


class ObjectListing:
    """Lazy, restartable sequence of ``ObjectInfo``.

    Every iteration starts a fresh listing and pages through the backend
    on demand; callers never see continuation tokens.
    """

    def __init__(self, factory: Callable[[], Iterator[ObjectInfo]]):
        self._factory = factory

    def __iter__(self) -> Iterator[ObjectInfo]:
        return self._factory()


class ObjectStore(Protocol):
    def get(self, key: str) -> BinaryIO: ...

    def put(
        self,
        key: str,
        file: BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None: ...

    def delete(self, key: str) -> None: ...

    def has(self, key: str) -> bool: ...

    def copy(self, src: str, dst: str) -> None: ...

    def presign(self, key: str, expires_in: int = DEFAULT_PRESIGN_EXPIRES) -> str: ...

    def list(self, prefix: str | None = None) -> ObjectListing: ...

    def metadata(self, key: str) -> dict[str, str]: ...


def validate_key(key: str) -> str:
    """Reject keys that are empty, absolute, or escape the store."""
    if not key or not key.strip():
        raise ValidationError("Object key must not be empty", "key")
    if "\x00" in key or "\\" in key or key.startswith("/"):
        raise ValidationError(f"Invalid object key: {key}", "key")
    segments = key.split("/")
    if any(segment in ("", ".", "..") for segment in segments) or segments[0] == LOCAL_META_DIR:
        raise ValidationError(f"Invalid object key: {key}", "key")
    return key


class S3ObjectStore:
    """Objects in an S3-compatible bucket."""

    def __init__(
        self,
        bucket: str,
        client: Any = None,
        *,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
    ):
        self.bucket = bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region or None,
            config=Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"max_attempts": 3, "mode": "standard"},
                s3={"addressing_style": "path"},
            ),
        )

    @staticmethod
    def _is_missing(exc: ClientError) -> bool:
        return str(exc.response.get("Error", {}).get("Code")) in S3_MISSING_CODES

    def get(self, key: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                raise NotFoundError("Object", key) from exc
            raise
        return response["Body"]

    def put(
        self,
        key: str,
        file: BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        validate_key(key)
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type
        if metadata:
            extra_args["Metadata"] = metadata
        self.client.upload_fileobj(file, self.bucket, key, ExtraArgs=extra_args or None)

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def has(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                return False
            raise
        return True

    def copy(self, src: str, dst: str) -> None:
        validate_key(dst)
        try:
            self.client.copy_object(
                Bucket=self.bucket,
                Key=dst,
                CopySource={"Bucket": self.bucket, "Key": src},
            )
        except ClientError as exc:
            if self._is_missing(exc):
                raise NotFoundError("Object", src) from exc
            raise

    def presign(self, key: str, expires_in: int = DEFAULT_PRESIGN_EXPIRES) -> str:
        return str(
            self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        )

    def list(self, prefix: str | None = None) -> ObjectListing:
        return ObjectListing(lambda: self._iter_objects(prefix))

    def _iter_objects(self, prefix: str | None) -> Iterator[ObjectInfo]:
        params: dict[str, Any] = {"Bucket": self.bucket}
        if prefix:
            params["Prefix"] = prefix
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(**params):
            for item in page.get("Contents", []):
                yield ObjectInfo(
                    key=item["Key"],
                    size=int(item.get("Size", 0)),
                    etag=str(item.get("ETag", "")).strip('"'),
                    created_at=item.get("LastModified"),
                )

    def metadata(self, key: str) -> dict[str, str]:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                raise NotFoundError("Object", key) from exc
            raise
        result = {str(k): str(v) for k, v in response.get("Metadata", {}).items()}
        if response.get("ContentType"):
            result["content_type"] = str(response["ContentType"])
        return result


class LocalObjectStore:
    """Objects as files under a root directory.

    Metadata lives in JSON sidecars under ``.meta/``. Presigned URLs point at
    ``/v1/files/raw/{key}`` and carry an HMAC signature over key and expiry.
    """

    def __init__(self, root: str | Path, presign_secret: str, base_url: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.presign_secret = presign_secret
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        return self.root / validate_key(key)

    def _meta_path(self, key: str) -> Path:
        return self.root / LOCAL_META_DIR / f"{validate_key(key)}.json"

    def _read_meta(self, key: str) -> dict[str, Any]:
        meta_path = self._meta_path(key)
        if not meta_path.is_file():
            return {}
        with open(meta_path, encoding="utf-8") as f:
            return dict(json.load(f))

    def get(self, key: str) -> BinaryIO:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Object", key)
        return open(path, "rb")

    def put(
        self,
        key: str,
        file: BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        digest = hashlib.md5(usedforsecurity=False)
        size = 0
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as tmp:
                while chunk := file.read(64 * 1024):
                    digest.update(chunk)
                    size += len(chunk)
                    tmp.write(chunk)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._write_meta(
            key,
            {
                "content_type": content_type,
                "metadata": dict(metadata or {}),
                "etag": digest.hexdigest(),
                "size": size,
                "created_at": datetime.now(UTC).isoformat(),
            },
        )

    def _write_meta(self, key: str, meta: dict[str, Any]) -> None:
        meta_path = self._meta_path(key)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        with open(meta_path, "w", encoding="utf-8") as f:
            json.dump(meta, f)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
        self._meta_path(key).unlink(missing_ok=True)

    def has(self, key: str) -> bool:
        return self._path(key).is_file()

    def copy(self, src: str, dst: str) -> None:
        src_path = self._path(src)
        if not src_path.is_file():
            raise NotFoundError("Object", src)
        dst_path = self._path(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src_path, dst_path)
        meta = self._read_meta(src)
        meta["created_at"] = datetime.now(UTC).isoformat()
        self._write_meta(dst, meta)

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode()
        return hmac.new(self.presign_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def presign(self, key: str, expires_in: int = DEFAULT_PRESIGN_EXPIRES) -> str:
        expires = int(time.time()) + expires_in
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.base_url}/v1/files/raw/{quote(key)}?{query}"

    def verify_presigned(self, key: str, expires: int, signature: str) -> bool:
        """Check a signature produced by ``presign`` and that it has not expired."""
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(key, expires), signature)

    def list(self, prefix: str | None = None) -> ObjectListing:
        return ObjectListing(lambda: self._iter_objects(prefix))

    def _iter_objects(self, prefix: str | None) -> Iterator[ObjectInfo]:
        meta_root = self.root / LOCAL_META_DIR
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or meta_root in path.parents or path.name.startswith(".upload-"):
                continue
            key = path.relative_to(self.root).as_posix()
            if prefix and not key.startswith(prefix):
                continue
            meta = self._read_meta(key)
            stat = path.stat()
            created_at = (
                datetime.fromisoformat(meta["created_at"])
                if meta.get("created_at")
                else datetime.fromtimestamp(stat.st_mtime, tz=UTC)
            )
            yield ObjectInfo(
                key=key,
                size=stat.st_size,
                etag=str(meta.get("etag") or ""),
                created_at=created_at,
            )

    def metadata(self, key: str) -> dict[str, str]:
        if not self.has(key):
            raise NotFoundError("Object", key)
        meta = self._read_meta(key)
        result = {str(k): str(v) for k, v in meta.get("metadata", {}).items()}
        if meta.get("content_type"):
            result["content_type"] = str(meta["content_type"])
        return result


def build_object_store(config: Settings) -> ObjectStore:
    """Create the object store selected by ``STORAGE_BACKEND``."""
    backend = config.STORAGE_BACKEND.lower()
    if backend == "s3":
        logger.info("Using S3 object store (bucket %s)", config.S3_BUCKET)
        return S3ObjectStore(
            config.S3_BUCKET,
            endpoint_url=config.S3_ENDPOINT_URL,
            region=config.S3_REGION,
            access_key=config.S3_ACCESS_KEY,
            secret_key=config.S3_SECRET_KEY,
            connect_timeout=config.S3_CONNECT_TIMEOUT_SECONDS,
            read_timeout=config.S3_READ_TIMEOUT_SECONDS,
        )
    if backend == "local":
        logger.info("Using local object store at %s", config.storage_local_root)
        return LocalObjectStore(
            config.storage_local_root,
            presign_secret=config.PRESIGN_SECRET,
            base_url=config.APP_BASE_URL,
        )
    raise ValueError(f"Unknown storage backend: {config.STORAGE_BACKEND}")
