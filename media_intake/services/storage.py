from __future__ import annotations
import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional
from urllib.parse import quote, unquote

import boto3
from botocore.exceptions import ClientError

from ..core.config import Settings, settings as default_settings
from ..schemas import FileMetadata

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class ObjectHead:
    key: str
    content_type: str
    etag: str
    size: int = 0
    custom_metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class BucketObject:
    head: ObjectHead
    body: Iterator[bytes]
    stream: Optional[Any] = None  # underlying handle, closed with the object

    @property
    def content_type(self) -> str:
        return self.head.content_type

    @property
    def etag(self) -> str:
        return self.head.etag

    def read(self) -> bytes:
        return b"".join(self.body)

    def close(self) -> None:
        for handle in (self.body, self.stream):
            close = getattr(handle, "close", None)
            if close is not None:
                close()


@dataclass
class ListPage:
    keys: List[str]
    cursor: Optional[str] = None


class LocalBucket:
    """Bucket backed by a directory.

    Payloads live at ``<root>/<key>``; content type, custom metadata and the
    entity tag live in a JSON sidecar under ``<root>/.meta/``.
    """

    META_DIR = ".meta"

    def __init__(self, base_path: str):
        self.base_path = os.path.abspath(base_path)
        os.makedirs(self.base_path, exist_ok=True)

    def _path(self, key: str, root: Optional[str] = None) -> Optional[str]:
        root = root or self.base_path
        path = os.path.abspath(os.path.join(root, key))
        if not key or not path.startswith(root + os.sep):
            return None
        return path

    def _meta_path(self, key: str) -> Optional[str]:
        path = self._path(key, os.path.join(self.base_path, self.META_DIR))
        return path + ".json" if path else None

    @staticmethod
    def _write_atomic(path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=os.path.dirname(path), prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        custom_metadata: Optional[Mapping[str, str]] = None,
    ) -> ObjectHead:
        path = self._path(key)
        meta_path = self._meta_path(key)
        meta_root = os.path.join(self.base_path, self.META_DIR)
        if path is None or meta_path is None or path.startswith(meta_root + os.sep):
            raise ValueError(f"Invalid object key: {key!r}")
        head = ObjectHead(
            key=key,
            content_type=content_type,
            etag=hashlib.md5(data).hexdigest(),
            size=len(data),
            custom_metadata=dict(custom_metadata or {}),
        )
        sidecar = {
            "contentType": head.content_type,
            "etag": head.etag,
            "size": head.size,
            "customMetadata": head.custom_metadata,
        }
        self._write_atomic(path, data)
        self._write_atomic(meta_path, json.dumps(sidecar).encode("utf-8"))
        return head

    def head(self, key: str) -> Optional[ObjectHead]:
        path = self._path(key)
        meta_path = self._meta_path(key)
        if path is None or meta_path is None:
            return None
        if not os.path.isfile(path) or not os.path.isfile(meta_path):
            return None
        with open(meta_path, "r", encoding="utf-8") as f:
            sidecar = json.load(f)
        return ObjectHead(
            key=key,
            content_type=sidecar.get("contentType") or DEFAULT_CONTENT_TYPE,
            etag=sidecar.get("etag", ""),
            size=sidecar.get("size", 0),
            custom_metadata=sidecar.get("customMetadata") or {},
        )

    def get(self, key: str) -> Optional[BucketObject]:
        head = self.head(key)
        if head is None:
            return None
        return BucketObject(head=head, body=self._iter_file(self._path(key)))

    @staticmethod
    def _iter_file(path: str) -> Iterator[bytes]:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

    def list(self, prefix: str = "", cursor: Optional[str] = None, limit: int = 1000) -> ListPage:
        keys: List[str] = []
        for dirpath, dirnames, filenames in os.walk(self.base_path):
            if dirpath == self.base_path and self.META_DIR in dirnames:
                dirnames.remove(self.META_DIR)
            for name in filenames:
                if name.startswith(".tmp-"):
                    continue
                rel = os.path.relpath(os.path.join(dirpath, name), self.base_path)
                key = rel.replace(os.sep, "/")
                if key.startswith(prefix) and (cursor is None or key > cursor):
                    keys.append(key)
        keys.sort()
        page = keys[:limit]
        next_cursor = page[-1] if len(keys) > limit else None
        return ListPage(keys=page, cursor=next_cursor)


class S3Bucket:
    """Bucket backed by S3 or an S3-compatible service such as R2."""

    # S3 lower-cases user metadata keys
    _CANONICAL_KEYS = {f.alias.lower(): f.alias for f in FileMetadata.model_fields.values() if f.alias}

    def __init__(self, bucket: str, client=None, **client_kwargs):
        if not bucket:
            raise ValueError("S3_BUCKET is required for the s3 storage driver")
        self.bucket = bucket
        self.client = client or boto3.client("s3", **client_kwargs)

    @staticmethod
    def _is_missing(exc: ClientError) -> bool:
        code = str(exc.response.get("Error", {}).get("Code", ""))
        return code in {"404", "NoSuchKey", "NotFound"}

    def _decode_metadata(self, raw: Mapping[str, str]) -> Dict[str, str]:
        return {self._CANONICAL_KEYS.get(k.lower(), k): unquote(v) for k, v in raw.items()}

    def _head_from(self, key: str, resp: Mapping) -> ObjectHead:
        return ObjectHead(
            key=key,
            content_type=resp.get("ContentType") or DEFAULT_CONTENT_TYPE,
            etag=str(resp.get("ETag", "")).strip('"'),
            size=int(resp.get("ContentLength", 0) or 0),
            custom_metadata=self._decode_metadata(resp.get("Metadata") or {}),
        )

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        custom_metadata: Optional[Mapping[str, str]] = None,
    ) -> ObjectHead:
        metadata = {k: quote(v, safe="") for k, v in (custom_metadata or {}).items()}
        resp = self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata=metadata,
        )
        return ObjectHead(
            key=key,
            content_type=content_type,
            etag=str(resp.get("ETag", "")).strip('"'),
            size=len(data),
            custom_metadata=dict(custom_metadata or {}),
        )

    def head(self, key: str) -> Optional[ObjectHead]:
        try:
            resp = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                return None
            raise
        return self._head_from(key, resp)

    def get(self, key: str) -> Optional[BucketObject]:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                return None
            raise
        stream = resp["Body"]
        return BucketObject(head=self._head_from(key, resp), body=stream.iter_chunks(CHUNK_SIZE), stream=stream)

    def list(self, prefix: str = "", cursor: Optional[str] = None, limit: int = 1000) -> ListPage:
        params = {"Bucket": self.bucket, "Prefix": prefix, "MaxKeys": limit}
        if cursor:
            params["ContinuationToken"] = cursor
        resp = self.client.list_objects_v2(**params)
        keys = [obj["Key"] for obj in resp.get("Contents", [])]
        next_cursor = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ListPage(keys=keys, cursor=next_cursor)


def get_bucket(cfg: Optional[Settings] = None):
    cfg = cfg or default_settings
    if cfg.storage_driver.lower() == "s3":
        client_kwargs = {"region_name": cfg.s3_region or None}
        if cfg.s3_endpoint_url:
            client_kwargs["endpoint_url"] = cfg.s3_endpoint_url
        if cfg.s3_access_key and cfg.s3_secret_key:
            client_kwargs["aws_access_key_id"] = cfg.s3_access_key
            client_kwargs["aws_secret_access_key"] = cfg.s3_secret_key
        logger.info("Using S3 bucket %s", cfg.s3_bucket)
        return S3Bucket(cfg.s3_bucket, **client_kwargs)
    logger.info("Using local bucket at %s", cfg.local_storage_path)
    return LocalBucket(cfg.local_storage_path)
