from __future__ import annotations
import hashlib
import logging
import time
from typing import Optional

from ..errors import HashFailure, MissingFile, PayloadTooLarge, StorageWriteFailure
from ..schemas import FileMetadata, UploadResult
from .classify import classify
from .dedup import ScanDetector
from .naming import generate_unique_filename
from .urls import DeliveryConfig, build_url

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "untitled"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_hash(data: bytes) -> str:
    try:
        return hashlib.sha256(data).hexdigest()
    except (TypeError, ValueError) as exc:
        raise HashFailure(exc) from exc


class UploadEngine:
    """Hash, deduplicate, persist and address one upload at a time.

    Holds no per-request state; the duplicate check and the write are not
    atomic, so concurrent identical uploads may both be stored.
    """

    def __init__(self, bucket, delivery: DeliveryConfig, detector=None, max_bytes: int = 0):
        self.bucket = bucket
        self.delivery = delivery
        self.detector = detector or ScanDetector(bucket)
        self.max_bytes = max_bytes

    def upload(
        self,
        data: Optional[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        preference: Optional[str] = None,
        request_scheme: str = "https",
    ) -> UploadResult:
        if data is None:
            raise MissingFile()
        if self.max_bytes > 0 and len(data) > self.max_bytes:
            raise PayloadTooLarge()

        original_filename = filename or DEFAULT_FILENAME
        mime_type = content_type or DEFAULT_CONTENT_TYPE
        digest = content_hash(data)
        partition = classify(mime_type)
        logger.info("Upload received: %s (%d bytes) -> %s", original_filename, len(data), partition.value)

        existing = self.detector.find(digest, partition)
        if existing:
            name = existing.split("/", 1)[1]
            logger.info("Duplicate of %s, skipping write", existing)
            return UploadResult(
                url=build_url(partition, name, request_scheme, self.delivery, preference),
                key=existing,
                partition=partition,
                deduplicated=True,
            )

        name = generate_unique_filename(original_filename, mime_type)
        key = f"{partition.value}/{name}"
        metadata = FileMetadata(
            original_hash=digest,
            original_filename=original_filename,
            upload_timestamp=int(time.time() * 1000),
            mime_type=mime_type,
        )
        try:
            self.bucket.put(key, data, content_type=mime_type, custom_metadata=metadata.to_custom_metadata())
        except Exception as exc:
            logger.exception("Write of %s failed", key)
            raise StorageWriteFailure(key, exc) from exc

        try:
            self.detector.record(digest, partition, key)
        except Exception:
            # the object is stored; a missing index row only costs a later scan
            logger.exception("Indexing of %s failed", key)
        url = build_url(partition, name, request_scheme, self.delivery, preference)
        logger.info("Stored %s -> %s", key, url)
        return UploadResult(url=url, key=key, partition=partition)
