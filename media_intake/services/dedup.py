from __future__ import annotations
import logging
from typing import Optional

from ..schemas import Partition

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000
HASH_METADATA_KEY = "originalHash"


def find_duplicate(bucket, content_hash: str, partition: Partition, page_size: int = LIST_PAGE_SIZE) -> Optional[str]:
    """Return the first key under ``partition`` whose stored hash matches.

    Walks every listing page (one ``head`` per candidate) until a match or the
    partition is exhausted. First match in listing order wins.
    """
    prefix = f"{Partition(partition).value}/"
    cursor = None
    scanned = 0
    while True:
        page = bucket.list(prefix=prefix, cursor=cursor, limit=page_size)
        for key in page.keys:
            scanned += 1
            head = bucket.head(key)
            if head is not None and head.custom_metadata.get(HASH_METADATA_KEY) == content_hash:
                logger.debug("Hash %s matched %s after %d candidates", content_hash, key, scanned)
                return key
        cursor = page.cursor
        if not cursor:
            break
    logger.debug("Hash %s not found in %s (%d candidates)", content_hash, prefix, scanned)
    return None


class ScanDetector:
    """Linear scan over the partition listing."""

    def __init__(self, bucket, page_size: int = LIST_PAGE_SIZE):
        self.bucket = bucket
        self.page_size = page_size

    def find(self, content_hash: str, partition: Partition) -> Optional[str]:
        return find_duplicate(self.bucket, content_hash, partition, self.page_size)

    def record(self, content_hash: str, partition: Partition, key: str) -> None:
        return None
