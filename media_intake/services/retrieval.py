import logging

from ..errors import NotFound
from ..schemas import PARTITIONS
from .storage import BucketObject

logger = logging.getLogger(__name__)


def fetch(bucket, partition: str, key: str) -> BucketObject:
    # unknown partitions look exactly like missing objects
    if partition not in PARTITIONS or not key:
        raise NotFound(f"{partition}/{key}")
    obj = bucket.get(f"{partition}/{key}")
    if obj is None:
        logger.info("Miss for %s/%s", partition, key)
        raise NotFound(f"{partition}/{key}")
    return obj
