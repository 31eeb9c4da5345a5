from enum import Enum
from typing import Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field


class Partition(str, Enum):
    IMAGES = "images"
    VIDEOS = "videos"
    FILES = "files"


PARTITIONS = frozenset(p.value for p in Partition)

OPTIMIZED_PREFERENCE = "Preview-Optimized URL"
ORIGINAL_PREFERENCE = "Original URL"


class FileMetadata(BaseModel):
    """Custom metadata written alongside every stored object."""

    model_config = ConfigDict(populate_by_name=True)

    original_hash: str = Field(alias="originalHash")
    original_filename: str = Field(alias="originalFilename")
    upload_timestamp: int = Field(alias="uploadTimestamp")  # epoch millis
    mime_type: str = Field(alias="mimeType")

    def to_custom_metadata(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self.model_dump(by_alias=True).items()}

    @classmethod
    def from_custom_metadata(cls, raw: Mapping[str, str]) -> Optional["FileMetadata"]:
        try:
            return cls.model_validate(dict(raw))
        except ValueError:
            return None


class UploadResult(BaseModel):
    url: str
    key: str
    partition: Partition
    deduplicated: bool = False
