from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


class ContentHashEntry(SQLModel, table=True):
    __tablename__ = "content_hash_index"

    id: Optional[int] = Field(default=None, primary_key=True)
    partition: str = Field(index=True)  # images | videos | files
    content_hash: str = Field(index=True)
    key: str = Field(unique=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
