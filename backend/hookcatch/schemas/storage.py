"""File storage and vector search schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class FileEntryResponse(BaseModel):
    key: str
    size: int
    etag: str
    created_at: datetime | None = None
    url: str


class FileUploadResponse(BaseModel):
    key: str
    size: int
    content_type: str
    indexing: bool


class VectorSearchHitResponse(BaseModel):
    content: str
    metadata: dict[str, Any]
    score: float
