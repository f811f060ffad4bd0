"""Stored file metadata returned by the storage routes."""

from datetime import datetime

from pydantic import BaseModel, Field


class StoredFileResponse(BaseModel):
    name: str = Field(description="File name inside the bucket ({user_id}_{ts}_{rand}.{ext})")
    bucket: str
    path: str = Field(description="Path to pass back to GET/DELETE /api/storage")
    url: str = Field(description="Download URL")
    size: int = Field(description="Size in bytes")
    content_type: str
    created_at: datetime
