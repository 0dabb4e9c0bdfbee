from typing import Optional
from datetime import datetime
from uuid import UUID

from pydantic import Field

from .base import BaseSchema
from .enums import MAX_LEVEL, MIN_LEVEL, MediaType


class ContentCreate(BaseSchema):
    """Metadata for a new content item, sent alongside its media."""
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    media_type: MediaType
    required_level: int = Field(0, ge=MIN_LEVEL, le=MAX_LEVEL)


class ContentUpdate(BaseSchema):
    """Creator-side metadata changes."""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    required_level: Optional[int] = Field(None, ge=MIN_LEVEL, le=MAX_LEVEL)


class ContentResponse(BaseSchema):
    """
    A content item as a given viewer may see it.

    media_url and thumbnail_url are only filled in when the viewer is
    entitled to the item; otherwise locked is true.
    """
    id: UUID
    creator_id: UUID
    title: str
    description: Optional[str] = None
    media_type: MediaType
    required_level: int
    likes: int
    views: int
    created_at: datetime
    updated_at: datetime
    locked: bool = False
    media_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class MediaUploadResponse(BaseSchema):
    """Result of attaching media to a content item."""
    url: str
    thumbnail_url: Optional[str] = None
    warnings: list[str] = []
