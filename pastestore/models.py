"""
Pydantic models for request/response validation.
"""
from typing import Optional
from pydantic import BaseModel, Field, StrictInt, StrictStr

from pastestore.clock import to_iso_z
from pastestore.records import Paste, PasteMeta


class PasteCreate(BaseModel):
    """Schema for creating a new paste. Value checks happen in the service."""
    content: StrictStr = Field(..., description="Text content (required, non-empty)")
    ttl_seconds: Optional[StrictInt] = Field(None, description="Optional TTL in seconds")
    max_views: Optional[StrictInt] = Field(None, description="Optional view limit")


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")
    created_at: int = Field(..., description="Creation time in ms since the epoch")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")

    @classmethod
    def from_paste(cls, paste: Paste) -> "PasteView":
        return cls(
            content=paste.content,
            remaining_views=paste.remaining_views,
            expires_at=to_iso_z(paste.expires_at),
        )


class PasteStats(BaseModel):
    """Schema for paste metadata. Timestamps are ms since the epoch."""
    id: str
    created_at: int
    expires_at: Optional[int] = Field(None, description="null if no TTL")
    remaining_views: Optional[int] = Field(None, description="null if unlimited")
    content_length: int = Field(..., description="Content size in bytes")

    @classmethod
    def from_meta(cls, meta: PasteMeta) -> "PasteStats":
        return cls(
            id=meta.id,
            created_at=meta.created_at,
            expires_at=meta.expires_at,
            remaining_views=meta.remaining_views,
            content_length=meta.content_length,
        )


class DeleteResult(BaseModel):
    deleted: bool


class PurgeResult(BaseModel):
    purged: int


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
