"""
Domain records handled by the paste store.
"""
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class PasteRecord:
    id: str                                 # Opaque primary key supplied by the caller
    content: str                            # Immutable once created
    created_at: int                         # ms epoch, set at creation
    expires_at: Optional[int] = None        # ms epoch; None means no time limit
    remaining_views: Optional[int] = None   # None means unlimited views

    @property
    def content_length(self) -> int:
        return len(self.content.encode("utf-8"))

    def meta(self) -> "PasteMeta":
        return PasteMeta(
            id=self.id,
            created_at=self.created_at,
            expires_at=self.expires_at,
            remaining_views=self.remaining_views,
            content_length=self.content_length,
        )

    def spend_view(self) -> "PasteRecord":
        """Return a copy with one view taken off a limited budget."""
        if self.remaining_views is None:
            return self
        return replace(self, remaining_views=self.remaining_views - 1)

    def served(self) -> "Paste":
        return Paste(
            id=self.id,
            content=self.content,
            remaining_views=self.remaining_views,
            expires_at=self.expires_at,
        )


@dataclass(frozen=True)
class Paste:
    """Result of a successful consuming read."""

    id: str
    content: str
    remaining_views: Optional[int]   # Post-decrement value
    expires_at: Optional[int]


@dataclass(frozen=True)
class PasteMeta:
    """Point-in-time metadata, never filtered by consumability."""

    id: str
    created_at: int
    expires_at: Optional[int]
    remaining_views: Optional[int]
    content_length: int
