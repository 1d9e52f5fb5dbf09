"""
Boundary operations used by the presentation layer.

Validates caller input, generates paste ids, resolves "now" from the clock
when the caller does not supply it, and turns the store's "nothing there"
results into named errors.
"""
import logging
import uuid
from typing import Callable, List, Optional

from pastestore.clock import Clock, SystemClock
from pastestore.config import Settings, settings
from pastestore.database import PasteStore
from pastestore.errors import DuplicateKey, InvalidArgument, NotAvailable, NotFound
from pastestore.records import Paste, PasteMeta, PasteRecord

logger = logging.getLogger(__name__)


def new_paste_id() -> str:
    return str(uuid.uuid4())


def _positive_int(name: str, value) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgument(f"{name} must be an integer >= 1")


class PasteService:
    """The store's contract as seen by request handlers."""

    def __init__(
        self,
        store: PasteStore,
        clock: Optional[Clock] = None,
        id_factory: Callable[[], str] = new_paste_id,
        config: Settings = settings,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.id_factory = id_factory
        self.config = config

    def _now(self, now_ms: Optional[int]) -> int:
        return self.clock.now_ms() if now_ms is None else now_ms

    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        now_ms: Optional[int] = None,
    ) -> PasteRecord:
        """
        Create a new paste under a freshly generated id.

        Args:
            content: Text content, must contain something besides whitespace
            ttl_seconds: Optional time-to-live in seconds
            max_views: Optional maximum view count
            now_ms: Creation time; the clock is asked when omitted

        Returns:
            The stored record

        Raises:
            InvalidArgument: If any argument is malformed
            DuplicateKey: If every generated id collided
            StoreError: If the backend failed
        """
        if not isinstance(content, str) or not content.strip():
            raise InvalidArgument("content is required and must be a non-empty string")
        if len(content.encode("utf-8")) > self.config.MAX_BODY_BYTES:
            raise InvalidArgument(f"content must be at most {self.config.MAX_BODY_BYTES} bytes")
        _positive_int("ttl_seconds", ttl_seconds)
        _positive_int("max_views", max_views)

        now = self._now(now_ms)
        attempts = max(self.config.CREATE_MAX_ATTEMPTS, 1)
        for attempt in range(1, attempts + 1):
            paste_id = self.id_factory()
            try:
                return self.store.create(paste_id, content, now, ttl_seconds, max_views)
            except DuplicateKey:
                logger.warning(f"Paste id collision on {paste_id} (attempt {attempt}/{attempts})")
                if attempt == attempts:
                    raise

    def consume(self, paste_id: str, now_ms: Optional[int] = None) -> Paste:
        """Serve a paste, spending one view if it has a limit."""
        paste = self.store.consume(paste_id, self._now(now_ms))
        if paste is None:
            raise NotAvailable(paste_id)
        return paste

    def stats(self, paste_id: str) -> PasteMeta:
        meta = self.store.stats(paste_id)
        if meta is None:
            raise NotFound(paste_id)
        return meta

    def delete(self, paste_id: str) -> bool:
        return self.store.delete(paste_id)

    def list_all(self, limit: Optional[int] = None) -> List[PasteMeta]:
        _positive_int("limit", limit)
        return self.store.list_all(self.config.LIST_DEFAULT_LIMIT if limit is None else limit)

    def purge(self, now_ms: Optional[int] = None) -> int:
        return self.store.purge(self._now(now_ms))
