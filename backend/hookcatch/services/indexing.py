"""Blob-to-vector indexing pipeline.

After a text upload succeeds the blob is fetched, decoded as UTF-8, embedded
and upserted as a single vector entry keyed by the blob key. Re-indexing a
key replaces its entry.

Indexing and vector removal are best effort. Failures are logged and not
retried, and the upload or deletion that triggered them is never rolled
back. Blob deletion and vector removal are not transactional: a crash
between the two leaves an orphaned vector entry whose blob no longer
exists, until the key is re-uploaded or deleted again through the files
API, which removes entries whose blob is already gone.

Blob reads and database writes run in the thread pool so that indexing
never stalls the event loop serving capture requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from hookcatch.core.background import run_sync
from hookcatch.core.database import new_session
from hookcatch.core.errors import NotFoundError
from hookcatch.models.shared import utc_now
from hookcatch.repositories.vector_entry_repository import VectorEntryRepository
from hookcatch.services.embeddings import Embedder
from hookcatch.services.object_store import ObjectStore
from hookcatch.tasks import enqueue_index_object, enqueue_remove_object

if TYPE_CHECKING:
    from hookcatch.core.context import AppContext

logger = logging.getLogger(__name__)

QUEUE_LOCAL = "local"
QUEUE_ARQ = "arq"


class IndexingPipeline:
    """Turns stored blobs into searchable vector entries."""

    def __init__(
        self,
        object_store: ObjectStore,
        embedder: Embedder,
        session_factory: Callable[[], Session] = new_session,
    ):
        self.object_store = object_store
        self.embedder = embedder
        self.session_factory = session_factory

    def _read_text(self, key: str) -> str:
        stream = self.object_store.get(key)
        try:
            raw = stream.read()
        finally:
            stream.close()
        return bytes(raw).decode("utf-8")

    async def index(self, key: str, metadata: dict[str, Any] | None = None) -> None:
        """Index the blob stored under ``key``.

        Raises ``NotFoundError`` if the blob is missing and
        ``UnicodeDecodeError`` if it is not UTF-8 text.
        """
        logger.debug("Indexing %s", key)
        text = await run_sync(self._read_text, key)
        blob_metadata = await run_sync(self.object_store.metadata, key)
        document_metadata: dict[str, Any] = {
            **blob_metadata,
            **(metadata or {}),
            "key": key,
            "indexed_at": utc_now().isoformat(),
        }
        [embedding] = await self.embedder.embed([text])

        stored = await run_sync(self._store, key, text, embedding, document_metadata)
        if not stored:
            logger.warning("Blob %s disappeared during indexing; entry removed", key)
            return
        logger.info("Indexed %s (%d characters)", key, len(text))

    def _store(
        self, key: str, text: str, embedding: list[float], metadata: dict[str, Any]
    ) -> bool:
        db = self.session_factory()
        try:
            repo = VectorEntryRepository(db)
            repo.upsert(key, text, embedding, metadata)
            # The blob may have been deleted while we were embedding it.
            if not self.object_store.has(key):
                repo.delete(key)
                return False
            return True
        finally:
            db.close()

    async def remove(self, key: str) -> bool:
        """Delete the vector entry for ``key``."""
        removed = await run_sync(self._delete_entry, key)
        logger.info("Removed vector entry for %s (existed: %s)", key, removed)
        return removed

    def _delete_entry(self, key: str) -> bool:
        db = self.session_factory()
        try:
            return VectorEntryRepository(db).delete(key)
        finally:
            db.close()

    async def run_index(self, key: str, metadata: dict[str, Any] | None = None) -> bool:
        """Index ``key``, logging instead of raising on failure."""
        try:
            await self.index(key, metadata)
        except NotFoundError:
            logger.warning("Skipped indexing %s: blob no longer exists", key)
            return False
        except Exception:
            logger.exception("Failed to index %s", key)
            return False
        return True

    async def run_remove(self, key: str) -> bool:
        """Remove the entry for ``key``, logging instead of raising on failure."""
        try:
            await self.remove(key)
        except Exception:
            logger.exception("Failed to remove vector entry for %s", key)
            return False
        return True


async def dispatch_index(
    context: AppContext, key: str, metadata: dict[str, Any] | None = None
) -> None:
    """Start indexing ``key`` off the request path. Never raises."""
    if context.settings.INDEXING_QUEUE == QUEUE_ARQ:
        try:
            await enqueue_index_object(key, metadata)
        except Exception:
            logger.exception("Failed to enqueue indexing for %s", key)
        return
    context.tasks.submit(context.indexing.run_index(key, metadata), f"index {key}")


async def dispatch_remove(context: AppContext, key: str) -> None:
    """Start removing the vector entry of ``key`` off the request path. Never raises."""
    if context.settings.INDEXING_QUEUE == QUEUE_ARQ:
        try:
            await enqueue_remove_object(key)
        except Exception:
            logger.exception("Failed to enqueue vector removal for %s", key)
        return
    context.tasks.submit(context.indexing.run_remove(key), f"remove vector entry {key}")
