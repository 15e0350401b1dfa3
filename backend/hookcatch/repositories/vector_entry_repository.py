"""VectorEntry repository for data access."""

from typing import Any

from sqlalchemy.orm import Session

from hookcatch.models.shared import utc_now
from hookcatch.models.vector_entry import VectorEntry

# Upper bound appended to a prefix to emulate "starts with" as a half-open
# key range. Keys containing code points above U+FFFF right after the prefix
# fall outside the range.
PREFIX_RANGE_TOP = "\uffff"


def prefix_range(prefix: str) -> tuple[str, str]:
    """Return ``(lower, upper)`` such that ``lower <= key < upper``."""
    return prefix, f"{prefix}{PREFIX_RANGE_TOP}"


class VectorEntryRepository:
    """Repository for VectorEntry model."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> VectorEntry | None:
        """Get the entry indexed for a blob key."""
        return self.db.query(VectorEntry).filter(VectorEntry.key == key).first()

    def upsert(
        self,
        key: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> VectorEntry:
        """Insert or replace the entry for ``key``."""
        entry = self.get(key)
        if entry is None:
            entry = VectorEntry(key=key)
            self.db.add(entry)

        entry.content = content  # type: ignore[assignment]
        entry.embedding = embedding  # type: ignore[assignment]
        entry.dimensions = len(embedding)  # type: ignore[assignment]
        entry.metadata_ = metadata  # type: ignore[assignment]
        entry.indexed_at = utc_now()  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def delete(self, key: str) -> bool:
        """Delete the entry for ``key``."""
        deleted = self.db.query(VectorEntry).filter(VectorEntry.key == key).delete()
        self.db.commit()
        return bool(deleted)

    def get_in_range(self, prefix: str | None = None) -> list[VectorEntry]:
        """Get entries, optionally restricted to keys starting with ``prefix``."""
        query = self.db.query(VectorEntry)
        if prefix:
            lower, upper = prefix_range(prefix)
            query = query.filter(VectorEntry.key >= lower, VectorEntry.key < upper)
        return query.order_by(VectorEntry.key.asc()).all()

    def list_keys(self, prefix: str | None = None) -> list[str]:
        """List indexed keys, optionally restricted to a prefix."""
        query = self.db.query(VectorEntry.key)
        if prefix:
            lower, upper = prefix_range(prefix)
            query = query.filter(VectorEntry.key >= lower, VectorEntry.key < upper)
        return [row.key for row in query.order_by(VectorEntry.key.asc()).all()]
