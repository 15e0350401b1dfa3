"""VectorEntry model: the embedded text of one stored blob."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from hookcatch.core.database import Base
from hookcatch.models.shared import utc_now


class VectorEntry(Base):
    """One indexed document, keyed by the blob key it was built from."""

    __tablename__ = "vector_entries"

    key = Column(String(1024), primary_key=True)
    content = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    embedding = Column(JSON, nullable=False)
    dimensions = Column(Integer, nullable=False)
    indexed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
