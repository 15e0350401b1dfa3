"""CapturedRequest model: one inbound request recorded against a webhook."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from hookcatch.core.database import Base
from hookcatch.models.shared import MappingText, generate_id, utc_now

BODY_ENCODING_UTF8 = "utf-8"
BODY_ENCODING_BASE64 = "base64"


class CapturedRequest(Base):
    """Append-only record of a captured request."""

    __tablename__ = "requests"
    __table_args__ = (
        Index("ix_requests_webhook_id", "webhook_id"),
        Index("ix_requests_created_at", "created_at"),
        Index("ix_requests_updated_at", "updated_at"),
        Index("ix_requests_method", "method"),
        Index("ix_requests_url", "url"),
        Index("ix_requests_ip_address", "ip_address"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    webhook_id = Column(
        String(36),
        ForeignKey("webhooks.id", ondelete="CASCADE"),
        nullable=False,
    )
    method = Column(String(16), nullable=False)
    url = Column(Text, nullable=False)
    headers = Column(MappingText, nullable=False, default=dict)
    query_params = Column(MappingText, nullable=False, default=dict)
    body = Column(Text, nullable=True)
    body_encoding = Column(String(16), nullable=False, default=BODY_ENCODING_UTF8)
    ip_address = Column(String(64), nullable=True)
    platform_metadata = Column(MappingText, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
