"""Webhook model holding the simulated response configuration."""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from hookcatch.core.database import Base
from hookcatch.models.shared import generate_id, utc_now

DEFAULT_RESPONSE_STATUS = 200
DEFAULT_RESPONSE_CONTENT_TYPE = "application/json"
DEFAULT_RESPONSE_BODY = '{"status":"ok"}'
DEFAULT_RESPONSE_DELAY = 0


class Webhook(Base):
    """A provisioned capture endpoint and the response it simulates."""

    __tablename__ = "webhooks"
    __table_args__ = (
        Index("ix_webhooks_created_at", "created_at"),
        Index("ix_webhooks_updated_at", "updated_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    response_status = Column(Integer, nullable=False, default=DEFAULT_RESPONSE_STATUS)
    response_content_type = Column(
        String(1024), nullable=False, default=DEFAULT_RESPONSE_CONTENT_TYPE
    )
    response_body = Column(Text, nullable=False, default=DEFAULT_RESPONSE_BODY)
    response_delay = Column(Integer, nullable=False, default=DEFAULT_RESPONSE_DELAY)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
