"""CapturedRequest repository for data access."""

from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from hookcatch.models.captured_request import CapturedRequest


class CapturedRequestRepository:
    """Repository for CapturedRequest model.

    Every lookup takes the owning webhook id as part of the key, so a
    request id can never resolve to a record of another webhook.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, webhook_id: str, values: dict[str, Any]) -> CapturedRequest:
        """Insert a captured request."""
        record = CapturedRequest(webhook_id=webhook_id, **values)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def get(self, webhook_id: str, request_id: str) -> CapturedRequest | None:
        """Get a captured request owned by the given webhook."""
        return (
            self.db.query(CapturedRequest)
            .filter(
                CapturedRequest.id == request_id,
                CapturedRequest.webhook_id == webhook_id,
            )
            .first()
        )

    def get_all(
        self,
        webhook_id: str,
        limit: int = 100,
        search: str | None = None,
    ) -> list[CapturedRequest]:
        """Get the newest captured requests for a webhook.

        ``search`` matches a substring of the method, url, body or id.
        """
        query = self.db.query(CapturedRequest).filter(CapturedRequest.webhook_id == webhook_id)
        if search:
            query = query.filter(
                or_(
                    CapturedRequest.method.contains(search, autoescape=True),
                    CapturedRequest.url.contains(search, autoescape=True),
                    CapturedRequest.body.contains(search, autoescape=True),
                    CapturedRequest.id.contains(search, autoescape=True),
                )
            )
        return (
            query.order_by(CapturedRequest.id.desc(), CapturedRequest.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_after(self, webhook_id: str, last_id: str) -> list[CapturedRequest]:
        """Get every captured request newer than ``last_id``, newest first."""
        return (
            self.db.query(CapturedRequest)
            .filter(
                CapturedRequest.webhook_id == webhook_id,
                CapturedRequest.id > last_id,
            )
            .order_by(CapturedRequest.id.desc(), CapturedRequest.created_at.desc())
            .all()
        )

    def delete(self, webhook_id: str, request_id: str) -> CapturedRequest | None:
        """Delete a captured request and return it."""
        record = self.get(webhook_id, request_id)
        if not record:
            return None

        self.db.delete(record)
        self.db.commit()
        return record
