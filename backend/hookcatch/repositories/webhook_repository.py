"""Webhook repository for data access."""

from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from hookcatch.models.webhook import Webhook


class WebhookRepository:
    """Repository for Webhook model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, webhook_id: str) -> Webhook | None:
        """Get a webhook by ID."""
        return self.db.query(Webhook).filter(Webhook.id == webhook_id).first()

    def exists(self, webhook_id: str) -> bool:
        """Check whether a webhook exists without loading it."""
        return (
            self.db.query(Webhook.id).filter(Webhook.id == webhook_id).first() is not None
        )

    def create(self, values: dict[str, Any]) -> Webhook:
        """Create a new webhook; unset columns take their model defaults."""
        webhook = Webhook(**values)
        self.db.add(webhook)
        self.db.commit()
        self.db.refresh(webhook)
        return webhook

    def update(self, webhook_id: str, values: dict[str, Any]) -> Webhook | None:
        """Apply the given column values to a webhook."""
        webhook = self.get_by_id(webhook_id)
        if not webhook:
            return None

        for key, value in values.items():
            setattr(webhook, key, value)

        self.db.commit()
        self.db.refresh(webhook)
        return webhook

    def delete(self, webhook_id: str) -> bool:
        """Delete a webhook with a single statement.

        Captured requests go with it through the ``ON DELETE CASCADE``
        foreign key, inside the same statement.
        """
        result = self.db.execute(delete(Webhook).where(Webhook.id == webhook_id))
        self.db.commit()
        return bool(result.rowcount)  # type: ignore[attr-defined]
