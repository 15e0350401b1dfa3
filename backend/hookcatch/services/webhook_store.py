"""Webhook configuration store."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hookcatch.core.errors import InternalError, NotFoundError, ValidationError
from hookcatch.models.shared import utc_now
from hookcatch.models.webhook import Webhook
from hookcatch.repositories.webhook_repository import WebhookRepository
from hookcatch.schemas.webhook import WebhookCreate, WebhookUpdate

logger = logging.getLogger(__name__)


def _validated_fields(
    schema: type[WebhookUpdate],
    data: WebhookUpdate | Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Validate response fields and return only the ones explicitly set."""
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        model = schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(f"{field}: {first['msg']}" if field else first["msg"], field) from exc
    return model.model_dump(exclude_unset=True, exclude_none=True)


class WebhookStore:
    """CRUD over webhook configurations."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WebhookRepository(db)

    def create(self, initial_config: WebhookCreate | Mapping[str, Any] | None = None) -> Webhook:
        """Create a webhook, applying defaults for unset fields."""
        values = _validated_fields(WebhookCreate, initial_config)
        try:
            webhook = self.repo.create(values)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to create webhook")
            raise InternalError("Failed to create webhook") from exc
        logger.info("Created webhook %s", webhook.id)
        return webhook

    def get(self, webhook_id: str) -> Webhook:
        webhook = self.repo.get_by_id(webhook_id)
        if not webhook:
            raise NotFoundError("Webhook", webhook_id)
        return webhook

    def update(
        self,
        webhook_id: str,
        partial_fields: WebhookUpdate | Mapping[str, Any],
    ) -> Webhook:
        """Patch the supplied fields, leaving the others untouched."""
        values = _validated_fields(WebhookUpdate, partial_fields)
        if values:
            values["updated_at"] = utc_now()
        webhook = self.repo.update(webhook_id, values)
        if not webhook:
            raise NotFoundError("Webhook", webhook_id)
        return webhook

    def delete(self, webhook_id: str) -> None:
        """Delete a webhook and, through the cascade, all of its requests."""
        if not self.repo.delete(webhook_id):
            raise NotFoundError("Webhook", webhook_id)
        logger.info("Deleted webhook %s", webhook_id)
