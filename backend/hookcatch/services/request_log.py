"""Append-only log of captured requests per webhook."""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hookcatch.core.errors import NotFoundError, ValidationError
from hookcatch.core.identifiers import is_valid_id
from hookcatch.models.captured_request import (
    BODY_ENCODING_BASE64,
    BODY_ENCODING_UTF8,
    CapturedRequest,
)
from hookcatch.models.shared import generate_id, utc_now
from hookcatch.repositories.captured_request_repository import CapturedRequestRepository
from hookcatch.repositories.webhook_repository import WebhookRepository
from hookcatch.schemas.webhook import MAX_LIST_LIMIT

logger = logging.getLogger(__name__)

# Held from id assignment through commit, so records commit in id order
# within a process and a poll cursor never skips a later-committed record.
_append_lock = threading.Lock()


@dataclass
class CapturedRequestDraft:
    """Everything known about an inbound request before it is persisted."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    body: bytes | str | None = None
    ip_address: str | None = None
    platform_metadata: dict[str, Any] = field(default_factory=dict)
    received_at: datetime = field(default_factory=utc_now)


def encode_body(body: bytes | str | None) -> tuple[str | None, str]:
    """Return ``(stored_body, encoding)`` for a raw payload.

    Text is stored verbatim. Bytes are stored verbatim when they decode as
    UTF-8 and base64-encoded otherwise. Empty payloads are stored as NULL.
    """
    if body is None or len(body) == 0:
        return None, BODY_ENCODING_UTF8
    if isinstance(body, str):
        return body, BODY_ENCODING_UTF8
    try:
        return body.decode("utf-8"), BODY_ENCODING_UTF8
    except UnicodeDecodeError:
        return base64.b64encode(body).decode("ascii"), BODY_ENCODING_BASE64


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return MAX_LIST_LIMIT
    return max(1, min(int(limit), MAX_LIST_LIMIT))


class RequestLog:
    """Stores, lists and polls captured requests for webhooks."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CapturedRequestRepository(db)
        self.webhook_repo = WebhookRepository(db)

    def _require_webhook(self, webhook_id: str) -> None:
        if not self.webhook_repo.exists(webhook_id):
            raise NotFoundError("Webhook", webhook_id)

    def append(self, webhook_id: str, draft: CapturedRequestDraft) -> CapturedRequest:
        """Persist a captured request.

        The id is assigned here, at write time, under a process-wide lock so
        that ids of committed records follow commit order. Blocking; call it
        off the event loop.
        """
        self._require_webhook(webhook_id)
        body, body_encoding = encode_body(draft.body)
        try:
            with _append_lock:
                record = self.repo.create(
                    webhook_id,
                    {
                        "id": generate_id(),
                        "method": draft.method.upper(),
                        "url": draft.url,
                        "headers": dict(draft.headers),
                        "query_params": dict(draft.query_params),
                        "body": body,
                        "body_encoding": body_encoding,
                        "ip_address": draft.ip_address,
                        "platform_metadata": dict(draft.platform_metadata),
                        "created_at": draft.received_at,
                        "updated_at": draft.received_at,
                    },
                )
        except IntegrityError as exc:
            # The webhook was deleted between the existence check and the insert.
            self.db.rollback()
            raise NotFoundError("Webhook", webhook_id) from exc
        logger.debug("Captured request %s for webhook %s", record.id, webhook_id)
        return record

    def list(
        self,
        webhook_id: str,
        limit: int | None = MAX_LIST_LIMIT,
        filter: str | None = None,
    ) -> list[CapturedRequest]:
        """List the newest requests of a webhook, optionally filtered."""
        self._require_webhook(webhook_id)
        return self.repo.get_all(webhook_id, limit=clamp_limit(limit), search=filter or None)

    def poll(self, webhook_id: str, last_id: str = "") -> list[CapturedRequest]:
        """Return every request strictly newer than ``last_id``, newest first."""
        if last_id and not is_valid_id(last_id):
            raise ValidationError(f"Invalid cursor: {last_id}", "last_id")
        self._require_webhook(webhook_id)
        return self.repo.get_after(webhook_id, last_id or "")

    def get(self, webhook_id: str, request_id: str) -> CapturedRequest:
        record = self.repo.get(webhook_id, request_id)
        if not record:
            raise NotFoundError("Request", request_id)
        return record

    def delete(self, webhook_id: str, request_id: str) -> CapturedRequest:
        """Delete one request and return it."""
        record = self.repo.delete(webhook_id, request_id)
        if not record:
            raise NotFoundError("Request", request_id)
        return record
