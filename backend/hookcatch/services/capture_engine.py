"""Request capture and simulated response engine.

Each inbound request moves through::

    RECEIVED -> CONFIG_LOOKED_UP -> NOT_FOUND            (terminal, 404)
                                 -> PERSIST_DISPATCHED -> DELAYED -> RESPONDED

Persistence is handed to the background runner and is never awaited on the
response path. The database write runs in the thread pool, so it cannot
stall the loop while the simulated delay elapses. It is best effort: a
failed write is logged by the runner and the request record is lost, but
the sender still gets the configured response on time.

Browser preflights are captured like any other request; their response
also carries the grants the browser asked for.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from hookcatch.core.background import BackgroundTaskRunner, run_sync
from hookcatch.core.database import new_session
from hookcatch.core.identifiers import is_valid_id
from hookcatch.models.webhook import (
    DEFAULT_RESPONSE_BODY,
    DEFAULT_RESPONSE_CONTENT_TYPE,
    DEFAULT_RESPONSE_STATUS,
)
from hookcatch.repositories.webhook_repository import WebhookRepository
from hookcatch.services.request_log import CapturedRequestDraft, RequestLog

logger = logging.getLogger(__name__)

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

PREFLIGHT_ALLOW_METHODS = "GET, HEAD, POST, PUT, PATCH, DELETE, OPTIONS"
PREFLIGHT_MAX_AGE_SECONDS = "600"

# Checked in order; the first present header wins.
CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-real-ip", "x-forwarded-for")

EDGE_METADATA_HEADERS = {
    "cf-ray": "ray",
    "cf-ipcountry": "country",
    "cf-visitor": "visitor",
    "x-forwarded-proto": "forwarded_proto",
}


class CaptureState(str, Enum):
    """Terminal states of a capture."""

    NOT_FOUND = "not_found"
    RESPONDED = "responded"


@dataclass
class CaptureResult:
    """The response to send back to the capture caller."""

    state: CaptureState
    status_code: int
    content_type: str
    body: str
    headers: dict[str, str]


def join_pairs(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Collapse repeated keys into one comma-joined value, keeping first-seen order."""
    result: dict[str, str] = {}
    for key, value in pairs:
        if key in result:
            result[key] = f"{result[key]}, {value}"
        else:
            result[key] = value
    return result


def extract_client_ip(headers: dict[str, str], peer: str | None) -> str | None:
    """Best-effort client address from proxy headers, then the socket peer."""
    for name in CLIENT_IP_HEADERS:
        value = headers.get(name)
        if value:
            first_hop = value.split(",")[0].strip()
            if first_hop:
                return first_hop
    return peer


def extract_platform_metadata(
    headers: dict[str, str],
    scheme: str | None = None,
    http_version: str | None = None,
    client: tuple[str, int] | None = None,
    server: tuple[str, int | None] | None = None,
) -> dict[str, object]:
    """Collect transport and edge-network details about an inbound request."""
    metadata: dict[str, object] = {}
    if scheme:
        metadata["scheme"] = scheme
    if http_version:
        metadata["http_version"] = http_version
    if client:
        metadata["client"] = {"host": client[0], "port": client[1]}
    if server:
        metadata["server"] = {"host": server[0], "port": server[1]}
    for header, name in EDGE_METADATA_HEADERS.items():
        if header in headers:
            metadata[name] = headers[header]
    return metadata


def preflight_headers(headers: dict[str, str]) -> dict[str, str]:
    """CORS preflight grants for a browser `OPTIONS` request, empty otherwise."""
    if "access-control-request-method" not in headers:
        return {}
    granted = {
        "Access-Control-Allow-Methods": PREFLIGHT_ALLOW_METHODS,
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE_SECONDS,
    }
    requested = headers.get("access-control-request-headers")
    if requested:
        granted["Access-Control-Allow-Headers"] = requested
    return granted


def not_found_result(webhook_id: str) -> CaptureResult:
    return CaptureResult(
        state=CaptureState.NOT_FOUND,
        status_code=404,
        content_type="application/json",
        body=f'{{"detail":"Webhook not found: {webhook_id}"}}',
        headers=dict(CORS_HEADERS),
    )


class CaptureEngine:
    """Answers capture requests with the webhook's simulated response."""

    def __init__(
        self,
        db: Session,
        tasks: BackgroundTaskRunner,
        session_factory: Callable[[], Session] = new_session,
    ):
        self.db = db
        self.tasks = tasks
        self.session_factory = session_factory
        self.webhook_repo = WebhookRepository(db)

    async def handle(self, webhook_id: str, draft: CapturedRequestDraft) -> CaptureResult:
        config = self.webhook_repo.get_by_id(webhook_id) if is_valid_id(webhook_id) else None
        if config is None:
            logger.info("Capture for unknown webhook %s", webhook_id)
            return not_found_result(webhook_id)

        # Copy what the response needs before the session goes away.
        status_code = config.response_status or DEFAULT_RESPONSE_STATUS
        content_type = config.response_content_type or DEFAULT_RESPONSE_CONTENT_TYPE
        body = config.response_body or DEFAULT_RESPONSE_BODY
        delay_ms = max(config.response_delay or 0, 0)

        self.tasks.submit(
            self._persist(webhook_id, draft),
            f"persist {draft.method} capture for webhook {webhook_id}",
        )
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
        logger.debug("Webhook %s responding %s after %sms", webhook_id, status_code, delay_ms)
        headers = dict(CORS_HEADERS)
        if draft.method.upper() == "OPTIONS":
            headers.update(preflight_headers(draft.headers))
        return CaptureResult(
            state=CaptureState.RESPONDED,
            status_code=int(status_code),
            content_type=str(content_type),
            body=str(body),
            headers=headers,
        )

    async def _persist(self, webhook_id: str, draft: CapturedRequestDraft) -> str:
        return await run_sync(self._write, webhook_id, draft)

    def _write(self, webhook_id: str, draft: CapturedRequestDraft) -> str:
        db = self.session_factory()
        try:
            record = RequestLog(db).append(webhook_id, draft)
            return str(record.id)
        finally:
            db.close()
