"""Webhook configuration and captured request API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hookcatch.core.database import get_db
from hookcatch.models.captured_request import CapturedRequest
from hookcatch.models.webhook import Webhook
from hookcatch.schemas.webhook import (
    CapturedRequestResponse,
    WebhookCreate,
    WebhookResponse,
    WebhookUpdate,
)
from hookcatch.services.request_log import RequestLog
from hookcatch.services.webhook_store import WebhookStore

router = APIRouter()


@router.post(
    "/",
    response_model=WebhookResponse,
    status_code=201,
    summary="Create webhook",
    responses={422: {"description": "Validation error"}},
)
async def create_webhook(
    data: WebhookCreate | None = None,
    db: Session = Depends(get_db),
) -> Webhook:
    """Create a webhook; omitted response fields take their defaults."""
    return WebhookStore(db).create(data)


@router.get(
    "/{webhook_id}",
    response_model=WebhookResponse,
    summary="Get webhook",
    responses={404: {"description": "Webhook not found"}},
)
async def get_webhook(
    webhook_id: str,
    db: Session = Depends(get_db),
) -> Webhook:
    """Get a webhook's response configuration."""
    return WebhookStore(db).get(webhook_id)


@router.put(
    "/{webhook_id}",
    response_model=WebhookResponse,
    summary="Update webhook",
    responses={
        404: {"description": "Webhook not found"},
        422: {"description": "Validation error"},
    },
)
async def update_webhook(
    webhook_id: str,
    data: WebhookUpdate,
    db: Session = Depends(get_db),
) -> Webhook:
    """Update only the supplied response fields."""
    return WebhookStore(db).update(webhook_id, data)


@router.delete(
    "/{webhook_id}",
    status_code=204,
    summary="Delete webhook",
    responses={404: {"description": "Webhook not found"}},
)
async def delete_webhook(
    webhook_id: str,
    db: Session = Depends(get_db),
) -> None:
    """Delete a webhook together with every request captured for it."""
    WebhookStore(db).delete(webhook_id)


@router.get(
    "/{webhook_id}/requests",
    response_model=list[CapturedRequestResponse],
    summary="List captured requests",
    responses={404: {"description": "Webhook not found"}},
)
async def list_requests(
    webhook_id: str,
    limit: int | None = Query(default=None, description="Clamped to 1..100"),
    search: str | None = Query(
        default=None,
        alias="filter",
        description="Substring matched against method, URL, body and id",
    ),
    db: Session = Depends(get_db),
) -> list[CapturedRequest]:
    """List captured requests, newest first."""
    return RequestLog(db).list(webhook_id, limit=limit, filter=search)


@router.get(
    "/{webhook_id}/requests/poll",
    response_model=list[CapturedRequestResponse],
    summary="Poll for new requests",
    responses={404: {"description": "Webhook not found"}},
)
async def poll_requests(
    webhook_id: str,
    last_id: str = Query(default="", description="Id of the newest request already seen"),
    db: Session = Depends(get_db),
) -> list[CapturedRequest]:
    """Return requests captured after ``last_id``, newest first."""
    return RequestLog(db).poll(webhook_id, last_id)


@router.get(
    "/{webhook_id}/requests/{request_id}",
    response_model=CapturedRequestResponse,
    summary="Get captured request",
    responses={404: {"description": "Webhook or request not found"}},
)
async def get_request(
    webhook_id: str,
    request_id: str,
    db: Session = Depends(get_db),
) -> CapturedRequest:
    return RequestLog(db).get(webhook_id, request_id)


@router.delete(
    "/{webhook_id}/requests/{request_id}",
    response_model=CapturedRequestResponse,
    summary="Delete captured request",
    responses={404: {"description": "Webhook or request not found"}},
)
async def delete_request(
    webhook_id: str,
    request_id: str,
    db: Session = Depends(get_db),
) -> CapturedRequest:
    """Delete a captured request and return the removed record."""
    return RequestLog(db).delete(webhook_id, request_id)
