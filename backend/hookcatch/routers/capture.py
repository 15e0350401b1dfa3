"""Public capture endpoint: records any request and replies with the webhook's mock response."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from hookcatch.core.context import AppContext, get_context
from hookcatch.core.database import get_db
from hookcatch.services.capture_engine import (
    CaptureEngine,
    extract_client_ip,
    extract_platform_metadata,
    join_pairs,
)
from hookcatch.services.request_log import CapturedRequestDraft

router = APIRouter()

CAPTURE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Statuses that must not carry a response body.
BODYLESS_STATUSES = {204, 304}


async def build_draft(request: Request) -> CapturedRequestDraft:
    headers = join_pairs(request.headers.items())
    client = (request.client.host, request.client.port) if request.client else None
    return CapturedRequestDraft(
        method=request.method,
        url=str(request.url),
        headers=headers,
        query_params=join_pairs(request.query_params.multi_items()),
        body=await request.body(),
        ip_address=extract_client_ip(headers, client[0] if client else None),
        platform_metadata=extract_platform_metadata(
            headers,
            scheme=request.url.scheme,
            http_version=request.scope.get("http_version"),
            client=client,
            server=request.scope.get("server"),
        ),
    )


async def capture(
    webhook_id: str,
    request: Request,
    db: Session,
    context: AppContext,
) -> Response:
    draft = await build_draft(request)
    engine = CaptureEngine(db, context.tasks, context.session_factory)
    result = await engine.handle(webhook_id, draft)

    body = result.body
    if result.status_code < 200 or result.status_code in BODYLESS_STATUSES:
        body = ""
    return Response(
        content=body,
        status_code=result.status_code,
        headers={**result.headers, "content-type": result.content_type},
    )


@router.api_route(
    "/{webhook_id}",
    methods=CAPTURE_METHODS,
    summary="Capture request",
    responses={404: {"description": "Webhook not found"}},
)
async def capture_root(
    webhook_id: str,
    request: Request,
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> Response:
    """Record the request and reply with the webhook's configured response."""
    return await capture(webhook_id, request, db, context)


@router.api_route(
    "/{webhook_id}/{path:path}",
    methods=CAPTURE_METHODS,
    summary="Capture request on a sub-path",
    responses={404: {"description": "Webhook not found"}},
)
async def capture_path(
    webhook_id: str,
    path: str,
    request: Request,
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> Response:
    """Same as the root capture; the sub-path is kept in the recorded URL."""
    return await capture(webhook_id, request, db, context)
