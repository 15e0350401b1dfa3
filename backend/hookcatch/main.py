import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import Receive, Scope, Send

from hookcatch.core.config import settings
from hookcatch.core.context import build_context
from hookcatch.core.database import init_db
from hookcatch.core.errors import register_error_handlers
from hookcatch.routers import capture, files, vector, webhooks

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

CAPTURE_PREFIX = "/capture"

OPENAPI_TAGS = [
    {"name": "Capture", "description": "Public endpoints that record requests and mock responses."},
    {"name": "Webhooks", "description": "Configure webhooks and inspect captured requests."},
    {"name": "Files", "description": "Store, list and delete files."},
    {"name": "Vector", "description": "Semantic search over indexed text files."},
]


class ApiCORSMiddleware(CORSMiddleware):
    """CORS for the management API.

    Capture endpoints are public and answer every origin themselves, including
    preflights, so their requests bypass the origin allow-list.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(CAPTURE_PREFIX + "/"):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.DATABASE_AUTO_CREATE:
        init_db()
    # A context set before startup (e.g. by tests) is used as is.
    if getattr(app.state, "context", None) is None:
        app.state.context = build_context(settings)
    logger.info("%s %s started", settings.APP_NAME, settings.version)
    try:
        yield
    finally:
        await app.state.context.aclose()
        logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Webhook capture and mock response service. "
        "Provision endpoints, inspect and poll captured requests, "
        "store files and search their text."
    ),
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    ApiCORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(capture.router, prefix=CAPTURE_PREFIX, tags=["Capture"])
app.include_router(webhooks.router, prefix="/v1/webhooks", tags=["Webhooks"])
app.include_router(files.router, prefix="/v1/files", tags=["Files"])
app.include_router(vector.router, prefix="/v1/vector", tags=["Vector"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
