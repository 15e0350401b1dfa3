from hookcatch.schemas.storage import (
    FileEntryResponse,
    FileUploadResponse,
    VectorSearchHitResponse,
)
from hookcatch.schemas.webhook import (
    CapturedRequestResponse,
    WebhookCreate,
    WebhookResponse,
    WebhookUpdate,
)

__all__ = [
    "CapturedRequestResponse",
    "FileEntryResponse",
    "FileUploadResponse",
    "VectorSearchHitResponse",
    "WebhookCreate",
    "WebhookResponse",
    "WebhookUpdate",
]
