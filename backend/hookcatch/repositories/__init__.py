from hookcatch.repositories.captured_request_repository import CapturedRequestRepository
from hookcatch.repositories.vector_entry_repository import VectorEntryRepository
from hookcatch.repositories.webhook_repository import WebhookRepository

__all__ = [
    "CapturedRequestRepository",
    "VectorEntryRepository",
    "WebhookRepository",
]
