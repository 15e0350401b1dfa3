from hookcatch.models.captured_request import CapturedRequest
from hookcatch.models.vector_entry import VectorEntry
from hookcatch.models.webhook import Webhook

__all__ = [
    "CapturedRequest",
    "VectorEntry",
    "Webhook",
]
