"""Shared model utilities used across all models."""

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Text, TypeDecorator
from sqlalchemy.engine import Dialect

from hookcatch.core.identifiers import new_id


class MappingText(TypeDecorator[dict[str, Any]]):
    """Ordered key/value mapping persisted as JSON text.

    ``None`` and missing values are stored as ``{}`` and always read back as
    a dict, never ``None``. Key order is preserved.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str:
        if not value:
            return "{}"
        return json.dumps(dict(value), ensure_ascii=False)

    def process_result_value(self, value: Any, dialect: Dialect) -> dict[str, Any]:
        if not value:
            return {}
        decoded = json.loads(value)
        return decoded if isinstance(decoded, dict) else {}


def generate_id() -> str:
    """Generate a new time-ordered identifier."""
    return new_id()


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)
