"""Webhook configuration and captured request schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_RESPONSE_STATUS = 100
MAX_RESPONSE_STATUS = 599
MAX_RESPONSE_DELAY_MS = 100
MAX_CONTENT_TYPE_BYTES = 1024
MAX_RESPONSE_BODY_BYTES = 1024 * 1024
MAX_LIST_LIMIT = 100


def _check_byte_length(value: str | None, limit: int, name: str) -> str | None:
    if value is not None and len(value.encode("utf-8")) > limit:
        raise ValueError(f"{name} must be at most {limit} bytes")
    return value


class WebhookUpdate(BaseModel):
    """Partial response configuration; unset fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    response_status: int | None = Field(
        default=None, ge=MIN_RESPONSE_STATUS, le=MAX_RESPONSE_STATUS
    )
    response_content_type: str | None = None
    response_body: str | None = None
    response_delay: int | None = Field(default=None, ge=0, le=MAX_RESPONSE_DELAY_MS)

    @field_validator("response_content_type")
    @classmethod
    def content_type_size(cls, v: str | None) -> str | None:
        return _check_byte_length(v, MAX_CONTENT_TYPE_BYTES, "response_content_type")

    @field_validator("response_body")
    @classmethod
    def body_size(cls, v: str | None) -> str | None:
        return _check_byte_length(v, MAX_RESPONSE_BODY_BYTES, "response_body")


class WebhookCreate(WebhookUpdate):
    """Initial response configuration; unset fields take the defaults."""


class WebhookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    response_status: int
    response_content_type: str
    response_body: str
    response_delay: int
    created_at: datetime
    updated_at: datetime


class CapturedRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    webhook_id: str
    method: str
    url: str
    headers: dict[str, str]
    query_params: dict[str, str]
    body: str | None = None
    body_encoding: str
    ip_address: str | None = None
    platform_metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime
