"""Pydantic request/response models for the push relay API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class SendDirectRequest(BaseModel):
    recipient_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    correlation_key: str | None = Field(default=None, max_length=255)


class CleanupRequest(BaseModel):
    retention_days: int | None = Field(default=None, ge=1)
    as_of: datetime | None = None


class RedispatchRequest(BaseModel):
    as_of: datetime | None = None
    limit: int = Field(default=100, ge=1)


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class RetryResponse(BaseModel):
    success: bool = True
    message: str = "Notification queued for retry"


class DirectSendResponse(BaseModel):
    success: bool
    delivery_id: str | None = None
    message: str


class MaintenanceResponse(BaseModel):
    status: str = "ok"
    processed: int = 0


class NotificationResponse(BaseModel):
    notification_id: str
    status: str
    correlation_key: str | None = None
    delivery_id: str | None = None
    last_error: str | None = None
    error_code: str | None = None
    retry_count: int = 0
    max_retries: int = 0
    created_at: str | None = None
    processed_at: str | None = None


class FailedDeliveryResponse(BaseModel):
    notification_id: str
    correlation_key: str | None = None
    failure_reason: str | None = None
    error_code: str | None = None
    retry_count: int = 0
    max_retries: int = 0
    failed_at: str | None = None


class FailedDeliveryListResponse(BaseModel):
    entries: list[FailedDeliveryResponse]
