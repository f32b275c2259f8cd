"""FastAPI routes for the push relay.

Thin adapters that translate HTTP requests into domain commands. Every route
requires the caller key when one is configured.
"""

import secrets

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from pushrelay.api.schemas import (
    CleanupRequest,
    DirectSendResponse,
    FailedDeliveryListResponse,
    FailedDeliveryResponse,
    MaintenanceResponse,
    NotificationResponse,
    RedispatchRequest,
    RetryResponse,
    SendDirectRequest,
)
from pushrelay.notification.direct import SendDirectNotification
from pushrelay.notification.notification import PushNotification
from pushrelay.notification.redispatch import ProcessRearmedNotifications
from pushrelay.notification.retention import CleanupSweep
from pushrelay.notification.retry import RetryNotification
from pushrelay.projections.failed_deliveries import FailedDeliveries
from pushrelay.settings import get_settings

logger = structlog.get_logger(__name__)

# Validation keys that mean "the record is in the wrong state", not "bad input"
_STATE_ERROR_KEYS = {"status", "retry_count"}


async def verify_caller(x_relay_key: str = Header(default="")) -> None:
    """Reject callers that do not present the configured relay key."""
    expected = get_settings().api_key
    if expected and not secrets.compare_digest(x_relay_key, expected):
        raise HTTPException(status_code=401, detail="unauthenticated")


router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(verify_caller)],
)


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
    )


def _iso(value) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Operator queries
# ---------------------------------------------------------------------------
@router.get("/failed", response_model=FailedDeliveryListResponse)
async def list_failed_deliveries() -> FailedDeliveryListResponse:
    """Failed notifications awaiting retry or investigation."""
    repo = current_domain.repository_for(FailedDeliveries)
    results = repo._dao.query.all().items

    return FailedDeliveryListResponse(
        entries=[
            FailedDeliveryResponse(
                notification_id=str(f.notification_id),
                correlation_key=f.correlation_key,
                failure_reason=f.failure_reason,
                error_code=f.error_code,
                retry_count=f.retry_count or 0,
                max_retries=f.max_retries or 0,
                failed_at=_iso(f.failed_at),
            )
            for f in results
        ]
    )


# ---------------------------------------------------------------------------
# Direct send
# ---------------------------------------------------------------------------
@router.post("/direct", response_model=DirectSendResponse)
async def send_direct(body: SendDirectRequest) -> DirectSendResponse:
    """Send a push to a known recipient without queueing a record."""
    command = SendDirectNotification(
        recipient_id=body.recipient_id,
        title=body.title,
        body=body.body,
        correlation_key=body.correlation_key,
    )
    result = current_domain.process(command, asynchronous=False)
    return DirectSendResponse(**result)


# ---------------------------------------------------------------------------
# Maintenance — periodic background job endpoints
# ---------------------------------------------------------------------------
@router.post("/maintenance/cleanup", response_model=MaintenanceResponse)
async def cleanup(body: CleanupRequest | None = None) -> MaintenanceResponse:
    """Delete terminal notifications older than the retention window.

    Designed to be called daily by an external scheduler.
    """
    command = CleanupSweep(
        retention_days=body.retention_days if body else None,
        as_of=body.as_of if body else None,
    )
    deleted = current_domain.process(command, asynchronous=False)
    return MaintenanceResponse(processed=deleted or 0)


@router.post("/maintenance/redispatch", response_model=MaintenanceResponse)
async def redispatch(body: RedispatchRequest | None = None) -> MaintenanceResponse:
    """Send notifications that were re-armed after a failure."""
    command = ProcessRearmedNotifications(
        as_of=body.as_of if body else None,
        limit=body.limit if body else 100,
    )
    dispatched = current_domain.process(command, asynchronous=False)
    return MaintenanceResponse(processed=dispatched or 0)


# ---------------------------------------------------------------------------
# Notification lifecycle
# ---------------------------------------------------------------------------
@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str):
    """Current delivery state of a notification."""
    repo = current_domain.repository_for(PushNotification)
    try:
        n = repo.get(notification_id)
    except ObjectNotFoundError:
        return _error(404, "not-found", "Notification not found")

    return NotificationResponse(
        notification_id=str(n.id),
        status=n.status,
        correlation_key=n.correlation_key,
        delivery_id=n.delivery_id,
        last_error=n.last_error,
        error_code=n.error_code,
        retry_count=n.retry_count or 0,
        max_retries=n.max_retries or 0,
        created_at=_iso(n.created_at),
        processed_at=_iso(n.processed_at),
    )


@router.post("/{notification_id}/retry", response_model=RetryResponse)
async def retry_notification(notification_id: str):
    """Re-arm a failed notification for another dispatch attempt."""
    command = RetryNotification(notification_id=notification_id)
    try:
        current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError:
        return _error(404, "not-found", "Notification not found")
    except ValidationError as e:
        message = "; ".join(str(m) for msgs in e.messages.values() for m in msgs)
        if _STATE_ERROR_KEYS & set(e.messages):
            logger.info("Retry refused", notification_id=notification_id, reason=message)
            return _error(409, "invalid-state", message)
        return _error(400, "invalid-argument", message)
    return RetryResponse()
