"""Dispatch handler — delivers queued notifications through the push gateway.

Reacts to NotificationQueued events (the store's on-create trigger) and runs
one dispatch per record:

    1. Skip anything that is no longer PENDING (redelivered events).
    2. Mark DUPLICATE when the correlation key was already sent.
    3. Mark FAILED without a gateway call when there is no recipient token.
    4. Send once; mark SENT or FAILED from the gateway result.

Every invocation makes at most one gateway call and exactly one store
mutation. Nothing is retried here; failed records wait for an explicit rearm.
"""

import json
from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from pushrelay.domain import pushrelay
from pushrelay.gateway import get_gateway
from pushrelay.gateway.port import (
    DeliveryResult,
    GatewayError,
    GatewayErrorCode,
    PlatformHints,
    PushGateway,
    PushMessage,
)
from pushrelay.notification.deduplication import find_original
from pushrelay.notification.events import NotificationQueued
from pushrelay.notification.notification import MAX_ERROR_LENGTH, NotificationStatus, PushNotification
from pushrelay.settings import PostSuccessAction, get_settings
from pushrelay.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


class DispatchOutcome(Enum):
    SENT = "sent"
    FAILED = "failed"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchResult:
    outcome: DispatchOutcome
    notification_id: str
    delivery_id: str | None = None
    error_code: str | None = None
    error: str | None = None


class StoreError(Exception):
    """A dispatch outcome could not be written back to the store.

    When this follows a successful send, the message has been delivered but
    the record still says PENDING. It needs operator attention; redispatching
    would deliver twice.
    """

    def __init__(self, notification_id: str, outcome: DispatchOutcome, cause: Exception) -> None:
        super().__init__(f"Could not record {outcome.value} outcome for notification {notification_id}: {cause}")
        self.notification_id = notification_id
        self.outcome = outcome


# ---------------------------------------------------------------------------
# Message building
# ---------------------------------------------------------------------------
def _stringify(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int | float):
        return str(value)
    return json.dumps(value, default=str)


def coerce_payload(payload: dict | None) -> dict[str, str]:
    """Stringify every payload value; the gateway only accepts string data."""
    if not payload:
        return {}
    return {str(key): _stringify(value) for key, value in payload.items()}


def build_message(notification: PushNotification, hints: PlatformHints | None = None) -> PushMessage:
    """Build the gateway message for a notification."""
    return PushMessage(
        token=notification.recipient_token,
        title=notification.title or "",
        body=notification.body or "",
        data=coerce_payload(notification.payload_data),
        hints=hints or PlatformHints(),
    )


def deliver(gateway: PushGateway, message: PushMessage) -> DeliveryResult:
    """Make one gateway call, folding raised errors into a failed result."""
    try:
        return gateway.send(message)
    except GatewayError as e:
        return DeliveryResult(success=False, error_code=e.code, failure_reason=str(e))
    except Exception as e:
        logger.error("Push gateway raised an unexpected error", error=str(e))
        return DeliveryResult(success=False, error_code=GatewayErrorCode.UNKNOWN, failure_reason=str(e))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def dispatch(notification: PushNotification, repo=None, gateway=None, settings=None) -> DispatchResult:
    """Drive one PENDING notification to SENT, FAILED or DUPLICATE."""
    repo = repo or current_domain.repository_for(PushNotification)
    settings = settings or get_settings()
    notification_id = str(notification.id)

    if NotificationStatus(notification.status) != NotificationStatus.PENDING:
        logger.info(
            "Notification not in PENDING status, skipping dispatch",
            notification_id=notification_id,
            status=notification.status,
        )
        return DispatchResult(outcome=DispatchOutcome.SKIPPED, notification_id=notification_id)

    original = find_original(notification.correlation_key, repo)
    if original is not None:
        notification.mark_duplicate(duplicate_of=str(original.id))
        _persist(repo, notification, DispatchOutcome.DUPLICATE)
        logger.info(
            "Duplicate notification suppressed",
            notification_id=notification_id,
            correlation_key=notification.correlation_key,
            duplicate_of=str(original.id),
        )
        return DispatchResult(outcome=DispatchOutcome.DUPLICATE, notification_id=notification_id)

    if not notification.recipient_token:
        result = DeliveryResult(
            success=False,
            error_code=GatewayErrorCode.RECIPIENT_MISSING,
            failure_reason="Notification has no recipient token",
        )
    else:
        gateway = gateway or get_gateway()
        result = deliver(gateway, build_message(notification, settings.platform_hints))

    if result.success:
        notification.mark_sent(result.delivery_id)
        remove = settings.post_success_action == PostSuccessAction.DELETE
        _persist(repo, notification, DispatchOutcome.SENT, remove=remove)
        logger.info(
            "Notification sent",
            notification_id=notification_id,
            delivery_id=result.delivery_id,
            removed=remove,
        )
        return DispatchResult(
            outcome=DispatchOutcome.SENT,
            notification_id=notification_id,
            delivery_id=result.delivery_id,
        )

    error_code = (result.error_code or GatewayErrorCode.UNKNOWN).value
    reason = (result.failure_reason or "Unknown dispatch error")[:MAX_ERROR_LENGTH]
    notification.mark_failed(reason, error_code=error_code)
    _persist(repo, notification, DispatchOutcome.FAILED)
    logger.warning(
        "Notification dispatch failed",
        notification_id=notification_id,
        error_code=error_code,
        error=reason,
        retry_count=notification.retry_count,
    )
    return DispatchResult(
        outcome=DispatchOutcome.FAILED,
        notification_id=notification_id,
        error_code=error_code,
        error=reason,
    )


def _persist(repo, notification: PushNotification, outcome: DispatchOutcome, remove: bool = False) -> None:
    try:
        if remove:
            repo.remove(notification)
        else:
            repo.add(notification)
    except Exception as e:
        logger.error(
            "Failed to record dispatch outcome",
            notification_id=str(notification.id),
            outcome=outcome.value,
            delivery_id=notification.delivery_id,
            error=str(e),
        )
        raise StoreError(str(notification.id), outcome, e) from e


# ---------------------------------------------------------------------------
# On-create trigger
# ---------------------------------------------------------------------------
@pushrelay.event_handler(part_of=PushNotification)
class NotificationDispatcher:
    """Dispatches notifications when they are queued."""

    @handle(NotificationQueued)
    def on_notification_queued(self, event: NotificationQueued) -> None:
        repo = current_domain.repository_for(PushNotification)

        try:
            notification = repo.get(event.notification_id)
        except ObjectNotFoundError:
            logger.info(
                "Queued notification no longer exists, skipping dispatch",
                notification_id=str(event.notification_id),
            )
            return

        add_context(notification_id=str(event.notification_id))
        try:
            dispatch(notification, repo=repo)
        except StoreError as e:
            # Not re-raised: a redelivered event would send the message again.
            logger.critical(
                "Dispatch outcome lost, record needs manual reconciliation",
                notification_id=e.notification_id,
                outcome=e.outcome.value,
                error=str(e),
            )
        finally:
            clear_context()
