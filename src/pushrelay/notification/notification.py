"""PushNotification aggregate — one pending notification and its delivery outcome.

A record is created by a producer, picked up by the dispatcher and driven to a
terminal state. The outcome is written back on the record so senders, the
retry endpoint and the retention sweep can read delivery state from the store.

State Machine (4 states):
    PENDING → SENT
    PENDING → DUPLICATE
    PENDING → FAILED → (rearm) → PENDING
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from pushrelay.domain import pushrelay
from pushrelay.notification.events import (
    NotificationDeduplicated,
    NotificationFailed,
    NotificationQueued,
    NotificationRearmed,
    NotificationSent,
)
from pushrelay.settings import get_settings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    DUPLICATE = "duplicate"


# Longest failure reason kept on a record and carried on NotificationFailed
MAX_ERROR_LENGTH = 1000

TERMINAL_STATUSES = (
    NotificationStatus.SENT,
    NotificationStatus.FAILED,
    NotificationStatus.DUPLICATE,
)


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
        NotificationStatus.DUPLICATE,
    },
    NotificationStatus.FAILED: {
        NotificationStatus.PENDING,  # Via rearm
    },
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.DUPLICATE: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@pushrelay.aggregate
class PushNotification:
    """A push notification addressed to one device token."""

    # Recipient
    recipient_token: String(max_length=4096)
    recipient_id: Identifier()

    # Content
    title: String(max_length=500)
    body: Text()
    payload: Text()  # JSON object of scalar values

    # Deduplication
    correlation_key: String(max_length=255)
    duplicate_of: Identifier()

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)

    # Delivery tracking
    delivery_id: String(max_length=255)
    last_error: String(max_length=MAX_ERROR_LENGTH)
    error_code: String(max_length=50)

    # Retry
    retry_count: Integer(default=0, min_value=0)
    max_retries: Integer(default=3, min_value=0)

    # Timestamps
    created_at: DateTime()
    processed_at: DateTime()
    retry_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        recipient_token=None,
        title=None,
        body=None,
        payload=None,
        correlation_key=None,
        recipient_id=None,
        max_retries=None,
    ):
        """Create a new notification in PENDING status and queue it for dispatch."""
        now = datetime.now(UTC)

        notification = cls(
            recipient_token=recipient_token,
            recipient_id=recipient_id,
            title=title,
            body=body,
            payload=json.dumps(payload, default=str) if payload else None,
            correlation_key=correlation_key,
            status=NotificationStatus.PENDING.value,
            retry_count=0,
            max_retries=get_settings().max_retries if max_retries is None else max_retries,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationQueued(
                notification_id=str(notification.id),
                recipient_id=str(recipient_id) if recipient_id else None,
                correlation_key=correlation_key,
                created_at=now,
            )
        )

        return notification

    @property
    def payload_data(self) -> dict:
        """The payload as a dict (empty when none was given)."""
        return json.loads(self.payload) if self.payload else {}

    @property
    def is_terminal(self) -> bool:
        return NotificationStatus(self.status) in TERMINAL_STATUSES

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, delivery_id, sent_at=None):
        """Record that the gateway accepted the notification."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.delivery_id = delivery_id
        self.processed_at = now
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                correlation_key=self.correlation_key,
                delivery_id=delivery_id,
                sent_at=now,
            )
        )

    def mark_failed(self, reason, error_code=None):
        """Record a failed attempt. Each failure counts against the retry ceiling."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.last_error = reason
        self.error_code = error_code
        self.retry_count = self.retry_count + 1
        self.processed_at = now
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                correlation_key=self.correlation_key,
                reason=reason,
                error_code=error_code,
                retry_count=self.retry_count,
                max_retries=self.max_retries,
                failed_at=now,
            )
        )

    def mark_duplicate(self, duplicate_of=None):
        """Record that an earlier notification with the same correlation key was sent."""
        self._assert_can_transition(NotificationStatus.DUPLICATE)
        if not self.correlation_key:
            raise ValidationError({"correlation_key": ["Only correlated notifications can be duplicates"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.DUPLICATE.value
        self.duplicate_of = duplicate_of
        self.processed_at = now
        self.updated_at = now

        self.raise_(
            NotificationDeduplicated(
                notification_id=str(self.id),
                correlation_key=self.correlation_key,
                duplicate_of=str(duplicate_of) if duplicate_of else None,
                deduplicated_at=now,
            )
        )

    def rearm(self):
        """Return a failed notification to PENDING for another dispatch attempt.

        ``retry_count`` is kept as is, so the ceiling bounds attempts over the
        whole life of the record.
        """
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if self.retry_count >= self.max_retries:
            raise ValidationError({"retry_count": ["Maximum retry attempts exceeded"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.last_error = None
        self.error_code = None
        self.retry_at = now
        self.updated_at = now

        self.raise_(
            NotificationRearmed(
                notification_id=str(self.id),
                retry_count=self.retry_count,
                retry_at=now,
            )
        )
