"""FailedDeliveries — queue of failed notifications for retry/investigation."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from pushrelay.domain import pushrelay
from pushrelay.notification.events import (
    NotificationFailed,
    NotificationRearmed,
    NotificationSent,
)
from pushrelay.notification.notification import PushNotification


@pushrelay.projection
class FailedDeliveries:
    notification_id: Identifier(identifier=True, required=True)
    correlation_key: String(max_length=255)
    failure_reason: String(max_length=1000)
    error_code: String(max_length=50)
    retry_count: Integer(default=0)
    max_retries: Integer(default=3)
    failed_at: DateTime()


@pushrelay.projector(projector_for=FailedDeliveries, aggregates=[PushNotification])
class FailedDeliveriesProjector:
    @on(NotificationFailed)
    def on_notification_failed(self, event):
        repo = current_domain.repository_for(FailedDeliveries)

        try:
            failed = repo.get(event.notification_id)
            failed.failure_reason = event.reason
            failed.error_code = event.error_code
            failed.retry_count = event.retry_count
            failed.failed_at = event.failed_at
        except ObjectNotFoundError:
            failed = FailedDeliveries(
                notification_id=event.notification_id,
                correlation_key=event.correlation_key,
                failure_reason=event.reason,
                error_code=event.error_code,
                retry_count=event.retry_count,
                max_retries=event.max_retries,
                failed_at=event.failed_at,
            )

        repo.add(failed)

    @on(NotificationRearmed)
    def on_notification_rearmed(self, event):
        """Remove from the queue when re-armed (it goes back to pending)."""
        self._remove(event.notification_id)

    @on(NotificationSent)
    def on_notification_sent(self, event):
        self._remove(event.notification_id)

    def _remove(self, notification_id):
        repo = current_domain.repository_for(FailedDeliveries)
        try:
            failed = repo.get(notification_id)
        except ObjectNotFoundError:
            return
        repo._dao.delete(failed)
