"""Retention sweep — command and handler for reaping old terminal notifications.

Designed to be triggered daily by the background runner or an external
scheduler (cron, K8s CronJob) via the maintenance API endpoint. A PENDING
record is never swept, however old: deleting it would silently drop an
undelivered message.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from pushrelay.domain import pushrelay
from pushrelay.notification.notification import NotificationStatus, PushNotification
from pushrelay.projections.failed_deliveries import FailedDeliveries
from pushrelay.settings import get_settings

logger = structlog.get_logger(__name__)


@pushrelay.command(part_of="PushNotification")
class CleanupSweep:
    """Delete terminal notifications older than the retention window."""

    retention_days: Integer(min_value=1)  # Optional: defaults to settings
    as_of: DateTime()  # Optional: defaults to now


@pushrelay.command_handler(part_of=PushNotification)
class CleanupSweepHandler:
    @handle(CleanupSweep)
    def cleanup(self, command: CleanupSweep):
        settings = get_settings()
        retention_days = command.retention_days or settings.retention_days
        return sweep(
            timedelta(days=retention_days),
            command.as_of or datetime.now(UTC),
            batch_size=settings.sweep_batch_size,
        )


def sweep(retention_window: timedelta, now: datetime, repo=None, batch_size: int = 500) -> int:
    """Delete terminal notifications created before ``now - retention_window``.

    Works in batches until a batch comes back short. Records that fail to
    delete are logged and left for the next run.

    Returns:
        Number of notifications deleted.
    """
    repo = repo or current_domain.repository_for(PushNotification)
    cutoff = now - retention_window

    logger.info(
        "Sweeping expired notifications",
        cutoff=cutoff.isoformat(),
        retention_days=retention_window.days,
    )

    deleted = 0
    while True:
        batch = repo.find_expired(cutoff, limit=batch_size)
        deleted_in_batch = 0
        for notification in batch:
            try:
                repo.remove(notification)
            except Exception as e:
                logger.warning(
                    "Failed to delete expired notification",
                    notification_id=str(notification.id),
                    error=str(e),
                )
                continue
            deleted_in_batch += 1
            if notification.status == NotificationStatus.FAILED.value:
                try:
                    _forget_failed_delivery(str(notification.id))
                except Exception as e:
                    logger.warning(
                        "Failed to remove failed-delivery entry",
                        notification_id=str(notification.id),
                        error=str(e),
                    )

        deleted += deleted_in_batch
        if len(batch) < batch_size or deleted_in_batch == 0:
            break

    logger.info("Notification sweep complete", deleted=deleted)
    return deleted


def _forget_failed_delivery(notification_id: str) -> None:
    repo = current_domain.repository_for(FailedDeliveries)
    try:
        entry = repo.get(notification_id)
    except ObjectNotFoundError:
        return
    repo._dao.delete(entry)
