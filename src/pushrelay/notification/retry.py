"""RetryNotification command + handler — re-arm a failed notification.

Only flips the record back to PENDING. The next redispatch poll
(ProcessRearmedNotifications) picks it up and sends it again.
"""

import structlog
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from pushrelay.domain import pushrelay
from pushrelay.notification.notification import PushNotification

logger = structlog.get_logger(__name__)


@pushrelay.command(part_of="PushNotification")
class RetryNotification:
    """Request to retry a failed notification."""

    notification_id: Identifier(required=True)


@pushrelay.command_handler(part_of=PushNotification)
class RetryNotificationHandler:
    @handle(RetryNotification)
    def retry_notification(self, command: RetryNotification):
        repo = current_domain.repository_for(PushNotification)
        notification = repo.get(command.notification_id)
        notification.rearm()
        repo.add(notification)

        logger.info(
            "Notification re-armed for retry",
            notification_id=str(notification.id),
            retry_count=notification.retry_count,
            max_retries=notification.max_retries,
        )
        return str(notification.id)
