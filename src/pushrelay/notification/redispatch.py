"""ProcessRearmedNotifications command + handler — redispatch re-armed notifications.

Invoked by the background runner on a fixed interval (or the maintenance
endpoint) to send notifications that were re-armed after a failure. Records
that were never re-armed are left to the on-create dispatcher.
"""

from datetime import UTC, datetime

import structlog
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from pushrelay.domain import pushrelay
from pushrelay.notification.dispatch import DispatchOutcome, StoreError, dispatch
from pushrelay.notification.notification import PushNotification

logger = structlog.get_logger(__name__)


@pushrelay.command(part_of="PushNotification")
class ProcessRearmedNotifications:
    """Request to dispatch every notification re-armed up to ``as_of``."""

    as_of: DateTime()  # Optional: defaults to now
    limit: Integer(default=100, min_value=1)


@pushrelay.command_handler(part_of=PushNotification)
class ProcessRearmedNotificationsHandler:
    @handle(ProcessRearmedNotifications)
    def process_rearmed(self, command: ProcessRearmedNotifications):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(PushNotification)

        rearmed = repo.find_rearmed(as_of, limit=command.limit or 100)

        dispatched_count = 0
        for notification in rearmed:
            try:
                result = dispatch(notification, repo=repo)
            except StoreError as e:
                logger.critical(
                    "Dispatch outcome lost, record needs manual reconciliation",
                    notification_id=e.notification_id,
                    outcome=e.outcome.value,
                    error=str(e),
                )
                continue
            if result.outcome != DispatchOutcome.SKIPPED:
                dispatched_count += 1

        logger.info(
            "Re-armed notifications processed",
            dispatched=dispatched_count,
            as_of=str(as_of),
        )
        return dispatched_count
