"""Direct send — push to a known recipient without persisting a record.

The synchronous counterpart of the queued path: resolves the recipient's
token, honours their opt-out, consults the deduplication guard and makes one
gateway call. Expected failures come back as ``success=False`` rather than
exceptions so API callers get a uniform response.
"""

import structlog
from protean.fields import Identifier, String, Text
from protean.utils.mixins import handle

from pushrelay.domain import pushrelay
from pushrelay.gateway import get_gateway
from pushrelay.gateway.port import PushMessage
from pushrelay.notification.deduplication import is_duplicate
from pushrelay.notification.dispatch import deliver
from pushrelay.notification.notification import PushNotification
from pushrelay.recipient.recipient import find_recipient
from pushrelay.settings import get_settings

logger = structlog.get_logger(__name__)


@pushrelay.command(part_of="PushNotification")
class SendDirectNotification:
    recipient_id: Identifier(required=True)
    title: String(required=True, max_length=500)
    body: Text(required=True)
    correlation_key: String(max_length=255)


@pushrelay.command_handler(part_of=PushNotification)
class SendDirectNotificationHandler:
    @handle(SendDirectNotification)
    def send_direct(self, command: SendDirectNotification) -> dict:
        recipient_id = str(command.recipient_id)
        recipient = find_recipient(recipient_id)

        if recipient is None or not recipient.push_token:
            logger.info("No push token for recipient", recipient_id=recipient_id)
            return _response(False, "No push token for recipient")

        if not recipient.push_enabled:
            logger.info("Push disabled for recipient", recipient_id=recipient_id)
            return _response(False, "Push notifications disabled for recipient")

        if is_duplicate(command.correlation_key):
            logger.info(
                "Duplicate direct notification suppressed",
                recipient_id=recipient_id,
                correlation_key=command.correlation_key,
            )
            return _response(False, "Duplicate notification")

        message = PushMessage(
            token=recipient.push_token,
            title=command.title,
            body=command.body,
            data={},
            hints=get_settings().platform_hints,
        )
        result = deliver(get_gateway(), message)

        if not result.success:
            logger.warning(
                "Direct notification failed",
                recipient_id=recipient_id,
                error_code=result.error_code.value if result.error_code else None,
                error=result.failure_reason,
            )
            return _response(False, result.failure_reason or "Delivery failed")

        logger.info(
            "Direct notification sent",
            recipient_id=recipient_id,
            delivery_id=result.delivery_id,
        )
        return _response(True, "Notification sent", delivery_id=result.delivery_id)


def _response(success: bool, message: str, delivery_id: str | None = None) -> dict:
    return {"success": success, "delivery_id": delivery_id, "message": message}
