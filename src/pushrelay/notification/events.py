"""Domain events for the PushNotification aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from pushrelay.domain import pushrelay


@pushrelay.event(part_of="PushNotification")
class NotificationQueued:
    """A pending notification record was created and awaits dispatch."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: Identifier()
    correlation_key: String()
    created_at: DateTime(required=True)


@pushrelay.event(part_of="PushNotification")
class NotificationSent:
    """The gateway accepted the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    correlation_key: String()
    delivery_id: String()
    sent_at: DateTime(required=True)


@pushrelay.event(part_of="PushNotification")
class NotificationFailed:
    """A dispatch attempt failed."""

    __version__ = 1

    notification_id: Identifier(required=True)
    correlation_key: String()
    reason: String(required=True, max_length=1000)
    error_code: String()
    retry_count: Integer(required=True)
    max_retries: Integer(required=True)
    failed_at: DateTime(required=True)


@pushrelay.event(part_of="PushNotification")
class NotificationDeduplicated:
    """The notification repeated one that was already sent and was not dispatched."""

    __version__ = 1

    notification_id: Identifier(required=True)
    correlation_key: String(required=True)
    duplicate_of: Identifier()
    deduplicated_at: DateTime(required=True)


@pushrelay.event(part_of="PushNotification")
class NotificationRearmed:
    """A failed notification was returned to pending for another attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    retry_count: Integer(required=True)
    retry_at: DateTime(required=True)
