"""Repository for the PushNotification aggregate.

Adds the conditional queries the dispatcher, retry poll and retention sweep
need on top of the standard get/add provided by the base repository.
"""

from pushrelay.domain import pushrelay
from pushrelay.notification.notification import (
    TERMINAL_STATUSES,
    NotificationStatus,
    PushNotification,
)


@pushrelay.repository(part_of=PushNotification)
class PushNotificationRepository:
    def find_sent(self, correlation_key: str) -> PushNotification | None:
        """Return a SENT notification carrying this correlation key, if any."""
        results = (
            self._dao.query.filter(
                correlation_key=correlation_key,
                status=NotificationStatus.SENT.value,
            )
            .limit(1)
            .all()
            .items
        )
        return results[0] if results else None

    def find_rearmed(self, as_of, limit: int = 100, page_size: int = 500) -> list[PushNotification]:
        """Pending notifications that were re-armed at or before ``as_of``.

        Pages through every PENDING record so a backlog of never-armed
        records cannot hide re-armed ones. ``retry_at`` is compared here, not
        in the query, because it is unset on most pending records.
        """
        rearmed = []
        offset = 0
        while len(rearmed) < limit:
            page = (
                self._dao.query.filter(status=NotificationStatus.PENDING.value)
                .offset(offset)
                .limit(page_size)
                .all()
                .items
            )
            rearmed.extend(n for n in page if n.retry_at is not None and _aligned(n.retry_at, as_of) <= as_of)
            if len(page) < page_size:
                break
            offset += page_size
        return rearmed[:limit]

    def find_expired(self, cutoff, limit: int = 500) -> list[PushNotification]:
        """Terminal notifications created before ``cutoff``. PENDING records are never returned."""
        expired = []
        for status in TERMINAL_STATUSES:
            remaining = limit - len(expired)
            if remaining <= 0:
                break
            expired.extend(
                self._dao.query.filter(status=status.value, created_at__lt=cutoff)
                .limit(remaining)
                .all()
                .items
            )
        return expired

    def remove(self, notification: PushNotification) -> None:
        """Delete a notification record."""
        self._dao.delete(notification)


def _aligned(value, reference):
    """Match ``value``'s timezone awareness to ``reference`` for comparison."""
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.replace(tzinfo=None)
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    return value
