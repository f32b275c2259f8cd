"""Deduplication guard — skip notifications whose correlation key was already sent.

The check is a plain store query made before the gateway call. Two dispatches
of the same key running at the same time can both pass it; nothing here locks
across records. Under the ``delete`` post-success policy sent records are
removed right away, so only retained records are visible to the guard.
"""

from protean.utils.globals import current_domain

from pushrelay.notification.notification import PushNotification


def find_original(correlation_key: str | None, repo=None) -> PushNotification | None:
    """Return the SENT notification that already carries ``correlation_key``."""
    if not correlation_key:
        return None
    repo = repo or current_domain.repository_for(PushNotification)
    return repo.find_sent(correlation_key)


def is_duplicate(correlation_key: str | None, repo=None) -> bool:
    """True when a notification with this correlation key was already sent."""
    return find_original(correlation_key, repo) is not None
