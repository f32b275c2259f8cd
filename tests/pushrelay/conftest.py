from datetime import UTC, datetime

import pytest
from protean import current_domain
from pushrelay.gateway import get_gateway, reset_gateway
from pushrelay.notification.notification import NotificationStatus, PushNotification
from pushrelay.settings import reset_settings


@pytest.fixture(autouse=True)
def _fresh_gateway_and_settings():
    reset_settings()
    reset_gateway()
    yield
    reset_gateway()
    reset_settings()


@pytest.fixture
def gateway(_fresh_gateway_and_settings):
    """The fake gateway the dispatcher will use for this test."""
    return get_gateway()


@pytest.fixture
def repo():
    return current_domain.repository_for(PushNotification)


@pytest.fixture
def make_record():
    """Build notifications without raising NotificationQueued.

    Records built this way are not picked up by the dispatcher when added.
    """

    def _make(status=NotificationStatus.PENDING, created_at=None, **overrides):
        now = created_at or datetime.now(UTC)
        fields = {
            "recipient_token": "tok-test",
            "title": "Hello",
            "body": "World",
            "status": status.value,
            "retry_count": 0,
            "max_retries": 3,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return PushNotification(**fields)

    return _make
