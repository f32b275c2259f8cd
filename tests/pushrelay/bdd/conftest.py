"""Shared BDD fixtures and step definitions for the push relay."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from pushrelay.gateway.port import GatewayErrorCode
from pushrelay.notification.notification import NotificationStatus, PushNotification
from pytest_bdd import given, parsers, then


@pytest.fixture()
def records():
    """Notifications created by a scenario, keyed by label."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the gateway rejects tokens as invalid")
def gateway_rejects(gateway):
    gateway.configure(
        should_succeed=False,
        failure_reason="Requested entity was not found.",
        error_code=GatewayErrorCode.INVALID_TOKEN,
    )


@given(
    parsers.cfparse('a queued notification for token "{token}" titled "{title}" with body "{body}" and key "{key}"'),
    target_fixture="notification_id",
)
def queued_notification(gateway, token, title, body, key):
    n = PushNotification.create(recipient_token=token, title=title, body=body, correlation_key=key)
    current_domain.repository_for(PushNotification).add(n)
    return str(n.id)


@given(parsers.cfparse('a "{status}" notification created {days:d} days ago'))
def aged_notification(make_record, records, status, days):
    n = make_record(NotificationStatus(status), created_at=datetime.now(UTC) - timedelta(days=days))
    current_domain.repository_for(PushNotification).add(n)
    records[status] = str(n.id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the gateway was called {count:d} time"))
def gateway_called(gateway, count):
    assert len(gateway.calls) == count


@then(parsers.cfparse('the gateway target was "{token}"'))
def gateway_target(gateway, token):
    assert gateway.calls[-1].token == token


@then(parsers.cfparse('the notification status is "{status}"'))
def notification_status_is(repo, notification_id, status):
    assert repo.get(notification_id).status == status


@then("the notification has a delivery id")
def has_delivery_id(repo, notification_id):
    assert repo.get(notification_id).delivery_id


@then(parsers.cfparse("the retry count is {count:d}"))
def retry_count_is(repo, notification_id, count):
    assert repo.get(notification_id).retry_count == count


@then("the last error is set")
def last_error_set(repo, notification_id):
    assert repo.get(notification_id).last_error
