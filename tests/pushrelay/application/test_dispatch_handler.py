"""Application tests for the dispatch handler.

Adding a PushNotification to the repository raises NotificationQueued, which
the dispatcher handles synchronously (sync event processing). The tests
observe the record and the fake gateway after ``repo.add``.
"""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from pushrelay.gateway.port import GatewayErrorCode
from pushrelay.notification.dispatch import DispatchOutcome, dispatch
from pushrelay.notification.notification import NotificationStatus, PushNotification
from pushrelay.settings import DispatchSettings, PostSuccessAction, set_settings


def _queue(**overrides):
    defaults = {
        "recipient_token": "tok1",
        "title": "Hi",
        "body": "There",
    }
    defaults.update(overrides)
    n = PushNotification.create(**defaults)
    current_domain.repository_for(PushNotification).add(n)
    return str(n.id)


class TestSuccessfulDispatch:
    def test_queued_notification_is_sent(self, gateway, repo):
        nid = _queue(correlation_key="msg-42")

        n = repo.get(nid)
        assert n.status == NotificationStatus.SENT.value
        assert n.delivery_id
        assert n.processed_at is not None

    def test_gateway_receives_formatted_message(self, gateway):
        _queue(correlation_key="msg-42", payload={"count": 3, "flag": True})

        assert len(gateway.calls) == 1
        message = gateway.calls[0]
        assert message.token == "tok1"
        assert message.title == "Hi"
        assert message.body == "There"
        assert message.data == {"count": "3", "flag": "true"}

    def test_uncorrelated_notification_makes_one_call(self, gateway, repo):
        nid = _queue()

        assert len(gateway.calls) == 1
        assert repo.get(nid).status == NotificationStatus.SENT.value

    def test_uncorrelated_notifications_are_never_duplicates(self, gateway, repo):
        first = _queue()
        second = _queue()

        assert len(gateway.calls) == 2
        assert repo.get(first).status == NotificationStatus.SENT.value
        assert repo.get(second).status == NotificationStatus.SENT.value


class TestDeduplicatedDispatch:
    def test_second_notification_with_same_key_is_duplicate(self, gateway, repo):
        first = _queue(correlation_key="msg-42")
        second = _queue(correlation_key="msg-42")

        assert len(gateway.calls) == 1
        duplicate = repo.get(second)
        assert duplicate.status == NotificationStatus.DUPLICATE.value
        assert duplicate.duplicate_of == first
        assert duplicate.delivery_id is None

    def test_different_keys_are_both_sent(self, gateway, repo):
        _queue(correlation_key="msg-1")
        _queue(correlation_key="msg-2")

        assert len(gateway.calls) == 2

    def test_failed_record_does_not_block_the_key(self, gateway, repo):
        gateway.configure(should_succeed=False)
        failed = _queue(correlation_key="msg-7")
        gateway.configure(should_succeed=True)
        retried = _queue(correlation_key="msg-7")

        assert repo.get(failed).status == NotificationStatus.FAILED.value
        assert repo.get(retried).status == NotificationStatus.SENT.value


class TestFailedDispatch:
    def test_gateway_failure_marks_failed(self, gateway, repo):
        gateway.configure(
            should_succeed=False,
            failure_reason="Requested entity was not found.",
            error_code=GatewayErrorCode.INVALID_TOKEN,
        )
        nid = _queue(correlation_key="msg-9")

        n = repo.get(nid)
        assert n.status == NotificationStatus.FAILED.value
        assert n.retry_count == 1
        assert n.last_error == "Requested entity was not found."
        assert n.error_code == "invalid-token"

    def test_gateway_exception_marks_failed(self, gateway, repo):
        gateway.configure(should_raise=True, failure_reason="Deadline exceeded", error_code=GatewayErrorCode.TIMEOUT)
        nid = _queue()

        n = repo.get(nid)
        assert n.status == NotificationStatus.FAILED.value
        assert n.error_code == "timeout"
        assert n.last_error == "Deadline exceeded"

    def test_long_failure_reason_is_truncated(self, gateway, repo):
        gateway.configure(should_succeed=False, failure_reason="x" * 1500)
        nid = _queue()

        assert len(gateway.calls) == 1
        n = repo.get(nid)
        assert n.status == NotificationStatus.FAILED.value
        assert n.retry_count == 1
        assert n.last_error == "x" * 1000

    def test_missing_token_fails_without_gateway_call(self, gateway, repo):
        nid = _queue(recipient_token=None)

        assert gateway.calls == []
        n = repo.get(nid)
        assert n.status == NotificationStatus.FAILED.value
        assert n.error_code == "recipient-missing"


class TestTerminalRecordsAreNotRedispatched:
    def test_dispatching_sent_record_again_is_skipped(self, gateway, repo):
        nid = _queue(correlation_key="msg-42")
        n = repo.get(nid)

        result = dispatch(n, repo=repo)

        assert result.outcome == DispatchOutcome.SKIPPED
        assert len(gateway.calls) == 1
        assert repo.get(nid).status == NotificationStatus.SENT.value

    def test_dispatching_duplicate_record_again_is_skipped(self, gateway, repo):
        _queue(correlation_key="msg-42")
        second = _queue(correlation_key="msg-42")

        result = dispatch(repo.get(second), repo=repo)

        assert result.outcome == DispatchOutcome.SKIPPED
        assert len(gateway.calls) == 1
        assert repo.get(second).status == NotificationStatus.DUPLICATE.value


class TestPostSuccessPolicy:
    def test_delete_policy_removes_sent_record(self, gateway, repo):
        set_settings(DispatchSettings(post_success_action=PostSuccessAction.DELETE))
        nid = _queue(correlation_key="msg-42")

        assert len(gateway.calls) == 1
        with pytest.raises(ObjectNotFoundError):
            repo.get(nid)

    def test_delete_policy_keeps_failed_record(self, gateway, repo):
        set_settings(DispatchSettings(post_success_action=PostSuccessAction.DELETE))
        gateway.configure(should_succeed=False)
        nid = _queue()

        assert repo.get(nid).status == NotificationStatus.FAILED.value

    def test_retain_policy_keeps_sent_record(self, gateway, repo):
        nid = _queue()
        assert repo.get(nid).status == NotificationStatus.SENT.value
