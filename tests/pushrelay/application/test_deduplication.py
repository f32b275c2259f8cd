"""Application tests for the deduplication guard."""

from pushrelay.notification.deduplication import find_original, is_duplicate
from pushrelay.notification.notification import NotificationStatus


class TestDeduplicationGuard:
    def test_no_key_is_never_duplicate(self, repo, make_record):
        repo.add(make_record(NotificationStatus.SENT))
        assert find_original(None) is None
        assert is_duplicate("") is False

    def test_sent_record_with_key_is_found(self, repo, make_record):
        original = make_record(NotificationStatus.SENT, correlation_key="msg-42")
        repo.add(original)

        found = find_original("msg-42")
        assert found is not None
        assert str(found.id) == str(original.id)
        assert is_duplicate("msg-42") is True

    def test_unknown_key(self, repo, make_record):
        repo.add(make_record(NotificationStatus.SENT, correlation_key="msg-1"))
        assert is_duplicate("msg-2") is False

    def test_non_sent_records_do_not_count(self, repo, make_record):
        for status in (NotificationStatus.PENDING, NotificationStatus.FAILED, NotificationStatus.DUPLICATE):
            repo.add(make_record(status, correlation_key="msg-42"))

        assert is_duplicate("msg-42") is False

    def test_explicit_repository(self, repo, make_record):
        repo.add(make_record(NotificationStatus.SENT, correlation_key="msg-42"))
        assert is_duplicate("msg-42", repo=repo) is True
