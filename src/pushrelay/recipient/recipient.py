"""Recipient aggregate — a device owner's push token and opt-in flag.

Direct sends address a recipient by id; the token is looked up here at send
time so producers never handle raw device tokens.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from pushrelay.domain import pushrelay


@pushrelay.aggregate
class Recipient:
    recipient_id: Identifier(required=True, unique=True)
    push_token: String(max_length=4096)
    push_enabled: Boolean(default=True)

    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(cls, recipient_id, push_token=None, push_enabled=True):
        now = datetime.now(UTC)
        return cls(
            recipient_id=recipient_id,
            push_token=push_token,
            push_enabled=push_enabled,
            created_at=now,
            updated_at=now,
        )

    def update_token(self, push_token):
        """Replace the device token (app reinstall, token refresh)."""
        self.push_token = push_token
        self.updated_at = datetime.now(UTC)

    def set_push_enabled(self, enabled: bool):
        self.push_enabled = enabled
        self.updated_at = datetime.now(UTC)


def find_recipient(recipient_id) -> Recipient | None:
    """Look up a recipient by its external id."""
    repo = current_domain.repository_for(Recipient)
    results = repo._dao.query.filter(recipient_id=str(recipient_id)).limit(1).all().items
    return results[0] if results else None
