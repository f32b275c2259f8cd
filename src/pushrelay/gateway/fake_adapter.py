"""Configurable fake push gateway for development and testing.

Records every message it is asked to send and can be switched at runtime to
return a classified failure or to raise, which covers both failure paths an
adapter may take.
"""

from uuid import uuid4

from pushrelay.gateway.port import (
    DeliveryResult,
    GatewayError,
    GatewayErrorCode,
    PushGateway,
    PushMessage,
)


class FakePushGateway(PushGateway):
    """Push gateway that keeps sent messages in memory for test assertions."""

    def __init__(self) -> None:
        self.sent_messages: list[PushMessage] = []
        self.calls: list[PushMessage] = []
        self.should_succeed: bool = True
        self.should_raise: bool = False
        self.error_code: GatewayErrorCode = GatewayErrorCode.UNAVAILABLE
        self.failure_reason: str = "Push delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Push delivery failed",
        error_code: GatewayErrorCode = GatewayErrorCode.UNAVAILABLE,
        should_raise: bool = False,
    ) -> None:
        """Configure the fake gateway behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.error_code = error_code
        self.should_raise = should_raise

    def send(self, message: PushMessage) -> DeliveryResult:
        self.calls.append(message)

        if self.should_raise:
            raise GatewayError(self.failure_reason, code=self.error_code)

        if not self.should_succeed:
            return DeliveryResult(
                success=False,
                error_code=self.error_code,
                failure_reason=self.failure_reason,
            )

        self.sent_messages.append(message)
        return DeliveryResult(success=True, delivery_id=f"fake-msg-{uuid4().hex[:12]}")

    def reset(self) -> None:
        """Clear recorded messages (useful between tests)."""
        self.sent_messages.clear()
        self.calls.clear()
        self.should_succeed = True
        self.should_raise = False
        self.error_code = GatewayErrorCode.UNAVAILABLE
        self.failure_reason = "Push delivery failed"
