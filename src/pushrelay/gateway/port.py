"""Push gateway port (abstract interface).

Defines the message handed to a gateway adapter and the result it returns.
Adapters report delivery failures as a failed ``DeliveryResult``; they may
also raise ``GatewayError`` when the failure is detected outside the normal
response path. Either way the failure carries a ``GatewayErrorCode`` so
operators can tell an expired token from an outage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class GatewayErrorCode(Enum):
    INVALID_TOKEN = "invalid-token"
    UNAVAILABLE = "unavailable"
    RATE_LIMITED = "rate-limited"
    TIMEOUT = "timeout"
    RECIPIENT_MISSING = "recipient-missing"
    UNKNOWN = "unknown"


class GatewayError(Exception):
    """A push gateway rejected or could not accept a message."""

    def __init__(self, message: str, code: GatewayErrorCode = GatewayErrorCode.UNKNOWN) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class PlatformHints:
    """Static per-platform delivery options attached to every message."""

    android_channel_id: str = "pushrelay_default"
    android_priority: str = "high"
    android_icon: str = "@mipmap/ic_launcher"
    default_sound: bool = True
    default_vibrate: bool = True
    apns_sound: str = "default"
    apns_badge: int = 1


@dataclass(frozen=True)
class PushMessage:
    """A single formatted push message for one device token."""

    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    hints: PlatformHints = field(default_factory=PlatformHints)

    def as_fcm_message(self) -> dict:
        """Render the message in the FCM HTTP v1 ``message`` shape."""
        return {
            "token": self.token,
            "notification": {
                "title": self.title,
                "body": self.body,
            },
            "data": dict(self.data),
            "android": {
                "priority": self.hints.android_priority,
                "notification": {
                    "channel_id": self.hints.android_channel_id,
                    "default_sound": self.hints.default_sound,
                    "default_vibrate_timings": self.hints.default_vibrate,
                    "icon": self.hints.android_icon,
                },
            },
            "apns": {
                "payload": {
                    "aps": {
                        "sound": self.hints.apns_sound,
                        "badge": self.hints.apns_badge,
                    },
                },
            },
        }


@dataclass(frozen=True)
class DeliveryResult:
    """Result of a single send attempt."""

    success: bool
    delivery_id: str | None = None
    error_code: GatewayErrorCode | None = None
    failure_reason: str | None = None


class PushGateway(ABC):
    """Abstract push gateway interface."""

    @abstractmethod
    def send(self, message: PushMessage) -> DeliveryResult:
        """Send one push message.

        Returns a successful result carrying the gateway's delivery id, or a
        failed result carrying an error code and reason.
        """
        ...
