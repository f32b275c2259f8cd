"""Dispatch settings.

Read from ``PUSHRELAY_*`` environment variables on first use so a deployment
can switch the post-success policy, retention window, retry ceiling and
gateway adapter without code changes. Tests override the active settings with
``set_settings()``.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from pushrelay.gateway.port import PlatformHints


class PostSuccessAction(Enum):
    RETAIN = "retain"  # Keep the record as an audit trail until the sweep
    DELETE = "delete"  # Remove the record as soon as the gateway accepts it


@dataclass(frozen=True)
class DispatchSettings:
    post_success_action: PostSuccessAction = PostSuccessAction.RETAIN
    retention_days: int = 7
    max_retries: int = 3

    gateway: str = "fake"
    gateway_url: str | None = None
    gateway_token: str | None = None
    gateway_timeout_seconds: float = 10.0

    sweep_batch_size: int = 500
    sweep_interval_hours: int = 24
    redispatch_interval_seconds: int = 60

    api_key: str | None = None

    platform_hints: PlatformHints = field(default_factory=PlatformHints)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DispatchSettings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        hint_defaults = PlatformHints()

        action = env.get("PUSHRELAY_ON_SUCCESS", defaults.post_success_action.value).lower()
        try:
            post_success_action = PostSuccessAction(action)
        except ValueError:
            raise ValueError(f"PUSHRELAY_ON_SUCCESS must be 'retain' or 'delete', got {action!r}") from None

        return cls(
            post_success_action=post_success_action,
            retention_days=_positive_int(env, "PUSHRELAY_RETENTION_DAYS", defaults.retention_days),
            max_retries=_positive_int(env, "PUSHRELAY_MAX_RETRIES", defaults.max_retries),
            gateway=env.get("PUSHRELAY_GATEWAY", defaults.gateway).lower(),
            gateway_url=env.get("PUSHRELAY_GATEWAY_URL") or None,
            gateway_token=env.get("PUSHRELAY_GATEWAY_TOKEN") or None,
            gateway_timeout_seconds=_positive_float(
                env, "PUSHRELAY_GATEWAY_TIMEOUT", defaults.gateway_timeout_seconds
            ),
            sweep_batch_size=_positive_int(env, "PUSHRELAY_SWEEP_BATCH_SIZE", defaults.sweep_batch_size),
            sweep_interval_hours=_positive_int(
                env, "PUSHRELAY_SWEEP_INTERVAL_HOURS", defaults.sweep_interval_hours
            ),
            redispatch_interval_seconds=_positive_int(
                env, "PUSHRELAY_REDISPATCH_INTERVAL_SECONDS", defaults.redispatch_interval_seconds
            ),
            api_key=env.get("PUSHRELAY_API_KEY") or None,
            platform_hints=PlatformHints(
                android_channel_id=env.get("PUSHRELAY_ANDROID_CHANNEL", hint_defaults.android_channel_id),
                android_priority=env.get("PUSHRELAY_ANDROID_PRIORITY", hint_defaults.android_priority),
                android_icon=env.get("PUSHRELAY_ANDROID_ICON", hint_defaults.android_icon),
                apns_sound=env.get("PUSHRELAY_APNS_SOUND", hint_defaults.apns_sound),
                apns_badge=_positive_int(env, "PUSHRELAY_APNS_BADGE", hint_defaults.apns_badge, allow_zero=True),
            ),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int, allow_zero: bool = False) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


_current_settings: DispatchSettings | None = None


def get_settings() -> DispatchSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = DispatchSettings.from_env()
    return _current_settings


def set_settings(settings: DispatchSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop overrides so the next access re-reads the environment."""
    global _current_settings
    _current_settings = None
