"""Push gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakePushGateway for development and testing (default)
- HttpPushGateway when PUSHRELAY_GATEWAY=http
"""

from pushrelay.gateway.fake_adapter import FakePushGateway
from pushrelay.gateway.port import PushGateway

_current_gateway: PushGateway | None = None


def get_gateway() -> PushGateway:
    """Return the current push gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        from pushrelay.settings import get_settings

        settings = get_settings()
        if settings.gateway == "fake":
            _current_gateway = FakePushGateway()
        elif settings.gateway == "http":
            from pushrelay.gateway.http_adapter import HttpPushGateway

            if not settings.gateway_url:
                raise ValueError("PUSHRELAY_GATEWAY_URL is required for the http gateway")
            _current_gateway = HttpPushGateway(
                url=settings.gateway_url,
                timeout=settings.gateway_timeout_seconds,
                auth_token=settings.gateway_token,
            )
        else:
            raise ValueError(f"Unknown push gateway: {settings.gateway}")
    return _current_gateway


def set_gateway(gateway: PushGateway) -> None:
    """Override the active push gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the default gateway."""
    global _current_gateway
    _current_gateway = None
