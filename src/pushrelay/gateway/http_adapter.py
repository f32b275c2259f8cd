"""HTTP push gateway adapter.

Posts the FCM HTTP v1 message body to a configured endpoint (the FCM send URL
or an internal relay in front of it). Transport errors, HTTP status codes and
FCM error codes are folded into ``GatewayErrorCode`` values so the dispatcher
never has to know about HTTP.
"""

import requests
import structlog

from pushrelay.gateway.port import (
    DeliveryResult,
    GatewayErrorCode,
    PushGateway,
    PushMessage,
)

logger = structlog.get_logger(__name__)

_FCM_ERROR_CODES = {
    "UNREGISTERED": GatewayErrorCode.INVALID_TOKEN,
    "INVALID_ARGUMENT": GatewayErrorCode.INVALID_TOKEN,
    "SENDER_ID_MISMATCH": GatewayErrorCode.INVALID_TOKEN,
    "QUOTA_EXCEEDED": GatewayErrorCode.RATE_LIMITED,
    "UNAVAILABLE": GatewayErrorCode.UNAVAILABLE,
    "INTERNAL": GatewayErrorCode.UNAVAILABLE,
}


class HttpPushGateway(PushGateway):
    """Push gateway that talks to an FCM-compatible HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 10.0, auth_token: str | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.auth_token = auth_token

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def send(self, message: PushMessage) -> DeliveryResult:
        try:
            response = requests.post(
                self.url,
                json={"message": message.as_fcm_message()},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.Timeout:
            return DeliveryResult(
                success=False,
                error_code=GatewayErrorCode.TIMEOUT,
                failure_reason=f"Gateway did not respond within {self.timeout}s",
            )
        except requests.RequestException as e:
            return DeliveryResult(
                success=False,
                error_code=GatewayErrorCode.UNAVAILABLE,
                failure_reason=str(e),
            )

        if response.ok:
            body = _json_or_empty(response)
            return DeliveryResult(success=True, delivery_id=body.get("name"))

        code, reason = classify_error_response(response)
        logger.warning(
            "Push gateway rejected message",
            status_code=response.status_code,
            error_code=code.value,
        )
        return DeliveryResult(success=False, error_code=code, failure_reason=reason)


def classify_error_response(response: requests.Response) -> tuple[GatewayErrorCode, str]:
    """Map an unsuccessful gateway response to an error code and a reason."""
    error = _json_or_empty(response).get("error") or {}
    reason = error.get("message") or f"HTTP {response.status_code}"

    for detail in error.get("details") or []:
        fcm_code = detail.get("errorCode")
        if fcm_code in _FCM_ERROR_CODES:
            return _FCM_ERROR_CODES[fcm_code], reason

    if response.status_code == 429:
        return GatewayErrorCode.RATE_LIMITED, reason
    if response.status_code in (400, 404):
        return GatewayErrorCode.INVALID_TOKEN, reason
    if response.status_code >= 500:
        return GatewayErrorCode.UNAVAILABLE, reason
    return GatewayErrorCode.UNKNOWN, reason


def _json_or_empty(response: requests.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
