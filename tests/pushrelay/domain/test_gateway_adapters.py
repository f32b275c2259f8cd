"""Tests for push gateway adapters and the gateway factory."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from pushrelay.gateway import get_gateway, reset_gateway, set_gateway
from pushrelay.gateway.fake_adapter import FakePushGateway
from pushrelay.gateway.http_adapter import HttpPushGateway
from pushrelay.gateway.port import GatewayError, GatewayErrorCode, PushMessage
from pushrelay.settings import DispatchSettings, set_settings


def _message(token="tok1"):
    return PushMessage(token=token, title="Hi", body="There", data={"count": "3"})


def _response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


class TestFakePushGateway:
    def test_success_records_message(self):
        gateway = FakePushGateway()
        result = gateway.send(_message())
        assert result.success is True
        assert result.delivery_id.startswith("fake-msg-")
        assert len(gateway.sent_messages) == 1
        assert len(gateway.calls) == 1

    def test_configured_failure(self):
        gateway = FakePushGateway()
        gateway.configure(
            should_succeed=False,
            failure_reason="Token not registered",
            error_code=GatewayErrorCode.INVALID_TOKEN,
        )
        result = gateway.send(_message())
        assert result.success is False
        assert result.error_code == GatewayErrorCode.INVALID_TOKEN
        assert result.failure_reason == "Token not registered"
        assert gateway.sent_messages == []
        assert len(gateway.calls) == 1

    def test_configured_raise(self):
        gateway = FakePushGateway()
        gateway.configure(should_raise=True, error_code=GatewayErrorCode.TIMEOUT)
        with pytest.raises(GatewayError) as exc:
            gateway.send(_message())
        assert exc.value.code == GatewayErrorCode.TIMEOUT

    def test_reset(self):
        gateway = FakePushGateway()
        gateway.configure(should_succeed=False)
        gateway.send(_message())
        gateway.reset()
        assert gateway.calls == []
        assert gateway.should_succeed is True


class TestHttpPushGateway:
    def test_success_returns_message_name(self):
        gateway = HttpPushGateway(url="https://push.example.test/send", auth_token="secret")
        with patch("pushrelay.gateway.http_adapter.requests.post") as post:
            post.return_value = _response(200, {"name": "projects/p/messages/123"})
            result = gateway.send(_message())

        assert result.success is True
        assert result.delivery_id == "projects/p/messages/123"
        _, kwargs = post.call_args
        assert kwargs["json"]["message"]["token"] == "tok1"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 10.0

    def test_unregistered_token(self):
        gateway = HttpPushGateway(url="https://push.example.test/send")
        body = {
            "error": {
                "message": "Requested entity was not found.",
                "details": [{"errorCode": "UNREGISTERED"}],
            }
        }
        with patch("pushrelay.gateway.http_adapter.requests.post", return_value=_response(404, body)):
            result = gateway.send(_message())

        assert result.success is False
        assert result.error_code == GatewayErrorCode.INVALID_TOKEN
        assert result.failure_reason == "Requested entity was not found."

    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (429, GatewayErrorCode.RATE_LIMITED),
            (400, GatewayErrorCode.INVALID_TOKEN),
            (503, GatewayErrorCode.UNAVAILABLE),
            (403, GatewayErrorCode.UNKNOWN),
        ],
    )
    def test_status_code_classification(self, status_code, expected):
        gateway = HttpPushGateway(url="https://push.example.test/send")
        with patch("pushrelay.gateway.http_adapter.requests.post", return_value=_response(status_code)):
            result = gateway.send(_message())

        assert result.success is False
        assert result.error_code == expected
        assert result.failure_reason == f"HTTP {status_code}"

    def test_timeout(self):
        gateway = HttpPushGateway(url="https://push.example.test/send", timeout=2.0)
        with patch(
            "pushrelay.gateway.http_adapter.requests.post",
            side_effect=requests.Timeout("slow"),
        ):
            result = gateway.send(_message())

        assert result.success is False
        assert result.error_code == GatewayErrorCode.TIMEOUT

    def test_connection_error(self):
        gateway = HttpPushGateway(url="https://push.example.test/send")
        with patch(
            "pushrelay.gateway.http_adapter.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            result = gateway.send(_message())

        assert result.success is False
        assert result.error_code == GatewayErrorCode.UNAVAILABLE


class TestGatewayFactory:
    def test_default_is_fake(self):
        assert isinstance(get_gateway(), FakePushGateway)

    def test_same_instance_until_reset(self):
        first = get_gateway()
        assert get_gateway() is first
        reset_gateway()
        assert get_gateway() is not first

    def test_set_gateway_overrides(self):
        custom = FakePushGateway()
        set_gateway(custom)
        assert get_gateway() is custom

    def test_http_gateway_from_settings(self):
        set_settings(DispatchSettings(gateway="http", gateway_url="https://push.example.test/send"))
        gateway = get_gateway()
        assert isinstance(gateway, HttpPushGateway)
        assert gateway.url == "https://push.example.test/send"

    def test_http_gateway_requires_url(self):
        set_settings(DispatchSettings(gateway="http"))
        with pytest.raises(ValueError):
            get_gateway()

    def test_unknown_gateway(self):
        set_settings(DispatchSettings(gateway="carrier-pigeon"))
        with pytest.raises(ValueError):
            get_gateway()
