"""
Tests for the Twilio Verify and email relay clients
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

import config
import mailer
import twilio_verify
from errors import ServiceNotConfiguredError, UpstreamServiceError, ValidationError


def response(status, payload):
    return httpx.Response(status, json=payload, request=httpx.Request("POST", "https://example.test"))


@pytest.fixture
def twilio_keys(monkeypatch):
    monkeypatch.setattr(config, "TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setattr(config, "TWILIO_AUTH_TOKEN", "tok")
    monkeypatch.setattr(config, "TWILIO_VERIFY_SERVICE_SID", "VA456")


class TestTwilioVerify:

    @pytest.mark.parametrize("raw,expected", [
        ("98765 43210", "+919876543210"),
        ("+1 415 555 0100", "+14155550100"),
        ("(987) 654-3210", "+919876543210"),
        ("   ", ""),
    ])
    def test_normalize_phone(self, raw, expected):
        assert twilio_verify.normalize_phone(raw, "+91") == expected

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(config, "TWILIO_ACCOUNT_SID", None)
        with pytest.raises(ServiceNotConfiguredError):
            await twilio_verify.send_verification("9876543210")

    @pytest.mark.asyncio
    async def test_send_posts_sms_verification(self, twilio_keys):
        with patch("twilio_verify.request_with_retry", AsyncMock(return_value=response(201, {"status": "pending"}))) as call:
            await twilio_verify.send_verification("9876543210")

        assert call.call_args.args[1].endswith("/Services/VA456/Verifications")
        assert call.call_args.kwargs["data"] == {"To": "+919876543210", "Channel": "sms"}
        assert call.call_args.kwargs["auth"] == ("AC123", "tok")

    @pytest.mark.asyncio
    async def test_twilio_error_status_passed_through(self, twilio_keys):
        with patch("twilio_verify.request_with_retry",
                   AsyncMock(return_value=response(429, {"message": "Max send attempts reached"}))):
            with pytest.raises(UpstreamServiceError, match="Max send attempts") as exc:
                await twilio_verify.send_verification("9876543210")
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_check_requires_six_digits(self, twilio_keys):
        with pytest.raises(ValidationError):
            await twilio_verify.check_verification("9876543210", "12345")

    @pytest.mark.asyncio
    async def test_check_rejects_unapproved(self, twilio_keys):
        with patch("twilio_verify.request_with_retry", AsyncMock(return_value=response(200, {"status": "pending"}))):
            with pytest.raises(ValidationError, match="Invalid or expired OTP"):
                await twilio_verify.check_verification("9876543210", "123456")

    @pytest.mark.asyncio
    async def test_check_approved(self, twilio_keys):
        with patch("twilio_verify.request_with_retry", AsyncMock(return_value=response(200, {"status": "approved"}))):
            await twilio_verify.check_verification("9876543210", "123456")


class TestMailer:

    @pytest.mark.asyncio
    async def test_dev_mode_without_relay(self, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_URL", None)
        with patch("mailer.request_with_retry", AsyncMock()) as call:
            result = await mailer.send_otp_email("a@b.com", "123456")

        assert result == {"success": True, "messageId": "dev-mock"}
        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_rendered_otp(self, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_URL", "https://proj.supabase.test")
        monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "service")
        ok = response(200, {"success": True, "messageId": "m1"})
        with patch("mailer.request_with_retry", AsyncMock(return_value=ok)) as call:
            result = await mailer.send_otp_email("a@b.com", "654321", purpose="forgot-password")

        assert result == {"success": True, "messageId": "m1"}
        body = call.call_args.kwargs["json"]
        assert body["subject"] == "654321 is your HyperLocal Jobs OTP"
        assert "654321" in body["html"]
        assert "reset your password" in body["text"]
        assert call.call_args.args[1] == "https://proj.supabase.test/functions/v1/email"

    @pytest.mark.asyncio
    async def test_relay_failure_never_raises(self, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_URL", "https://proj.supabase.test")
        monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "service")
        with patch("mailer.request_with_retry",
                   AsyncMock(side_effect=httpx.ConnectError("down"))):
            result = await mailer.send_welcome_email("a@b.com", "Ravi", "worker")
        assert result["success"] is False

    def test_html_to_text(self):
        assert mailer.html_to_text("<style>p{}</style><p>Hello <b>Ravi</b></p>") == "Hello Ravi"
