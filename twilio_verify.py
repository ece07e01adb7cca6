# twilio_verify.py
# SMS OTP through Twilio Verify. Twilio generates, sends and checks the code;
# nothing is stored on our side.
import re

import httpx

import config
from errors import ServiceNotConfiguredError, UpstreamServiceError, ValidationError
from http_client import request_with_retry

VERIFY_BASE_URL = "https://verify.twilio.com/v2"


def normalize_phone(raw_phone: str, default_country_code: str = config.DEFAULT_COUNTRY_CODE) -> str:
    """'98765 43210' -> '+919876543210'. Numbers already starting with + are kept."""
    cleaned = re.sub(r"\s+", "", raw_phone or "")
    if not cleaned:
        return ""
    if cleaned.startswith("+"):
        return cleaned
    digits = re.sub(r"\D", "", cleaned)
    if not digits:
        return ""
    return f"{default_country_code}{digits}"


def _credentials():
    sid = (config.TWILIO_ACCOUNT_SID or "").strip()
    token = (config.TWILIO_AUTH_TOKEN or "").strip()
    service_sid = (config.TWILIO_VERIFY_SERVICE_SID or "").strip()
    if not (sid and token and service_sid):
        raise ServiceNotConfiguredError("twilio", "OTP service is not configured on server.")
    return sid, token, service_sid


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    message = data.get("message") if isinstance(data, dict) else None
    return message if isinstance(message, str) else fallback


async def send_verification(phone_number: str) -> None:
    sid, token, service_sid = _credentials()
    to = normalize_phone(phone_number)
    if not to:
        raise ValidationError("Invalid phone number.")

    response = await request_with_retry(
        "POST",
        f"{VERIFY_BASE_URL}/Services/{service_sid}/Verifications",
        label="twilio",
        data={"To": to, "Channel": "sms"},
        auth=(sid, token),
    )
    if response.is_error:
        raise UpstreamServiceError(
            "twilio",
            _error_message(response, "Failed to send OTP. Please try again."),
            status_code=response.status_code,
        )


async def check_verification(phone_number: str, code: str) -> None:
    """Raises unless Twilio reports the code as approved."""
    sid, token, service_sid = _credentials()
    to = normalize_phone(phone_number)
    code = (code or "").strip()
    if not to or not re.fullmatch(r"\d{6}", code):
        raise ValidationError("Invalid phone number or OTP.")

    response = await request_with_retry(
        "POST",
        f"{VERIFY_BASE_URL}/Services/{service_sid}/VerificationCheck",
        label="twilio",
        data={"To": to, "Code": code},
        auth=(sid, token),
    )
    if response.is_error:
        raise UpstreamServiceError(
            "twilio",
            _error_message(response, "OTP verification failed. Please try again."),
            status_code=response.status_code,
        )

    if response.json().get("status") != "approved":
        raise ValidationError("Invalid or expired OTP.")
