# routes/email.py
import re

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from loguru import logger

import otp_store
from config import IS_PRODUCTION
from errors import ValidationError
from mailer import (
    send_application_status_email,
    send_login_alert_email,
    send_otp_email,
    send_password_reset_email,
    send_welcome_email,
)
from models.email import EmailOtpRequest, EmailOtpVerifyRequest, TransactionalEmailRequest

router = APIRouter(tags=["email"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _clean_email(value: str | None) -> str:
    return (value or "").strip().lower()


# =========================================================
# 1. Email OTP
# =========================================================
@router.post("/send-otp")
async def send_email_otp(body: EmailOtpRequest):
    email = _clean_email(body.email)
    if not email or not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address.")

    otp = otp_store.issue(email)
    result = await send_otp_email(email, otp, body.purpose)
    if not result["success"]:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to send OTP email. Please try again."},
        )

    response = {"success": True, "message": f"OTP sent to {email}"}
    # no mail server locally, so hand the code back outside production
    if not IS_PRODUCTION:
        response["otp"] = otp
    return response


@router.put("/send-otp")
async def verify_email_otp(body: EmailOtpVerifyRequest):
    email = _clean_email(body.email)
    code = (body.otp or "").strip()
    if not email or not code:
        raise ValidationError("email and otp are required.")

    otp_store.verify(email, code)
    return {"success": True, "message": "Email verified successfully."}


# =========================================================
# 2. Templated emails
# =========================================================
def _require(body: TransactionalEmailRequest, *fields: str):
    missing = [f for f in fields if not getattr(body, f)]
    if missing:
        names = ", ".join(TransactionalEmailRequest.model_fields[f].alias or f for f in fields)
        raise ValidationError(f"{names} {'is' if len(fields) == 1 else 'are'} required.")


@router.post("/transactional")
async def send_transactional(body: TransactionalEmailRequest):
    to = (body.to or "").strip()
    if not to or not EMAIL_RE.match(to):
        raise ValidationError('Invalid or missing "to" email.')

    if body.type == "welcome":
        _require(body, "full_name", "role")
        result = await send_welcome_email(to, body.full_name, body.role)
    elif body.type == "login-alert":
        _require(body, "full_name")
        result = await send_login_alert_email(to, body.full_name, body.ip)
    elif body.type == "password-reset":
        _require(body, "full_name")
        result = await send_password_reset_email(to, body.full_name)
    elif body.type == "application-status":
        _require(body, "worker_name", "job_title", "employer_name", "status")
        result = await send_application_status_email(
            to, body.worker_name, body.job_title, body.employer_name, body.status
        )
    else:
        raise ValidationError(f'Unknown email type: "{body.type}".')

    if not result["success"]:
        logger.warning(f"[email] {body.type} to {to} failed: {result.get('error')}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.get("error") or "Email delivery failed."},
        )
    return {"success": True, "message": "Email sent."}
