# mailer.py
# Transactional email. HTML comes from Jinja2 templates under templates/email/;
# delivery goes through the email edge function on the Supabase project,
# which holds the SMTP credentials.
import os
import re
from datetime import datetime, timedelta, timezone

from fastapi.templating import Jinja2Templates
from loguru import logger

import config
from http_client import request_with_retry

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
templates = Jinja2Templates(directory=TEMPLATE_DIR)

IST = timezone(timedelta(hours=5, minutes=30))

OTP_PURPOSE_LABELS = {
    "signup": "verify your phone number during sign-up",
    "login": "complete your login via email OTP",
    "phone-change": "verify your new phone number",
    "forgot-password": "reset your password",
}


def render(template_name: str, **context) -> str:
    context.setdefault("year", datetime.now(IST).year)
    context.setdefault("app_url", config.APP_URL)
    return templates.get_template(f"email/{template_name}").render(**context)


def html_to_text(html: str) -> str:
    text = re.sub(r"<(style|title)[^>]*>.*?</\1>", "", html, flags=re.S | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    return re.sub(r"\s+", " ", text).strip()


async def send_email(to: str, subject: str, html: str, text: str | None = None) -> dict:
    """
    Hand one email to the relay. Never raises: callers treat email as best
    effort and get back ``{"success": bool, "messageId"/"error": ...}``.
    """
    base_url = (config.SUPABASE_URL or "").strip()
    service_key = (config.SUPABASE_SERVICE_ROLE_KEY or "").strip()

    if not base_url or not service_key:
        # Nothing to send through; local development just logs it
        logger.info(f"[email dev] To: {to} | Subject: {subject}")
        return {"success": True, "messageId": "dev-mock"}

    try:
        response = await request_with_retry(
            "POST",
            f"{base_url}/functions/v1/email",
            label="email",
            headers={"Authorization": f"Bearer {service_key}"},
            json={"to": to, "subject": subject, "html": html, "text": text or html_to_text(html)},
        )
    except Exception as e:
        logger.error(f"[email] Send failed: {e!r}")
        return {"success": False, "error": str(e)}

    if response.is_error:
        try:
            error = response.json().get("error")
        except ValueError:
            error = None
        error = error or f"Edge function responded with {response.status_code}"
        logger.error(f"[email] Edge function error: {error}")
        return {"success": False, "error": error}

    data = response.json()
    return {"success": bool(data.get("success")), "messageId": data.get("messageId")}


# --- High-level helpers ---

async def send_otp_email(to: str, otp: str, purpose: str = "signup") -> dict:
    html = render("otp.html", otp=otp, purpose_label=OTP_PURPOSE_LABELS.get(purpose, OTP_PURPOSE_LABELS["signup"]))
    return await send_email(to, f"{otp} is your HyperLocal Jobs OTP", html)


async def send_welcome_email(to: str, name: str, role: str) -> dict:
    html = render("welcome.html", name=name, role=role, role_label="Worker" if role == "worker" else "Employer")
    return await send_email(to, f"Welcome to HyperLocal Jobs, {name}!", html)


async def send_login_alert_email(to: str, name: str, device: str | None = None) -> dict:
    login_time = datetime.now(IST).strftime("%d %b %Y, %I:%M %p")
    html = render("login_alert.html", name=name, device=device, login_time=login_time)
    return await send_email(to, "New login to your HyperLocal Jobs account", html)


async def send_password_reset_email(to: str, name: str) -> dict:
    html = render("password_reset.html", name=name)
    return await send_email(to, "Your HyperLocal Jobs password was reset", html)


async def send_application_status_email(
    to: str, name: str, job_title: str, employer_name: str, status: str
) -> dict:
    if status == "accepted":
        subject = f"Application accepted for {job_title}"
    else:
        subject = f"Application update for {job_title}"
    html = render(
        "application_status.html",
        name=name, job_title=job_title, employer_name=employer_name, status=status,
    )
    return await send_email(to, subject, html)
