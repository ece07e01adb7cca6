# models/email.py
from typing import Literal

from models import CamelModel


class EmailOtpRequest(CamelModel):
    email: str | None = None
    purpose: Literal["signup", "login", "phone-change", "forgot-password"] = "signup"


class EmailOtpVerifyRequest(CamelModel):
    email: str | None = None
    otp: str | None = None


class TransactionalEmailRequest(CamelModel):
    # one body for every template; which fields are required depends on ``type``
    to: str | None = None
    type: str | None = None
    full_name: str | None = None
    role: str | None = None
    ip: str | None = None
    worker_name: str | None = None
    job_title: str | None = None
    employer_name: str | None = None
    status: Literal["accepted", "rejected"] | None = None
