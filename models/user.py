# models/user.py
from typing import Literal

from pydantic import Field

from models import CamelModel


class SignupRequest(CamelModel):
    full_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=6)
    password: str = Field(min_length=6)
    role: Literal["worker", "employer"]
    email: str | None = None
    business_name: str | None = None
    organization_name: str | None = None


class LoginRequest(CamelModel):
    phone_number: str
    password: str


class SendOtpRequest(CamelModel):
    phone_number: str


class VerifyOtpRequest(CamelModel):
    phone_number: str
    otp: str


class UserUpdate(CamelModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    phone_number: str | None = None
    company_name: str | None = None
    company_description: str | None = None
    skills: list[str] | None = None
    profile_completed: bool | None = None
    # admin only
    role: Literal["worker", "employer", "admin"] | None = None
    trust_score: int | None = Field(default=None, ge=0, le=100)
    trust_level: Literal["basic", "active", "trusted"] | None = None
    is_verified: bool | None = None


ADMIN_ONLY_USER_FIELDS = {"role", "trust_score", "trust_level", "is_verified"}
