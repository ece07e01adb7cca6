# models/rating.py
from typing import Literal

from pydantic import Field

from models import CamelModel


class RatingCreate(CamelModel):
    # Checked by hand in the route so missing fields get a 400 with a readable message
    to_user_id: str | None = None
    job_id: str | None = None
    rating: float | None = None
    application_id: str | None = None
    feedback: str | None = None


class ReportCreate(CamelModel):
    reason: str | None = None
    reported_id: str | None = None
    reported_user_id: str | None = None
    reported_job_id: str | None = None
    type: Literal["user", "job", "message"] = "user"
    description: str | None = None


class ReportUpdate(CamelModel):
    status: Literal["pending", "resolved", "dismissed"] | None = None
    resolution: str | None = None


class PenalizeRequest(CamelModel):
    report_id: str | None = None
    penalty: int = 0
    resolution: str | None = None


class TrustScoreUpdate(CamelModel):
    score: int | None = Field(default=None, ge=0, le=100)
    complaint_count: int | None = Field(default=None, ge=0)
    successful_payments: int | None = Field(default=None, ge=0)
    job_completion_rate: float | None = Field(default=None, ge=0, le=100)
