# models/job.py
from datetime import date
from typing import Literal

from pydantic import Field

from models import CamelModel

JobStatus = Literal["active", "filled", "completed", "cancelled", "draft"]
ApplicationStatus = Literal["pending", "accepted", "rejected", "completed"]


class JobCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    employer_id: str | None = None
    job_type: str | None = None
    category: str | None = None
    required_skills: list[str] = []
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    pay: float = Field(default=0, ge=0)
    pay_amount: float | None = None
    pay_type: str = "hourly"
    escrow_required: bool = False
    timing: str | None = None
    duration: str | None = None
    experience_required: str | None = None
    requirements: list[str] = []
    benefits: list[str] = []
    slots: int = Field(default=1, ge=1)
    start_date: date | None = None
    status: JobStatus = "active"


class JobUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    job_type: str | None = None
    category: str | None = None
    required_skills: list[str] | None = None
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    pay: float | None = Field(default=None, ge=0)
    pay_amount: float | None = None
    pay_type: str | None = None
    payment_status: Literal["pending", "locked", "released", "refunded"] | None = None
    escrow_required: bool | None = None
    escrow_amount: float | None = None
    timing: str | None = None
    duration: str | None = None
    experience_required: str | None = None
    requirements: list[str] | None = None
    benefits: list[str] | None = None
    slots: int | None = Field(default=None, ge=1)
    start_date: date | None = None
    status: JobStatus | None = None


class ApplicationCreate(CamelModel):
    job_id: str
    worker_id: str | None = None
    match_score: int = Field(default=0, ge=0, le=100)
    cover_message: str | None = None
    cover_letter: str | None = None


class ApplicationUpdate(CamelModel):
    status: ApplicationStatus | None = None
    match_score: int | None = Field(default=None, ge=0, le=100)
    cover_message: str | None = None
    cover_letter: str | None = None
