# models/chat.py
from typing import Literal

from models import CamelModel


class ConversationCreate(CamelModel):
    participants: list[str]
    job_id: str | None = None
    application_id: str | None = None
    worker_id: str | None = None
    employer_id: str | None = None


class MessageAttachment(CamelModel):
    url: str
    name: str | None = None
    type: str | None = None
    size: int | None = None


class MessageCreate(CamelModel):
    conversation_id: str
    message: str
    sender_id: str | None = None
    attachment: MessageAttachment | None = None


class EscrowCreate(CamelModel):
    job_id: str | None = None
    employer_id: str | None = None
    worker_id: str | None = None
    amount: float = 0
    status: Literal["pending", "held"] = "pending"


class EscrowUpdate(CamelModel):
    status: Literal["pending", "held", "released", "refunded"]
