# models/ai.py
from models import CamelModel


class GenerateRequest(CamelModel):
    prompt: str | None = None
    max_tokens: int | None = None
    system_instruction: str | None = None


class SkillAssessmentRequest(CamelModel):
    skill: str | None = None
    level: str | None = None


class TranscribeRequest(CamelModel):
    video_url: str | None = None
    video_base64: str | None = None
    language: str | None = None


class AnalyzeAssessmentRequest(CamelModel):
    assessment_id: str
    video_url: str | None = None
    audio_metrics: dict | None = None
    language: str | None = None
