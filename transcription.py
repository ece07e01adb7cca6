# whisper.py
# Speech-to-text through Groq's hosted Whisper (OpenAI-compatible endpoint).
import httpx

import config
from errors import ServiceNotConfiguredError, UpstreamServiceError
from http_client import request_with_retry
from utils import decode_base64_payload

TRANSCRIPTION_URL = "https://api.groq.com/openai/v1/audio/transcriptions"


def extension_for(mime_type: str) -> str:
    return "mp4" if "mp4" in (mime_type or "") else "webm"


async def download_media(url: str) -> tuple[bytes, str]:
    """Fetch a recording from an http(s) URL or decode an inline data URL."""
    if url.startswith("data:"):
        data, mime = decode_base64_payload(url)
        return data, mime or "video/webm"

    response = await request_with_retry("GET", url, label="media-download", timeout=60)
    if response.is_error:
        raise UpstreamServiceError("Media", f"Failed to download media: {response.status_code}")
    return response.content, response.headers.get("content-type", "video/webm")


async def transcribe_audio(
    data: bytes,
    filename: str = "recording.webm",
    mime_type: str = "video/webm",
    language: str | None = None,
) -> dict:
    """
    Returns ``{"text", "language", "duration", "segments"}``. ``language`` is
    an optional ISO-639-1 hint ('hi', 'te'); Whisper auto-detects without it.
    """
    if not config.GROQ_API_KEY:
        raise ServiceNotConfiguredError("Whisper", "GROQ_API_KEY is required for Whisper transcription")

    form = {"model": config.WHISPER_MODEL, "response_format": "verbose_json"}
    if language:
        form["language"] = language

    response = await request_with_retry(
        "POST",
        TRANSCRIPTION_URL,
        label="whisper",
        timeout=120,
        headers={"Authorization": f"Bearer {config.GROQ_API_KEY}"},
        data=form,
        files={"file": (filename, data, mime_type)},
    )
    if response.is_error:
        raise UpstreamServiceError(
            "Whisper", f"Whisper API error ({response.status_code}): {response.text[:200]}"
        )

    body = response.json()
    return {
        "text": body.get("text") or "",
        "language": body.get("language") or "unknown",
        "duration": body.get("duration") or 0,
        "segments": [
            {"start": s.get("start"), "end": s.get("end"), "text": s.get("text")}
            for s in body.get("segments") or []
        ],
    }


def is_network_error(exc: BaseException) -> bool:
    """Failures worth retrying later rather than holding against the worker."""
    return isinstance(exc, httpx.TransportError)
