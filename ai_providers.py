"""
LLM text generation.

Gemini (google-genai) is tried first, walking MODEL_CANDIDATES so a missing
model or an exhausted quota on one moves on to the next. If Gemini is not
configured or every candidate fails, the prompt goes to a self-hosted Ollama.
"""
import asyncio

import httpx
from google import genai
from google.genai import errors, types
from loguru import logger

import config
from errors import UpstreamServiceError
from http_client import request_with_retry

DEFAULT_MAX_TOKENS = 512
MIN_TOKENS = 16
MAX_TOKENS = 2048

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a helpful assistant for HyperLocal Jobs, a hyperlocal job platform "
    "connecting blue-collar and gig workers with nearby employers in India. "
    "Answer concisely and practically."
)

# Tried in order; 404 (unknown model), 400 (bad request) and 429 (quota) fall through
MODEL_CANDIDATES = [
    "gemini-2.0-flash",
    "gemini-2.5-flash",
    "gemini-2.0-flash-lite",
    "gemini-1.5-flash",
]
SKIPPABLE_CODES = (404, 400, 429)


def clamp_max_tokens(value) -> int:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return DEFAULT_MAX_TOKENS
    return int(min(max(value, MIN_TOKENS), MAX_TOKENS))


async def _generate_gemini(prompt: str, system_instruction: str, max_tokens: int, temperature: float) -> str:
    client = genai.Client(api_key=config.GEMINI_API_KEY)
    generation_config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        max_output_tokens=max_tokens,
        temperature=temperature,
    )

    last_error = None
    for model_name in MODEL_CANDIDATES:
        try:
            response = await client.aio.models.generate_content(
                model=model_name,
                contents=prompt,
                config=generation_config,
            )
            logger.debug(f"[gemini] {model_name} answered")
            return response.text or ""
        except errors.ClientError as e:
            if e.code in SKIPPABLE_CODES:
                logger.info(f"[gemini] {model_name} unavailable (code {e.code}), trying next model")
                last_error = e
                continue
            raise

    raise UpstreamServiceError("Gemini", f"No Gemini model available: {last_error}")


async def _generate_ollama(prompt: str, system_instruction: str, max_tokens: int, temperature: float) -> str:
    try:
        response = await request_with_retry(
            "POST",
            f"{config.OLLAMA_URL.rstrip('/')}/api/generate",
            label="ollama",
            timeout=config.AI_TIMEOUT_SECONDS,
            json={
                "model": config.OLLAMA_MODEL,
                "prompt": prompt,
                "system": system_instruction,
                "stream": False,
                "options": {"temperature": temperature, "num_predict": max_tokens},
            },
        )
    except httpx.HTTPError as e:
        raise UpstreamServiceError("Ollama", f"Ollama unreachable: {e!r}")

    if response.is_error:
        raise UpstreamServiceError(
            "Ollama",
            f"Ollama error ({response.status_code}): {response.text[:200]}",
            status_code=response.status_code,
        )
    return response.json().get("response") or ""


async def generate_text(
    prompt: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    system_instruction: str | None = None,
    temperature: float = 0.2,
) -> str:
    system_instruction = (system_instruction or "").strip() or DEFAULT_SYSTEM_INSTRUCTION
    max_tokens = clamp_max_tokens(max_tokens)

    if config.GEMINI_API_KEY:
        try:
            return await asyncio.wait_for(
                _generate_gemini(prompt, system_instruction, max_tokens, temperature),
                timeout=config.AI_TIMEOUT_SECONDS,
            )
        except (errors.APIError, UpstreamServiceError, asyncio.TimeoutError) as e:
            logger.warning(f"[ai] Gemini failed, falling back to Ollama: {e!r}")

    return await _generate_ollama(prompt, system_instruction, max_tokens, temperature)
