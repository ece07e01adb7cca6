"""
Outbound HTTP for every third-party call (Twilio, Groq, Gemini fallback,
Ollama, Sandbox, ClearTax, the email relay).

Only transient network failures are retried: 3 attempts with 1s, 2s, 4s
backoff. HTTP error statuses are returned to the caller untouched.
"""
import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

MAX_ATTEMPTS = 3
RETRY_WAIT = wait_exponential(multiplier=1, min=1, max=4)
DEFAULT_TIMEOUT = 20

# Connection refused/reset, DNS failure, connect or read timeout, dropped socket
TRANSIENT_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


def is_transient_error(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)


async def request_with_retry(
    method: str,
    url: str,
    *,
    label: str = "http",
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs,
) -> httpx.Response:
    """
    Send one request, retrying transient network errors.

    Extra keyword arguments go straight to ``httpx.AsyncClient.request``
    (json, data, files, headers, auth, params ...).
    """

    def _log_retry(retry_state):
        exc = retry_state.outcome.exception()
        logger.warning(
            f"[{label}] Network error on attempt {retry_state.attempt_number}/{MAX_ATTEMPTS}, "
            f"retrying in {retry_state.next_action.sleep:.0f}s: {exc!r}"
        )

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=RETRY_WAIT,
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.request(method, url, **kwargs)
