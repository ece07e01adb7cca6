"""
In-memory email OTP store.

Entries live in a module-level dict keyed by lower-cased email, so codes are
only visible to the process that issued them. Running more than one worker
or instance breaks verification; moving this to a shared store (Redis or a
Postgres table) is the known fix and has not been done.
"""
import time
from dataclasses import dataclass

from errors import RateLimitError, ValidationError
from security import generate_otp

OTP_TTL_SECONDS = 10 * 60
MAX_ATTEMPTS = 5


@dataclass
class OtpEntry:
    otp: str
    expires_at: float
    attempts: int = 0


_store: dict[str, OtpEntry] = {}


def issue(email: str, now: float | None = None) -> str:
    """Create (or replace) the OTP for an email and return it. Expired entries are dropped."""
    now = time.time() if now is None else now
    for stale in [key for key, entry in _store.items() if now > entry.expires_at]:
        del _store[stale]
    otp = generate_otp()
    _store[email] = OtpEntry(otp=otp, expires_at=now + OTP_TTL_SECONDS)
    return otp


def verify(email: str, code: str, now: float | None = None) -> None:
    """
    Check a submitted code. Returns on success and raises otherwise.

    The entry is dropped on success, on expiry, and once the attempt
    budget is exhausted.
    """
    now = time.time() if now is None else now
    entry = _store.get(email)
    if entry is None:
        raise ValidationError("No OTP found for this email. Please request a new one.")

    if now > entry.expires_at:
        del _store[email]
        raise ValidationError("OTP has expired. Please request a new one.")

    entry.attempts += 1
    if entry.attempts > MAX_ATTEMPTS:
        del _store[email]
        raise RateLimitError("Too many incorrect attempts. Please request a new OTP.")

    if entry.otp != code:
        raise ValidationError(f"Incorrect OTP. {MAX_ATTEMPTS - entry.attempts} attempts remaining.")

    del _store[email]


def clear():
    _store.clear()
