# security.py
import base64
import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from config import SESSION_TTL_DAYS

# PBKDF2-SHA256 with 210k rounds
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=210000,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised hash format in the row
        return False


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_session_token() -> str:
    """Opaque token handed to the client: 32 random bytes, base64url."""
    return _b64url(secrets.token_bytes(32))


def hash_session_token(token: str) -> str:
    """What we store in user_sessions.token. A leaked table can't be replayed."""
    return _b64url(hashlib.sha256(token.encode("utf-8")).digest())


def session_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=SESSION_TTL_DAYS)


def generate_otp() -> str:
    """6-digit numeric code in 100000..999999."""
    return str(100000 + secrets.randbelow(900000))
