# routes/auth.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from loguru import logger
from psycopg_pool import AsyncConnectionPool

import mailer
import twilio_verify
from config import SESSION_COOKIE_NAME
from db import getDB
from errors import AuthenticationError, AuthorizationError, ConflictError
from mappers import map_user
from models.user import LoginRequest, SendOtpRequest, SignupRequest, VerifyOtpRequest
from security import (
    generate_session_token,
    hash_password,
    hash_session_token,
    session_expiry,
    verify_password,
)

# --- 1. Router ---
router = APIRouter(tags=["auth"])


# --- 2. Session helpers ---
def read_session_token(request: Request) -> str | None:
    """
    API clients send ``Authorization: Bearer <token>``; browsers carry the
    same token inside the signed session cookie.
    """
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.session.get(SESSION_COOKIE_NAME)


async def create_session(conn, user_id) -> str:
    """Store the hash of a fresh token and return the raw token to the caller."""
    token = generate_session_token()
    async with conn.cursor() as cur:
        await cur.execute(
            "INSERT INTO user_sessions (user_id, token, expires_at) VALUES (%s, %s, %s)",
            (user_id, hash_session_token(token), session_expiry()),
        )
    return token


# --- 3. Core dependencies: who is calling? ---
async def get_optional_user(request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    """
    Returns the logged-in user row, or None when there is no token.
    A token that is unknown or expired is an error, not an anonymous call.
    """
    token = read_session_token(request)
    if not token:
        return None

    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT user_id, expires_at FROM user_sessions WHERE token = %s",
            (hash_session_token(token),),
        )
        session = await cur.fetchone()
        if not session:
            raise AuthenticationError("Invalid session")

        if session["expires_at"] <= datetime.now(timezone.utc):
            await cur.execute("DELETE FROM user_sessions WHERE token = %s", (hash_session_token(token),))
            # Commit now: the error below rolls back the request's transaction
            await conn.commit()
            request.session.pop(SESSION_COOKIE_NAME, None)
            raise AuthenticationError("Session expired")

        await cur.execute("SELECT * FROM users WHERE id = %s", (session["user_id"],))
        user = await cur.fetchone()

    if not user:
        # Session points at a deleted account
        request.session.pop(SESSION_COOKIE_NAME, None)
        raise AuthenticationError("Invalid session")
    return user


async def get_current_user(user: dict | None = Depends(get_optional_user)):
    if not user:
        raise AuthenticationError()
    return user


async def get_current_admin_user(user: dict = Depends(get_current_user)):
    if user["role"] != "admin":
        raise AuthorizationError("Admin access required")
    return user


async def get_current_employer_user(user: dict = Depends(get_current_user)):
    if user["role"] not in ("employer", "admin"):
        raise AuthorizationError("Only employers can do this")
    return user


async def get_current_worker_user(user: dict = Depends(get_current_user)):
    if user["role"] not in ("worker", "admin"):
        raise AuthorizationError("Only workers can do this")
    return user


def is_admin(user: dict) -> bool:
    return user["role"] == "admin"


def same_id(a, b) -> bool:
    """uuid.UUID from the database vs str from the client."""
    return a is not None and b is not None and str(a) == str(b)


# --- 4. Signup ---
@router.post("/signup")
async def signup(body: SignupRequest, request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute("SELECT id FROM users WHERE phone_number = %s", (body.phone_number,))
        if await cur.fetchone():
            raise ConflictError("Phone number already registered")

        await cur.execute(
            """
            INSERT INTO users (
                full_name, phone_number, email, password_hash, role,
                profile_completed, trust_score, trust_level, is_verified, company_name
            )
            VALUES (%s, %s, %s, %s, %s, FALSE, 50, 'basic', TRUE, %s)
            RETURNING *
            """,
            (
                body.full_name, body.phone_number, body.email or None,
                hash_password(body.password), body.role, body.business_name or None,
            ),
        )
        user = await cur.fetchone()

        if body.role == "worker":
            await cur.execute("INSERT INTO worker_profiles (user_id) VALUES (%s)", (user["id"],))
        else:
            await cur.execute(
                "INSERT INTO employer_profiles (user_id, business_name, organization_name) VALUES (%s, %s, %s)",
                (user["id"], body.business_name or "", body.organization_name),
            )

    token = await create_session(conn, user["id"])
    request.session[SESSION_COOKIE_NAME] = token
    logger.info(f"New {body.role} registered: {user['id']}")

    if user.get("email"):
        await mailer.send_welcome_email(user["email"], user["full_name"], body.role)

    return {"success": True, "user": map_user(user), "token": token, "message": "Registration successful"}


# --- 5. Login / logout ---
@router.post("/login")
async def login(body: LoginRequest, request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM users WHERE phone_number = %s", (body.phone_number,))
        user = await cur.fetchone()

    if not user or not verify_password(body.password, user.get("password_hash")):
        raise AuthenticationError("Invalid phone number or password")

    token = await create_session(conn, user["id"])
    request.session[SESSION_COOKIE_NAME] = token

    if user.get("email"):
        await mailer.send_login_alert_email(user["email"], user["full_name"], request.headers.get("user-agent"))

    return {"success": True, "user": map_user(user), "token": token, "message": "Login successful"}


@router.post("/logout")
async def logout(request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    token = read_session_token(request)
    if token:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM user_sessions WHERE token = %s", (hash_session_token(token),))
    request.session.clear()
    return {"success": True}


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    return {"success": True, "user": map_user(user)}


# --- 6. Phone OTP (Twilio Verify) ---
@router.post("/send-otp")
async def send_otp(body: SendOtpRequest):
    await twilio_verify.send_verification(body.phone_number)
    return {"success": True, "message": "OTP sent successfully."}


@router.post("/verify-otp")
async def verify_otp(body: VerifyOtpRequest):
    await twilio_verify.check_verification(body.phone_number, body.otp)
    return {"success": True, "message": "OTP verified successfully."}
