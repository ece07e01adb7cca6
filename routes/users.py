# routes/users.py
from fastapi import APIRouter, Depends

from db import getDB
from errors import AuthorizationError, ResourceNotFoundError
from mappers import map_trust_score, map_user
from models.rating import TrustScoreUpdate
from models.user import ADMIN_ONLY_USER_FIELDS, UserUpdate
from profile_completion import missing_fields, profile_completion
from routes.auth import get_current_admin_user, get_current_user, is_admin, same_id
from trust import compute_trust_score, trust_level_for

router = APIRouter(tags=["users"])


def ensure_self_or_admin(user: dict, user_id: str):
    if not (is_admin(user) or same_id(user["id"], user_id)):
        raise AuthorizationError()


# =========================================================
# 1. Lookup
# =========================================================
@router.get("")
async def list_users(
    id: str | None = None,
    role: str | None = None,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    """``?id=`` fetches one user for anyone logged in; the full list is admin only."""
    async with conn.cursor() as cur:
        if id:
            await cur.execute("SELECT * FROM users WHERE id = %s", (id,))
            row = await cur.fetchone()
            return {"data": map_user(row) if row else None}

        if not is_admin(user):
            raise AuthorizationError("Admin access required")
        if role:
            await cur.execute("SELECT * FROM users WHERE role = %s ORDER BY created_at DESC", (role,))
        else:
            await cur.execute("SELECT * FROM users ORDER BY created_at DESC")
        rows = await cur.fetchall()
    return {"data": [map_user(r) for r in rows]}


@router.get("/{user_id}")
async def get_user(user_id: str, user: dict = Depends(get_current_user), conn=Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM users WHERE id = %s", (user_id,))
        row = await cur.fetchone()
    if not row:
        raise ResourceNotFoundError("User", user_id)
    return {"data": map_user(row)}


# =========================================================
# 2. Profile edits
# =========================================================
@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    ensure_self_or_admin(user, user_id)

    changes = body.changes()
    # role and trust fields are only ever changed by admins
    if not is_admin(user) and ADMIN_ONLY_USER_FIELDS & changes.keys():
        raise AuthorizationError("Only admins can change role, verification or trust fields")

    async with conn.cursor() as cur:
        if changes:
            assignments = ", ".join(f"{column} = %s" for column in changes)
            await cur.execute(
                f"UPDATE users SET {assignments} WHERE id = %s RETURNING *",
                [*changes.values(), user_id],
            )
        else:
            await cur.execute("SELECT * FROM users WHERE id = %s", (user_id,))
        row = await cur.fetchone()
    if not row:
        raise ResourceNotFoundError("User", user_id)
    return {"data": map_user(row)}


@router.get("/{user_id}/profile-completion")
async def get_profile_completion(user_id: str, user: dict = Depends(get_current_user), conn=Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute("SELECT role FROM users WHERE id = %s", (user_id,))
        target = await cur.fetchone()
        if not target:
            raise ResourceNotFoundError("User", user_id)

        table = "worker_profiles" if target["role"] == "worker" else "employer_profiles"
        await cur.execute(f"SELECT * FROM {table} WHERE user_id = %s", (user_id,))
        profile = await cur.fetchone()

    percent = profile_completion(profile, target["role"])
    return {"data": {
        "percent": percent,
        "complete": percent == 100,
        "missing": missing_fields(profile, target["role"]),
    }}


# =========================================================
# 3. Trust score
# =========================================================
@router.get("/{user_id}/trust-score")
async def get_trust_score(user_id: str, user: dict = Depends(get_current_user), conn=Depends(getDB)):
    ensure_self_or_admin(user, user_id)
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM trust_scores WHERE user_id = %s", (user_id,))
        row = await cur.fetchone()
    if not row:
        # nobody has rated or reported this user yet
        return {"data": map_trust_score({"user_id": user_id, "score": 50, "level": "basic"})}
    return {"data": map_trust_score(row)}


@router.patch("/{user_id}/trust-score")
async def update_trust_score(
    user_id: str,
    body: TrustScoreUpdate,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    """
    Admin correction. Adjusting the inputs (complaints, payments, completion)
    re-runs the formula; an explicit ``score`` overrides it.
    """
    changes = body.changes()
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM trust_scores WHERE user_id = %s", (user_id,))
        current = await cur.fetchone() or {}

        merged = {
            "average_rating": float(current.get("average_rating") or 0),
            "total_ratings": int(current.get("total_ratings") or 0),
            "job_completion_rate": float(changes.get("job_completion_rate", current.get("job_completion_rate") or 0)),
            "complaint_count": int(changes.get("complaint_count", current.get("complaint_count") or 0)),
            "successful_payments": int(changes.get("successful_payments", current.get("successful_payments") or 0)),
        }
        score, level = compute_trust_score(
            merged["average_rating"], merged["total_ratings"], merged["job_completion_rate"],
            merged["complaint_count"], merged["successful_payments"],
        )
        if "score" in changes:
            score = changes["score"]
            level = trust_level_for(score)

        await cur.execute(
            """
            INSERT INTO trust_scores (
                user_id, score, level, average_rating, total_ratings,
                job_completion_rate, complaint_count, successful_payments, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (user_id) DO UPDATE SET
                score = EXCLUDED.score,
                level = EXCLUDED.level,
                job_completion_rate = EXCLUDED.job_completion_rate,
                complaint_count = EXCLUDED.complaint_count,
                successful_payments = EXCLUDED.successful_payments,
                updated_at = NOW()
            RETURNING *
            """,
            (
                user_id, score, level, merged["average_rating"], merged["total_ratings"],
                merged["job_completion_rate"], merged["complaint_count"], merged["successful_payments"],
            ),
        )
        row = await cur.fetchone()
        await cur.execute(
            "UPDATE users SET trust_score = %s, trust_level = %s WHERE id = %s",
            (score, level, user_id),
        )
    return {"data": map_trust_score(row)}
