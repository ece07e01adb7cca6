# routes/admin.py
from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import Field

from assessment import add_verified_skill
from db import getDB
from errors import ResourceNotFoundError, ValidationError
from models import CamelModel
from models.rating import PenalizeRequest
from routes.auth import get_current_admin_user
from routes.notifications import create_notification
from trust import SUSPENSION_PENALTY, apply_penalty

router = APIRouter(tags=["admin"])


class AssessmentReview(CamelModel):
    status: str = Field(pattern="^(approved|rejected)$")
    review_notes: str | None = None


# =========================================================
# 1. Penalize the user behind a report
# =========================================================
@router.post("/penalize")
async def penalize(
    body: PenalizeRequest,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    """
    Knock points off (or zero out, for a suspension) the trust score of the
    reported user, count a complaint, and close the report.
    """
    penalty = body.penalty
    if not body.report_id or penalty <= 0:
        raise ValidationError("reportId and penalty are required")

    suspended = penalty >= SUSPENSION_PENALTY
    resolution = (body.resolution or "").strip() or (
        "Account suspended by admin." if suspended
        else f"Trust score penalized by {penalty} points by admin."
    )

    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT reported_id, reported_user_id FROM reports WHERE id = %s",
            (body.report_id,),
        )
        report = await cur.fetchone()
        if not report:
            raise ResourceNotFoundError("Report", body.report_id)

        reported_user_id = report["reported_id"] or report["reported_user_id"]
        if not reported_user_id:
            raise ValidationError("No reported user on this report")

        await cur.execute(
            "SELECT score, complaint_count FROM trust_scores WHERE user_id = %s",
            (reported_user_id,),
        )
        ts = await cur.fetchone()
        current_score = int(ts["score"]) if ts else 50
        complaints = (int(ts["complaint_count"]) if ts else 0) + 1

        new_score, new_level = apply_penalty(current_score, penalty)

        # A. trust_scores: other aggregates untouched
        await cur.execute(
            """
            INSERT INTO trust_scores (user_id, score, level, complaint_count, updated_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (user_id) DO UPDATE SET
                score = EXCLUDED.score,
                level = EXCLUDED.level,
                complaint_count = EXCLUDED.complaint_count,
                updated_at = NOW()
            """,
            (reported_user_id, new_score, new_level, complaints),
        )
        # B. users mirror
        await cur.execute(
            "UPDATE users SET trust_score = %s, trust_level = %s WHERE id = %s",
            (new_score, new_level, reported_user_id),
        )
        # C. close the report
        await cur.execute(
            "UPDATE reports SET status = 'resolved', resolution = %s, resolved_at = NOW() WHERE id = %s",
            (resolution, body.report_id),
        )

    if suspended:
        title = "Account Suspended"
        label = "Your account has been suspended due to a serious violation."
    else:
        title = "Trust Score Penalty"
        label = f"Your trust score has been reduced by {penalty} points due to a reported violation."
    await create_notification(
        conn,
        reported_user_id,
        "system",
        title,
        f"{label} New score: {new_score}/100. Contact support if you believe this is an error.",
        link="/settings",
    )

    logger.warning(f"Admin {admin['id']} penalized {reported_user_id} by {penalty}: score {current_score} -> {new_score}")
    return {"data": {"newScore": new_score, "newLevel": new_level, "newComplaintCount": complaints}}


# =========================================================
# 2. Skill video review queue
# =========================================================
@router.get("/skill-assessments")
async def list_skill_assessments(
    status: str | None = "pending",
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    async with conn.cursor() as cur:
        if status:
            await cur.execute(
                "SELECT * FROM skill_assessments WHERE status = %s ORDER BY created_at DESC",
                (status,),
            )
        else:
            await cur.execute("SELECT * FROM skill_assessments ORDER BY created_at DESC")
        rows = await cur.fetchall()

    return {"data": [
        {
            "id": r["id"],
            "workerId": r["worker_id"],
            "skill": r["skill"],
            "question": r["question"],
            "videoUrl": r["video_url"],
            "status": r["status"],
            "analysis": r.get("analysis"),
            "reviewNotes": r.get("review_notes"),
            "createdAt": r["created_at"],
            "reviewedAt": r.get("reviewed_at"),
        }
        for r in rows
    ]}


@router.patch("/skill-assessments/{assessment_id}")
async def review_skill_assessment(
    assessment_id: str,
    body: AssessmentReview,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    """Manual override for assessments the automatic check left pending."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE skill_assessments
            SET status = %s, review_notes = %s, reviewed_at = NOW()
            WHERE id = %s
            RETURNING id, worker_id, skill, status
            """,
            (body.status, body.review_notes, assessment_id),
        )
        row = await cur.fetchone()
        if not row:
            raise ResourceNotFoundError("Assessment", assessment_id)

        if body.status == "approved":
            await add_verified_skill(cur, row["worker_id"], row["skill"])

    verdict = "verified" if body.status == "approved" else "not verified"
    await create_notification(
        conn, row["worker_id"], "skill",
        f"Skill {verdict}: {row['skill']}",
        body.review_notes or f"Your {row['skill']} video answer has been reviewed.",
        link="/worker/profile",
    )
    return {"data": {"id": row["id"], "status": row["status"]}}
