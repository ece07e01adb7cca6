# routes/rating.py
from fastapi import APIRouter, Depends
from loguru import logger

from db import getDB
from errors import ConflictError, ValidationError
from mappers import map_rating
from models.rating import RatingCreate
from routes.auth import get_current_user, same_id
from routes.notifications import create_notification
from trust import recalculate_trust_score

router = APIRouter(tags=["rating"])


def rating_notification_text(rating: int, feedback: str | None) -> str:
    stars = "★" * rating + "☆" * (5 - rating)
    text = f"You received a {rating}/5 {stars} rating."
    if feedback:
        snippet = feedback[:80] + ("…" if len(feedback) > 80 else "")
        text += f' "{snippet}"'
    return text


# ------------------------------------------------------
# POST: rate someone you worked with on a job
# ------------------------------------------------------
@router.post("")
async def create_rating(
    body: RatingCreate,
    conn=Depends(getDB),
    user: dict = Depends(get_current_user),
):
    if not body.to_user_id or not body.job_id or not body.rating:
        raise ValidationError("toUserId, jobId, and rating are required")
    if body.rating < 1 or body.rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    if body.rating != int(body.rating):
        raise ValidationError("Rating must be a whole number of stars")
    stars = int(body.rating)
    if same_id(user["id"], body.to_user_id):
        raise ValidationError("Cannot rate yourself")

    async with conn.cursor() as cur:
        # 1. One rating per (rater, ratee, job)
        await cur.execute(
            """
            SELECT 1 FROM ratings
            WHERE from_user_id = %s AND to_user_id = %s AND job_id = %s
            """,
            (user["id"], body.to_user_id, body.job_id),
        )
        if await cur.fetchone():
            raise ConflictError("You have already rated this person for this job")

        # 2. Store it
        await cur.execute(
            """
            INSERT INTO ratings (job_id, application_id, from_user_id, to_user_id, rating, feedback)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (body.job_id, body.application_id, user["id"], body.to_user_id, stars, body.feedback),
        )
        new_rating = await cur.fetchone()

    # 3. Recompute the ratee's trust score from everything they've received
    trust = await recalculate_trust_score(conn, body.to_user_id)
    logger.info(f"Rating {new_rating['id']}: {body.to_user_id} now {trust['score']} ({trust['level']})")

    # 4. Let them know
    await create_notification(
        conn,
        body.to_user_id,
        "rating",
        "New Rating Received",
        rating_notification_text(stars, body.feedback),
        link="/settings",
    )

    return {
        "data": {
            "rating": map_rating(new_rating),
            "trustScore": {
                "newScore": trust["score"],
                "newLevel": trust["level"],
                "averageRating": round(trust["averageRating"], 1),
                "totalRatings": trust["totalRatings"],
            },
        }
    }


# ------------------------------------------------------
# GET: ratings received (?userId=) or given (?fromUserId=)
# ------------------------------------------------------
@router.get("")
async def list_ratings(
    userId: str | None = None,
    fromUserId: str | None = None,
    conn=Depends(getDB),
):
    if not userId and not fromUserId:
        raise ValidationError("userId or fromUserId is required")

    clauses, params = [], []
    if userId:
        clauses.append("to_user_id = %s")
        params.append(userId)
    if fromUserId:
        clauses.append("from_user_id = %s")
        params.append(fromUserId)

    async with conn.cursor() as cur:
        await cur.execute(
            f"SELECT * FROM ratings WHERE {' AND '.join(clauses)} ORDER BY created_at DESC",
            params,
        )
        rows = await cur.fetchall()

    return {"data": [map_rating(r) for r in rows]}
