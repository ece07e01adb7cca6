"""
Trust score: a 0-100 reputation number per user.

compute_trust_score() is the pure formula. recalculate_trust_score() gathers
its inputs from the database and writes the result to both trust_scores and
users. Admin penalties bypass the formula (apply_penalty).
"""
import math

BASE_SCORE = 50
SUSPENSION_PENALTY = 9999


def round_half_up(value: float) -> int:
    """Rounds .5 up (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))


def trust_level_for(score: int) -> str:
    if score >= 80:
        return "trusted"
    if score >= 60:
        return "active"
    return "basic"


def compute_trust_score(
    average_rating: float,
    total_ratings: int,
    completion_rate: float,
    complaint_count: int,
    successful_payments: int,
) -> tuple[int, str]:
    """
    Blend rating, completion rate, payments and complaints into (score, level).

    - rating:      ((avg - 1) / 4) * 30, only once the user has ratings (0..30)
    - completion:  completion_rate (0..100) * 0.25                       (0..25)
    - payments:    2 per successful payment, capped at 15
    - complaints:  -8 each
    """
    rating_bonus = ((average_rating - 1) / 4) * 30 if total_ratings > 0 else 0
    completion_bonus = completion_rate * 0.25
    payment_bonus = min(successful_payments * 2, 15)
    complaint_penalty = complaint_count * 8

    raw = BASE_SCORE + rating_bonus + completion_bonus + payment_bonus - complaint_penalty
    score = round_half_up(max(0, min(100, raw)))
    return score, trust_level_for(score)


def apply_penalty(current_score: int, penalty: int) -> tuple[int, str]:
    """Admin penalty. SUSPENSION_PENALTY or more zeroes the score."""
    if penalty >= SUSPENSION_PENALTY:
        score = 0
    else:
        score = max(0, current_score - penalty)
    return score, trust_level_for(score)


async def recalculate_trust_score(conn, user_id) -> dict:
    """
    Recompute a user's score from the ratings they received and persist it.

    Completion rate is only derived for workers (completed / (accepted +
    completed) applications, 0 with none); other roles keep whatever is stored.
    Complaint count and successful payments are carried over unchanged.
    """
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT COUNT(*) AS total, COALESCE(AVG(rating), 0) AS average FROM ratings WHERE to_user_id = %s",
            (user_id,),
        )
        agg = await cur.fetchone()
        total_ratings = int(agg["total"] or 0)
        average_rating = float(agg["average"] or 0)

        await cur.execute(
            "SELECT job_completion_rate, complaint_count, successful_payments FROM trust_scores WHERE user_id = %s",
            (user_id,),
        )
        existing = await cur.fetchone() or {}
        completion_rate = float(existing.get("job_completion_rate") or 0)
        complaint_count = int(existing.get("complaint_count") or 0)
        successful_payments = int(existing.get("successful_payments") or 0)

        await cur.execute("SELECT role FROM users WHERE id = %s", (user_id,))
        user = await cur.fetchone()
        if user and user["role"] == "worker":
            await cur.execute(
                """
                SELECT
                    COUNT(*) FILTER (WHERE status = 'completed') AS completed,
                    COUNT(*) FILTER (WHERE status IN ('accepted', 'completed')) AS engaged
                FROM applications WHERE worker_id = %s
                """,
                (user_id,),
            )
            apps = await cur.fetchone()
            engaged = int(apps["engaged"] or 0)
            completion_rate = int(apps["completed"] or 0) / engaged * 100 if engaged > 0 else 0

        score, level = compute_trust_score(
            average_rating, total_ratings, completion_rate, complaint_count, successful_payments
        )

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
                average_rating = EXCLUDED.average_rating,
                total_ratings = EXCLUDED.total_ratings,
                job_completion_rate = EXCLUDED.job_completion_rate,
                updated_at = NOW()
            """,
            (
                user_id, score, level, round(average_rating, 2), total_ratings,
                round(completion_rate, 1), complaint_count, successful_payments,
            ),
        )
        await cur.execute(
            "UPDATE users SET trust_score = %s, trust_level = %s WHERE id = %s",
            (score, level, user_id),
        )

    return {
        "score": score,
        "level": level,
        "averageRating": average_rating,
        "totalRatings": total_ratings,
    }


async def record_successful_payment(conn, worker_id) -> dict:
    """Credit a released escrow payment to the worker, then recompute."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO trust_scores (user_id, successful_payments)
            VALUES (%s, 1)
            ON CONFLICT (user_id) DO UPDATE SET
                successful_payments = trust_scores.successful_payments + 1,
                updated_at = NOW()
            """,
            (worker_id,),
        )
    return await recalculate_trust_score(conn, worker_id)
