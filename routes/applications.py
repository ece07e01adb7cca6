# routes/applications.py
import psycopg
from fastapi import APIRouter, Depends
from loguru import logger

import mailer
from db import getDB
from errors import AuthorizationError, ConflictError, ResourceNotFoundError, ValidationError
from mappers import map_application
from models.job import ApplicationCreate, ApplicationUpdate
from routes.auth import get_current_user, get_current_worker_user, is_admin, same_id
from routes.notifications import create_notification

router = APIRouter(tags=["applications"])


# =========================================================
# 1. Listing: workers see their own, employers see their jobs' applicants
# =========================================================
@router.get("")
async def list_applications(
    workerId: str | None = None,
    jobId: str | None = None,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    clauses, params = [], []
    if workerId:
        clauses.append("a.worker_id = %s")
        params.append(workerId)
    if jobId:
        clauses.append("a.job_id = %s")
        params.append(jobId)
    if not is_admin(user):
        clauses.append("(a.worker_id = %s OR j.employer_id = %s)")
        params.extend([user["id"], user["id"]])
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT a.* FROM applications a
            JOIN jobs j ON j.id = a.job_id
            {where}
            ORDER BY a.created_at DESC
            """,
            params,
        )
        rows = await cur.fetchall()
    return {"data": [map_application(r) for r in rows]}


# =========================================================
# 2. Apply
# =========================================================
@router.post("", status_code=201)
async def apply_to_job(
    body: ApplicationCreate,
    user: dict = Depends(get_current_worker_user),
    conn=Depends(getDB),
):
    worker_id = body.worker_id if is_admin(user) and body.worker_id else user["id"]

    async with conn.cursor() as cur:
        await cur.execute("SELECT id, employer_id, title, status FROM jobs WHERE id = %s", (body.job_id,))
        job = await cur.fetchone()
        if not job:
            raise ResourceNotFoundError("Job", body.job_id)
        if job["status"] != "active":
            raise ValidationError("This job is no longer accepting applications")

        try:
            async with conn.transaction():
                await cur.execute(
                    """
                    INSERT INTO applications (job_id, worker_id, status, match_score, cover_message, cover_letter)
                    VALUES (%s, %s, 'pending', %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        body.job_id, worker_id, body.match_score,
                        body.cover_message or body.cover_letter, body.cover_letter,
                    ),
                )
                application = await cur.fetchone()
        except psycopg.errors.UniqueViolation:
            raise ConflictError("Already applied")

        await cur.execute(
            "UPDATE jobs SET application_count = application_count + 1 WHERE id = %s",
            (body.job_id,),
        )

    await create_notification(
        conn, job["employer_id"], "application",
        "New Application",
        f"{user['full_name']} applied for {job['title']}.",
        link=f"/employer/jobs/{job['id']}",
    )
    return {"data": map_application(application)}


# =========================================================
# 3. Status changes
# =========================================================
@router.patch("/{application_id}")
async def update_application(
    application_id: str,
    body: ApplicationUpdate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    """
    The worker can edit their own application; the job's employer (or an
    admin) moves it through pending -> accepted/rejected -> completed.
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT a.*, j.employer_id, j.title AS job_title
            FROM applications a JOIN jobs j ON j.id = a.job_id
            WHERE a.id = %s
            """,
            (application_id,),
        )
        application = await cur.fetchone()
    if not application:
        raise ResourceNotFoundError("Application", application_id)

    is_worker = same_id(application["worker_id"], user["id"])
    is_employer = same_id(application["employer_id"], user["id"])
    if not (is_worker or is_employer or is_admin(user)):
        raise AuthorizationError()

    changes = body.changes()
    if not changes:
        return {"data": map_application(application)}

    assignments = ", ".join(f"{column} = %s" for column in changes)
    async with conn.cursor() as cur:
        await cur.execute(
            f"UPDATE applications SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING *",
            [*changes.values(), application_id],
        )
        updated = await cur.fetchone()

    new_status = changes.get("status")
    if new_status in ("accepted", "rejected") and new_status != application["status"]:
        await notify_status_change(conn, application, new_status)

    return {"data": map_application(updated)}


async def notify_status_change(conn, application: dict, new_status: str):
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT w.full_name, w.email, COALESCE(e.company_name, e.full_name) AS employer_name
            FROM users w, users e
            WHERE w.id = %s AND e.id = %s
            """,
            (application["worker_id"], application["employer_id"]),
        )
        people = await cur.fetchone()

    title = "Application Accepted" if new_status == "accepted" else "Application Update"
    await create_notification(
        conn, application["worker_id"], "application", title,
        f"Your application for {application['job_title']} was {new_status}.",
        link="/worker/applications",
    )

    if people and people.get("email"):
        result = await mailer.send_application_status_email(
            people["email"], people["full_name"], application["job_title"],
            people["employer_name"], new_status,
        )
        if not result["success"]:
            logger.warning(f"Status email for application {application['id']} not sent: {result.get('error')}")
