# routes/jobs.py
from fastapi import APIRouter, Depends
from loguru import logger

from db import getDB
from errors import AuthorizationError, ResourceNotFoundError
from mappers import map_job
from models.job import JobCreate, JobUpdate
from routes.auth import get_current_employer_user, get_current_user, is_admin, same_id
from utils import haversine_km

router = APIRouter(tags=["jobs"])


async def fetch_job(conn, job_id: str) -> dict:
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM jobs WHERE id = %s", (job_id,))
        job = await cur.fetchone()
    if not job:
        raise ResourceNotFoundError("Job", job_id)
    return job


def ensure_job_owner(job: dict, user: dict):
    if not (is_admin(user) or same_id(job["employer_id"], user["id"])):
        raise AuthorizationError("Only the employer who posted this job can change it")


# =========================================================
# 1. Listing
# =========================================================
@router.get("")
async def list_jobs(
    employerId: str | None = None,
    status: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    radiusKm: float | None = None,
    conn=Depends(getDB),
):
    """
    All jobs, newest first. ``lat``/``lng``/``radiusKm`` narrow the list to
    jobs with coordinates inside the radius and add a ``distanceKm`` field.
    """
    clauses, params = [], []
    if employerId:
        clauses.append("employer_id = %s")
        params.append(employerId)
    if status:
        clauses.append("status = %s")
        params.append(status)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    async with conn.cursor() as cur:
        await cur.execute(f"SELECT * FROM jobs {where} ORDER BY created_at DESC", params)
        rows = await cur.fetchall()

    jobs = [map_job(r) for r in rows]
    if lat is None or lng is None:
        return {"data": jobs}

    nearby = []
    for job in jobs:
        if job["latitude"] is None or job["longitude"] is None:
            continue
        distance = haversine_km(lat, lng, job["latitude"], job["longitude"])
        if radiusKm is None or distance <= radiusKm:
            nearby.append({**job, "distanceKm": round(distance, 1)})
    nearby.sort(key=lambda j: j["distanceKm"])
    return {"data": nearby}


# =========================================================
# 2. Create
# =========================================================
@router.post("", status_code=201)
async def create_job(
    body: JobCreate,
    user: dict = Depends(get_current_employer_user),
    conn=Depends(getDB),
):
    # Admins may post on behalf of an employer; everyone else posts as themselves
    employer_id = body.employer_id if is_admin(user) and body.employer_id else user["id"]
    pay_amount = body.pay_amount if body.pay_amount is not None else body.pay
    timing = body.timing or body.duration or "Flexible"

    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO jobs (
                employer_id, title, description, job_type, category, required_skills,
                location, latitude, longitude, pay, pay_amount, pay_type,
                payment_status, escrow_required, escrow_amount,
                timing, duration, experience_required, requirements, benefits,
                slots, start_date, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                employer_id, body.title, body.description,
                body.job_type or ("gig" if body.pay_type == "fixed" else "part-time"),
                body.category, body.required_skills,
                body.location, body.latitude, body.longitude,
                body.pay, pay_amount, body.pay_type,
                # escrow-backed jobs lock the pay up front; the escrow row itself is created separately
                "locked" if body.escrow_required else "pending",
                body.escrow_required,
                pay_amount if body.escrow_required else None,
                timing, body.duration or timing, body.experience_required or "entry",
                body.requirements, body.benefits,
                body.slots, body.start_date, body.status,
            ),
        )
        job = await cur.fetchone()

    logger.info(f"Job {job['id']} posted by {employer_id} (escrow={body.escrow_required})")
    return {"data": map_job(job)}


# =========================================================
# 3. Single job
# =========================================================
@router.get("/{job_id}")
async def get_job(job_id: str, conn=Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE jobs SET views = views + 1 WHERE id = %s RETURNING *",
            (job_id,),
        )
        job = await cur.fetchone()
    if not job:
        raise ResourceNotFoundError("Job", job_id)
    return {"data": map_job(job)}


@router.patch("/{job_id}")
async def update_job(
    job_id: str,
    body: JobUpdate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    job = await fetch_job(conn, job_id)
    ensure_job_owner(job, user)

    changes = body.changes()
    if not changes:
        return {"data": map_job(job)}

    # keys come from JobUpdate's field names, never from raw client input
    assignments = ", ".join(f"{column} = %s" for column in changes)
    async with conn.cursor() as cur:
        await cur.execute(
            f"UPDATE jobs SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING *",
            [*changes.values(), job_id],
        )
        updated = await cur.fetchone()
    return {"data": map_job(updated)}


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    job = await fetch_job(conn, job_id)
    ensure_job_owner(job, user)
    async with conn.cursor() as cur:
        await cur.execute("DELETE FROM jobs WHERE id = %s", (job_id,))
    return {"success": True}
