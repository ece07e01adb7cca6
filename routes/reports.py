# routes/reports.py
from fastapi import APIRouter, Depends

from db import getDB
from errors import ResourceNotFoundError, ValidationError
from mappers import map_report
from models.rating import ReportCreate, ReportUpdate
from routes.auth import get_current_admin_user, get_current_user

router = APIRouter(tags=["reports"])


@router.get("")
async def list_reports(
    status: str | None = None,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    async with conn.cursor() as cur:
        if status:
            await cur.execute("SELECT * FROM reports WHERE status = %s ORDER BY created_at DESC", (status,))
        else:
            await cur.execute("SELECT * FROM reports ORDER BY created_at DESC")
        rows = await cur.fetchall()
    return {"data": [map_report(r) for r in rows]}


@router.post("", status_code=201)
async def create_report(
    body: ReportCreate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    reason = (body.reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    reported_user_id = body.reported_user_id or body.reported_id
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO reports (
                reporter_id, reported_id, reported_user_id, reported_job_id,
                type, reason, description, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'pending')
            RETURNING *
            """,
            (
                user["id"], body.reported_id or reported_user_id, reported_user_id,
                body.reported_job_id, body.type, reason, body.description,
            ),
        )
        report = await cur.fetchone()
    return {"data": map_report(report)}


@router.patch("/{report_id}")
async def update_report(
    report_id: str,
    body: ReportUpdate,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    changes = body.changes()
    # closing a report stamps the time; reopening clears it
    if changes.get("status") in ("resolved", "dismissed"):
        stamp = ", resolved_at = NOW()"
    elif changes.get("status") == "pending":
        stamp = ", resolved_at = NULL"
    else:
        stamp = ""

    async with conn.cursor() as cur:
        if changes:
            assignments = ", ".join(f"{column} = %s" for column in changes)
            await cur.execute(
                f"UPDATE reports SET {assignments}{stamp} WHERE id = %s RETURNING *",
                [*changes.values(), report_id],
            )
        else:
            await cur.execute("SELECT * FROM reports WHERE id = %s", (report_id,))
        report = await cur.fetchone()

    if not report:
        raise ResourceNotFoundError("Report", report_id)
    return {"data": map_report(report)}
