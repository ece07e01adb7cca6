# routes/notifications.py
from fastapi import APIRouter, Depends
from psycopg_pool import AsyncConnectionPool

from db import getDB
from errors import ResourceNotFoundError
from mappers import map_notification
from routes.auth import get_current_user

router = APIRouter(tags=["notifications"])


async def create_notification(conn, user_id, type: str, title: str, message: str, link: str | None = None):
    """In-app notification. Called from other routes inside their own transaction."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO notifications (user_id, type, title, message, link)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (user_id, type, title, message, link),
        )


@router.get("")
async def list_notifications(user: dict = Depends(get_current_user), conn: AsyncConnectionPool = Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT * FROM notifications WHERE user_id = %s ORDER BY created_at DESC LIMIT 50",
            (user["id"],),
        )
        rows = await cur.fetchall()

    notifications = [map_notification(r) for r in rows]
    return {"data": notifications, "unreadCount": sum(1 for n in notifications if not n["isRead"])}


@router.patch("/{notification_id}")
async def mark_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE notifications SET is_read = TRUE WHERE id = %s AND user_id = %s RETURNING *",
            (notification_id, user["id"]),
        )
        row = await cur.fetchone()
    if not row:
        raise ResourceNotFoundError("Notification", notification_id)
    return {"data": map_notification(row)}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user: dict = Depends(get_current_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM notifications WHERE id = %s AND user_id = %s RETURNING id",
            (notification_id, user["id"]),
        )
        row = await cur.fetchone()
    if not row:
        raise ResourceNotFoundError("Notification", notification_id)
    return {"success": True}


@router.delete("")
async def mark_all_read(user: dict = Depends(get_current_user), conn: AsyncConnectionPool = Depends(getDB)):
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE notifications SET is_read = TRUE WHERE user_id = %s AND is_read = FALSE",
            (user["id"],),
        )
        updated = cur.rowcount
    return {"success": True, "updated": updated}
