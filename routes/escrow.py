# routes/escrow.py
from decimal import Decimal

from fastapi import APIRouter, Depends
from loguru import logger

from config import PLATFORM_FEE_PERCENT
from db import getDB
from errors import AuthorizationError, ConflictError, ResourceNotFoundError, ValidationError
from mappers import map_escrow
from models.chat import EscrowCreate, EscrowUpdate
from routes.auth import get_current_user, is_admin, same_id
from routes.notifications import create_notification
from trust import record_successful_payment

router = APIRouter(tags=["escrow"])

# Allowed moves: pending -> held, held -> released | refunded
TRANSITIONS = {
    "pending": {"held"},
    "held": {"released", "refunded"},
    "released": set(),
    "refunded": set(),
}


def platform_commission(amount) -> Decimal:
    return (Decimal(str(amount)) * Decimal(str(PLATFORM_FEE_PERCENT)) / 100).quantize(Decimal("0.01"))


@router.get("")
async def list_escrow(user: dict = Depends(get_current_user), conn=Depends(getDB)):
    async with conn.cursor() as cur:
        if is_admin(user):
            await cur.execute("SELECT * FROM escrow_transactions ORDER BY created_at DESC")
        else:
            await cur.execute(
                """
                SELECT * FROM escrow_transactions
                WHERE employer_id = %s OR worker_id = %s
                ORDER BY created_at DESC
                """,
                (user["id"], user["id"]),
            )
        rows = await cur.fetchall()
    return {"data": [map_escrow(r) for r in rows]}


@router.post("", status_code=201)
async def create_escrow(
    body: EscrowCreate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    if not body.job_id or not body.employer_id or not body.worker_id:
        raise ValidationError("jobId, employerId and workerId are required")
    if not (is_admin(user) or same_id(body.employer_id, user["id"])):
        raise AuthorizationError("Only the employer can fund escrow")
    if body.amount < 0:
        raise ValidationError("amount must not be negative")

    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO escrow_transactions (job_id, employer_id, worker_id, amount, status)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
            """,
            (body.job_id, body.employer_id, body.worker_id, body.amount, body.status),
        )
        row = await cur.fetchone()
    return {"data": map_escrow(row)}


@router.patch("/{transaction_id}")
async def update_escrow(
    transaction_id: str,
    body: EscrowUpdate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM escrow_transactions WHERE id = %s", (transaction_id,))
        tx = await cur.fetchone()
    if not tx:
        raise ResourceNotFoundError("Escrow transaction", transaction_id)

    participant = same_id(tx["employer_id"], user["id"]) or same_id(tx["worker_id"], user["id"])
    if not (participant or is_admin(user)):
        raise AuthorizationError()

    new_status = body.status
    if new_status == tx["status"]:
        return {"data": map_escrow(tx)}
    if new_status not in TRANSITIONS[tx["status"]]:
        raise ValidationError(f"Cannot move escrow from {tx['status']} to {new_status}")
    # only the paying side (or an admin) can let money go
    if new_status == "released" and not (same_id(tx["employer_id"], user["id"]) or is_admin(user)):
        raise AuthorizationError("Only the employer can release payment")

    # the status read above must still hold; a concurrent transition leaves no row
    async with conn.cursor() as cur:
        if new_status == "released":
            await cur.execute(
                """
                UPDATE escrow_transactions
                SET status = 'released', commission = %s, released_at = NOW()
                WHERE id = %s AND status = %s RETURNING *
                """,
                (platform_commission(tx["amount"]), transaction_id, tx["status"]),
            )
        elif new_status == "refunded":
            await cur.execute(
                """
                UPDATE escrow_transactions SET status = 'refunded', refunded_at = NOW()
                WHERE id = %s AND status = %s RETURNING *
                """,
                (transaction_id, tx["status"]),
            )
        else:
            await cur.execute(
                "UPDATE escrow_transactions SET status = %s WHERE id = %s AND status = %s RETURNING *",
                (new_status, transaction_id, tx["status"]),
            )
        updated = await cur.fetchone()
        if not updated:
            raise ConflictError("Escrow transaction was updated by another request. Reload and try again.")

        if new_status in ("released", "refunded"):
            await cur.execute(
                "UPDATE jobs SET payment_status = %s, updated_at = NOW() WHERE id = %s",
                (new_status, tx["job_id"]),
            )

    if new_status == "released":
        await record_successful_payment(conn, tx["worker_id"])
        payout = Decimal(str(updated["amount"])) - Decimal(str(updated["commission"]))
        await create_notification(
            conn, tx["worker_id"], "payment", "Payment Released",
            f"₹{payout} has been released to you.",
            link="/worker/earnings",
        )
        logger.info(f"Escrow {transaction_id} released: amount={updated['amount']} commission={updated['commission']}")

    return {"data": map_escrow(updated)}
