# routes/chat.py
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from chat_filter import filter_chat_message, mask_sensitive_content
from config import MAX_CHAT_MESSAGE_LENGTH
from db import getDB
from errors import AuthorizationError, ResourceNotFoundError, ValidationError
from mappers import map_conversation, map_message
from models.chat import ConversationCreate, MessageCreate
from routes.auth import get_current_user, is_admin, same_id

router = APIRouter(tags=["chat"])


async def load_conversation(conn, conversation_id: str, user: dict) -> dict:
    """404 if missing, 403 unless the caller takes part in it (admins may read any)."""
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM chat_conversations WHERE id = %s", (conversation_id,))
        conversation = await cur.fetchone()
    if not conversation:
        raise ResourceNotFoundError("Conversation", conversation_id)
    if not any(same_id(p, user["id"]) for p in conversation["participants"] or []) and not is_admin(user):
        raise AuthorizationError("You are not part of this conversation")
    return conversation


# =========================================================
# 1. Conversations
# =========================================================
@router.get("/conversations")
async def list_conversations(
    applicationId: str | None = None,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    params = [user["id"]]
    extra = ""
    if applicationId:
        extra = "AND c.application_id = %s"
        params.append(applicationId)

    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT c.*, (
                SELECT row_to_json(m) FROM (
                    SELECT id, sender_id, message, created_at, read
                    FROM chat_messages WHERE conversation_id = c.id
                    ORDER BY created_at DESC LIMIT 1
                ) m
            ) AS last_message
            FROM chat_conversations c
            WHERE %s::uuid = ANY(c.participants) {extra}
            ORDER BY c.updated_at DESC
            """,
            params,
        )
        rows = await cur.fetchall()
    return {"data": [map_conversation(r) for r in rows]}


@router.post("/conversations", status_code=201)
async def create_conversation(
    body: ConversationCreate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    participants = list(dict.fromkeys(str(p) for p in body.participants))
    if len(participants) < 2:
        raise ValidationError("A conversation needs at least 2 participants")
    if str(user["id"]) not in participants and not is_admin(user):
        raise AuthorizationError("You must be a participant")

    async with conn.cursor() as cur:
        # one thread per application
        if body.application_id:
            await cur.execute(
                "SELECT * FROM chat_conversations WHERE application_id = %s",
                (body.application_id,),
            )
            existing = await cur.fetchone()
            if existing:
                return JSONResponse(status_code=200, content={"data": jsonable_encoder(map_conversation(existing))})

        await cur.execute(
            """
            INSERT INTO chat_conversations (participants, worker_id, employer_id, job_id, application_id)
            VALUES (%s::uuid[], %s, %s, %s, %s)
            RETURNING *
            """,
            (participants, body.worker_id, body.employer_id, body.job_id, body.application_id),
        )
        conversation = await cur.fetchone()
    return {"data": map_conversation(conversation)}


# =========================================================
# 2. Messages
# =========================================================
@router.get("/messages")
async def list_messages(
    conversationId: str,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    await load_conversation(conn, conversationId, user)

    async with conn.cursor() as cur:
        # opening the thread reads everything the other side sent
        await cur.execute(
            """
            UPDATE chat_messages SET read = TRUE
            WHERE conversation_id = %s AND sender_id <> %s AND read = FALSE
            """,
            (conversationId, user["id"]),
        )
        await cur.execute(
            "SELECT * FROM chat_messages WHERE conversation_id = %s ORDER BY created_at ASC",
            (conversationId,),
        )
        rows = await cur.fetchall()
    return {"data": [map_message(r) for r in rows]}


@router.post("/messages", status_code=201)
async def send_message(
    body: MessageCreate,
    user: dict = Depends(get_current_user),
    conn=Depends(getDB),
):
    if body.sender_id and not same_id(body.sender_id, user["id"]):
        raise AuthorizationError("You can only send messages as yourself")

    text = (body.message or "").strip()
    if not text and not body.attachment:
        raise ValidationError("message is required")
    if len(text) > MAX_CHAT_MESSAGE_LENGTH:
        raise ValidationError(f"Message is too long (max {MAX_CHAT_MESSAGE_LENGTH} characters)")

    conversation = await load_conversation(conn, body.conversation_id, user)
    if not any(same_id(p, user["id"]) for p in conversation["participants"]):
        raise AuthorizationError("You are not part of this conversation")

    verdict = filter_chat_message(text)
    if verdict.blocked:
        logger.info(f"Blocked chat message from {user['id']} ({verdict.category})")
        return JSONResponse(
            status_code=400,
            content={"error": verdict.reason, "blocked": True, "category": verdict.category},
        )

    attachment = body.attachment
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO chat_messages (
                conversation_id, sender_id, message, read,
                attachment_url, attachment_name, attachment_type, attachment_size
            )
            VALUES (%s, %s, %s, FALSE, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                body.conversation_id, user["id"], mask_sensitive_content(text),
                attachment.url if attachment else None,
                attachment.name if attachment else None,
                attachment.type if attachment else None,
                attachment.size if attachment else None,
            ),
        )
        message = await cur.fetchone()
        await cur.execute(
            "UPDATE chat_conversations SET updated_at = NOW() WHERE id = %s",
            (body.conversation_id,),
        )
    return {"data": map_message(message)}
