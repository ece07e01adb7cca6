# routes/ai.py
import json

from fastapi import APIRouter, Depends, Request
from loguru import logger
from psycopg.types.json import Jsonb
from starlette.datastructures import UploadFile

from ai_providers import generate_text
from assessment import add_verified_skill, analyze_assessment, generate_mcqs, generate_video_question
from db import getDB
from errors import AuthorizationError, MarketplaceError, ResourceNotFoundError, ValidationError
from models.ai import AnalyzeAssessmentRequest, GenerateRequest, SkillAssessmentRequest, TranscribeRequest
from routes.auth import get_current_admin_user, get_current_user, get_current_worker_user, is_admin, same_id
from transcription import download_media, extension_for, transcribe_audio
from utils import decode_base64_payload, read_assessment_video, save_assessment_video, save_assessment_video_bytes

router = APIRouter(tags=["ai"])


# =========================================================
# 1. Text generation
# =========================================================
@router.post("/gemini")
@router.post("/generate")
async def generate(body: GenerateRequest, user: dict = Depends(get_current_user)):
    prompt = (body.prompt or "").strip()
    if not prompt:
        raise ValidationError("prompt is required")
    text = await generate_text(prompt, body.max_tokens, body.system_instruction)
    return {"text": text}


@router.post("/skill-assessment")
async def skill_assessment(body: SkillAssessmentRequest, user: dict = Depends(get_current_user)):
    skill = (body.skill or "").strip()
    if not skill:
        raise ValidationError("skill is required")
    return {"questions": await generate_mcqs(skill)}


@router.post("/skill-question")
async def skill_question(body: SkillAssessmentRequest, user: dict = Depends(get_current_user)):
    skill = (body.skill or "").strip()
    if not skill:
        raise ValidationError("skill is required")
    return await generate_video_question(skill)


# =========================================================
# 2. Video skill assessment
# =========================================================
def _loads(value, default=None):
    if not isinstance(value, str):
        return value if value is not None else default
    try:
        return json.loads(value)
    except ValueError:
        return value


async def _read_submission(request: Request) -> tuple[dict, UploadFile | None]:
    """Multipart (video as a file) or JSON (video as base64/data URL)."""
    if "multipart/form-data" in request.headers.get("content-type", ""):
        form = await request.form()
        video = form.get("video")
        fields = {
            "workerId": form.get("workerId"),
            "skill": form.get("skill"),
            "question": _loads(form.get("question") or "{}"),
            "expectedAnswer": form.get("expectedAnswer") or "",
            "language": form.get("language") or "en",
            "videoDurationMs": int(form.get("videoDurationMs") or 0),
            "audioMetrics": _loads(form.get("audioMetrics") or "null"),
            "videoBase64": form.get("videoBase64") or "",
        }
        return fields, video if isinstance(video, UploadFile) else None

    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body too large or malformed. Video may exceed size limit.")
    return {
        "workerId": body.get("workerId"),
        "skill": body.get("skill"),
        "question": _loads(body.get("question")),
        "expectedAnswer": body.get("expectedAnswer") or "",
        "language": body.get("language") or "en",
        "videoDurationMs": int(body.get("videoDurationMs") or 0),
        "audioMetrics": _loads(body.get("audioMetrics")),
        "videoBase64": body.get("videoBase64") or "",
    }, None


@router.post("/skill-video-submit")
async def skill_video_submit(
    request: Request,
    user: dict = Depends(get_current_worker_user),
    conn=Depends(getDB),
):
    fields, video = await _read_submission(request)
    worker_id, skill, question = fields["workerId"], fields["skill"], fields["question"]

    if not worker_id or not skill or not question or not (video or fields["videoBase64"]):
        raise ValidationError("workerId, skill, question, and videoBase64 are required")
    if not (same_id(worker_id, user["id"]) or is_admin(user)):
        raise AuthorizationError("You can only submit assessments for yourself")

    # --- Store the recording ---
    if video is not None:
        video_url, data = await save_assessment_video(video, worker_id)
        mime_type = video.content_type or "video/webm"
    else:
        try:
            data, mime_type = decode_base64_payload(fields["videoBase64"])
        except ValueError:
            raise ValidationError("videoBase64 is not valid base64")
        mime_type = mime_type or "video/webm"
        filename = f"{skill.replace(' ', '_')}.{extension_for(mime_type)}"
        video_url = await save_assessment_video_bytes(data, worker_id, filename)

    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO skill_assessments (
                worker_id, skill, question, expected_answer, video_url, video_duration_ms, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, 'pending')
            RETURNING id
            """,
            (
                worker_id, skill, Jsonb(question), fields["expectedAnswer"],
                video_url, fields["videoDurationMs"],
            ),
        )
        assessment_id = (await cur.fetchone())["id"]

    # --- Analyse now so the worker gets a verdict in the same response ---
    verdict, reason, analysis = "pending", "", None
    try:
        analysis = await analyze_assessment(
            conn, assessment_id, (data, mime_type), skill,
            fields["expectedAnswer"], fields["audioMetrics"], question, fields["language"],
        )
        verdict = analysis["auto_decision"]
        reason = analysis["auto_decision_reason"]
    except MarketplaceError as e:
        logger.warning(f"[skill-video-submit] Analysis failed for {assessment_id}: {e.message}")
        reason = "Analysis pipeline error, needs manual review."

    if verdict == "approved":
        async with conn.cursor() as cur:
            await add_verified_skill(cur, worker_id, skill)
        message = "Skill verified successfully!"
    elif verdict == "rejected":
        message = f"Skill assessment not passed: {reason}"
    else:
        message = "Assessment submitted, awaiting review."

    return {
        "success": True,
        "assessmentId": assessment_id,
        "verdict": verdict,
        "verdictReason": reason,
        "score": analysis["confidence_score"] if analysis else None,
        "message": message,
    }


@router.post("/analyze-assessment")
async def reanalyze_assessment(
    body: AnalyzeAssessmentRequest,
    admin: dict = Depends(get_current_admin_user),
    conn=Depends(getDB),
):
    """Re-run the automatic check on a stored submission, e.g. after a network failure left it pending."""
    async with conn.cursor() as cur:
        await cur.execute("SELECT * FROM skill_assessments WHERE id = %s", (body.assessment_id,))
        row = await cur.fetchone()
    if not row:
        raise ResourceNotFoundError("Assessment", body.assessment_id)

    video_url = body.video_url or row["video_url"] or ""
    media = await read_assessment_video(video_url)
    if media is None and video_url.startswith(("http://", "https://", "data:")):
        media = await download_media(video_url)

    analysis = await analyze_assessment(
        conn, row["id"], media, row["skill"], row.get("expected_answer") or "",
        body.audio_metrics, row["question"], body.language or "en",
    )
    if analysis["auto_decision"] == "approved":
        async with conn.cursor() as cur:
            await add_verified_skill(cur, row["worker_id"], row["skill"])

    return {
        "success": True,
        "analysis": analysis,
        "autoDecision": analysis["auto_decision"],
        "autoDecisionReason": analysis["auto_decision_reason"],
    }


# =========================================================
# 3. Transcription
# =========================================================
@router.post("/transcribe-audio")
async def transcribe(body: TranscribeRequest, user: dict = Depends(get_current_user)):
    if not body.video_url and not body.video_base64:
        raise ValidationError("Either videoUrl or videoBase64 is required")

    if body.video_base64:
        try:
            data, mime_type = decode_base64_payload(body.video_base64)
        except ValueError:
            raise ValidationError("videoBase64 is not valid base64")
        mime_type = mime_type or "video/webm"
    else:
        data, mime_type = await download_media(body.video_url)

    result = await transcribe_audio(data, f"recording.{extension_for(mime_type)}", mime_type, body.language)
    return {"success": True, **result}
