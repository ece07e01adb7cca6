"""
Skill checks for workers.

Two flows live here:

* ``generate_mcqs``: five multiple-choice questions for a claimed skill.
* ``analyze_assessment``: the video-answer pipeline. It scores client-side
  audio metrics, transcribes the recording with Whisper, asks the LLM whether
  the speech is original and whether the answer is right, then makes an
  automatic approve / reject / pending decision and stores it on the
  ``skill_assessments`` row.
"""
import json
import re

from loguru import logger
from psycopg.types.json import Jsonb

from ai_providers import generate_text
from errors import MarketplaceError, UpstreamServiceError
from transcription import extension_for, is_network_error, transcribe_audio
from trust import round_half_up

MCQ_COUNT = 5

MCQ_SYSTEM_PROMPT = """You are a skill assessment question generator for HyperLocal, India's hyperlocal job platform for blue-collar and gig workers.

Generate exactly 5 multiple-choice questions (MCQs) to assess practical knowledge of the given skill.

Rules:
- Questions must be practical and relevant to real-world Indian blue-collar/gig work contexts
- Each question must have exactly 4 options labeled A, B, C, D
- Exactly one option per question must be correct
- Difficulty: 2 easy, 2 medium, 1 hard
- Questions should test PRACTICAL knowledge, not theory
- Keep language simple, the test-taker may not be highly educated

Return ONLY a valid JSON array with this exact structure, no markdown, no code fences:
[
  {
    "question": "...",
    "options": { "A": "...", "B": "...", "C": "...", "D": "..." },
    "correct": "A",
    "difficulty": "easy"
  }
]"""

ORIGINALITY_SYSTEM_PROMPT = (
    "You are an expert linguist specializing in detecting scripted vs spontaneous speech "
    "across English, Hindi, and Telugu. Analyze transcribed audio carefully. Return ONLY JSON."
)
CORRECTNESS_SYSTEM_PROMPT = (
    "You are a practical skill assessor for workers in India. You understand English, Hindi, "
    "and Telugu. Judge answers on demonstration of real knowledge across any language. Return ONLY JSON."
)

# A non-original verdict only counts once the model is this sure
ORIGINALITY_REJECT_CONFIDENCE = 70
APPROVE_SCORE = 50
BORDERLINE_SCORE = 40


# =========================================================
# 1. Parsing model output
# =========================================================
def extract_json(text: str):
    """Parse a JSON array out of model output, tolerating text around it."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        pass
    match = re.search(r"\[[\s\S]*\]", text or "")
    if match:
        try:
            return json.loads(match.group(0))
        except ValueError:
            pass
    return None


def parse_json_object(text: str, fallback: dict) -> dict:
    """Parse a JSON object, unwrapping a ```json fence if the model added one."""
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", text or "")
    clean = fenced.group(1).strip() if fenced else (text or "").strip()
    try:
        parsed = json.loads(clean)
    except ValueError:
        return dict(fallback)
    return parsed if isinstance(parsed, dict) else dict(fallback)


def build_mcqs(parsed) -> list[dict]:
    return [
        {
            "id": i + 1,
            "question": str(q.get("question") or ""),
            "options": q.get("options"),
            "correct": str(q.get("correct") or "A"),
            "difficulty": str(q.get("difficulty") or "medium"),
        }
        for i, q in enumerate(parsed[:MCQ_COUNT])
    ]


async def generate_mcqs(skill: str) -> list[dict]:
    prompt = (
        f'Generate 5 MCQ assessment questions for the skill: "{skill}". The worker claims to know '
        "this skill and we need to verify their knowledge. Focus on practical, hands-on knowledge "
        "that someone actually working in this area would know."
    )
    raw = await generate_text(prompt, max_tokens=1200, system_instruction=MCQ_SYSTEM_PROMPT, temperature=0.4)
    parsed = extract_json(raw)
    if not isinstance(parsed, list) or not parsed:
        raise UpstreamServiceError("AI", "Failed to generate valid questions", status_code=500)
    return build_mcqs(parsed)


# =========================================================
# 2. Audio metrics
# =========================================================
def analyze_audio_metrics(metrics: dict | None) -> dict:
    """
    Heuristics over the browser's audio stats. Starts at 80 and subtracts per
    warning sign; with no metrics at all the score is a neutral 50.
    """
    if not metrics:
        return {
            "flags": ["No audio metrics available"],
            "is_reading": False,
            "is_ai_voice": False,
            "tone_natural": True,
            "score": 50,
        }

    variance = float(metrics.get("volumeVariance") or 0)
    silence = float(metrics.get("silenceRatio") or 0)
    peaks = float(metrics.get("peakCount") or 0)
    crossings = float(metrics.get("zeroCrossings") or 0)
    rate_variance = float(metrics.get("speechRateVariance") or 0)

    flags = []
    score = 80

    if variance < 0.05:
        flags.append("Very low volume variance: monotone (possible AI voice)")
        score -= 20
    elif variance < 0.1:
        flags.append("Low volume variance: speech may be rehearsed")
        score -= 10

    if silence < 0.08:
        flags.append("Almost no pauses: unnaturally fluent (possible AI voice)")
        score -= 15
    elif silence > 0.5:
        flags.append("Excessive silence: possible reading with long pauses")
        score -= 10

    if peaks < 10:
        flags.append("Very few audio peaks: flat delivery (AI voice signature)")
        score -= 15
    elif peaks < 20:
        flags.append("Low emphasis variation: possibly reading from text")
        score -= 8

    if crossings > 0 and rate_variance < 0.02:
        flags.append("Extremely consistent speech rate: unnatural cadence")
        score -= 15

    if rate_variance < 0.05:
        flags.append("Constant speech rate: possible reading or AI generation")
        score -= 10

    return {
        "flags": flags,
        "is_reading": variance < 0.1 and rate_variance < 0.08,
        "is_ai_voice": variance < 0.05 and silence < 0.1 and peaks < 15,
        "tone_natural": score >= 60,
        "score": max(0, min(100, score)),
    }


# =========================================================
# 3. LLM checks
# =========================================================
def _question_context(question, skill: str) -> str:
    if isinstance(question, dict):
        return "\n".join(f"[{lang}] {text}" for lang, text in question.items())
    return str(question or skill)


def _question_text(question, skill: str) -> str:
    if isinstance(question, dict):
        return question.get("en") or question.get("hi") or question.get("te") or json.dumps(question)
    if isinstance(question, str):
        return question
    return skill


async def check_originality(transcript: str, language: str, skill: str, question) -> dict:
    prompt = f"""Analyze this transcribed speech from a skill assessment VIDEO RECORDING.

Skill being tested: "{skill}"
Question asked (may be in multiple languages):
{_question_context(question, skill)}

Worker's transcribed verbal answer (Whisper detected language: {language}):
"{transcript}"

The worker may answer in English, Hindi, Telugu, or a mix of languages. This is NORMAL for Indian workers.

Determine whether:
1. READING: Speech was read from a written source (formal language, no self-corrections, textbook-like, perfect grammar)
2. MEMORIZED/COPIED: Rehearsed textbook phrases, too perfect structure, copied from internet
3. AI-GENERATED: Produced by a voice AI tool (perfectly fluent, no filler words, robotic cadence)
4. NATURAL & SPONTANEOUS: Informal, self-corrections, thinking pauses, personal experience, filler words (bilingual fillers like "matlab", "basically", "na" are natural)

Language mixing (Hindi-English, Telugu-English) is a STRONG indicator of natural speech.

Return ONLY valid JSON (no markdown):
{{"is_original": true, "confidence": 75, "reasoning": "brief explanation", "speech_pattern": "natural"}}"""

    response = await generate_text(
        prompt, max_tokens=1000, system_instruction=ORIGINALITY_SYSTEM_PROMPT, temperature=0.3
    )
    return parse_json_object(response, {
        "is_original": True,
        "confidence": 50,
        "reasoning": "Could not determine originality.",
        "speech_pattern": "natural",
    })


async def check_correctness(transcript: str, language: str, skill: str, question, expected_answer: str) -> dict:
    prompt = f"""You are an expert skill assessor for blue-collar and service jobs in India.

Question asked (in English):
"{_question_text(question, skill)}"

Expected correct answer (key points):
"{expected_answer}"

Worker's verbal answer (transcribed from video, may be in English, Hindi, Telugu, or mixed):
"{transcript}"

Whisper detected language: {language}

IMPORTANT:
- Evaluate the CONTENT regardless of language.
- Focus on whether they demonstrate REAL PRACTICAL KNOWLEDGE.
- Simple language, broken sentences, or mixed-language responses are fine.
- Partial credit: if they get some key points right, give proportional score.
- A score of 50+ means the worker has basic understanding. 70+ means solid knowledge.

Return ONLY valid JSON (no markdown):
{{"is_correct": true, "score": 72, "matched_points": ["point 1"], "missed_points": ["missed point"], "summary": "brief 1-2 sentence assessment"}}"""

    response = await generate_text(
        prompt, max_tokens=1000, system_instruction=CORRECTNESS_SYSTEM_PROMPT, temperature=0.3
    )
    return parse_json_object(response, {
        "is_correct": False,
        "score": 0,
        "matched_points": [],
        "missed_points": ["Could not evaluate answer"],
        "summary": "Automated answer check failed.",
    })


# =========================================================
# 4. Decision
# =========================================================
PATTERN_LABELS = {
    "ai_generated": "AI-generated voice",
    "scripted": "reading from a script or screen",
    "memorized": "memorized or copied content",
}


def is_not_original(originality: dict | None) -> bool:
    return bool(
        originality
        and not originality.get("is_original")
        and (originality.get("confidence") or 0) >= ORIGINALITY_REJECT_CONFIDENCE
    )


def decide(
    transcript: str,
    had_media: bool,
    network_error: bool,
    originality: dict | None,
    answer: dict | None,
) -> tuple[str, str]:
    """Returns (status, reason); status is approved, rejected or pending."""
    if network_error:
        return "pending", "Transcription failed due to network error. Assessment saved for retry when connection is restored."

    if not transcript.strip() and had_media:
        return "rejected", "No speech detected in the recording. The video was silent or inaudible."

    if is_not_original(originality):
        label = PATTERN_LABELS.get(originality.get("speech_pattern"), "non-original content")
        return "rejected", f"Rejected: {label} detected. {originality.get('reasoning', '')}".strip()

    if answer:
        score = answer.get("score") or 0
        if not answer.get("is_correct"):
            return "rejected", f"Incorrect answer (score: {score}/100). {answer.get('summary', '')}".strip()
        if score >= APPROVE_SCORE:
            return "approved", f"Skill verified automatically. Answer score: {score}/100. {answer.get('summary', '')}".strip()
        if score >= BORDERLINE_SCORE:
            return "pending", f"Borderline score ({score}/100). Needs admin review. {answer.get('summary', '')}".strip()

    return "pending", "Automated analysis could not make a confident decision. Admin review needed."


def final_score(audio_score: float, originality: dict | None, answer: dict | None) -> int:
    if originality is None:
        originality_score = 50
    else:
        originality_score = 80 if originality.get("is_original") else 25
    answer_score = answer.get("score", 50) if answer else 50
    total = round_half_up(audio_score * 0.25 + originality_score * 0.35 + answer_score * 0.40)
    return max(0, min(100, total))


# =========================================================
# 5. Pipeline
# =========================================================
async def analyze_assessment(
    conn,
    assessment_id,
    media: tuple[bytes, str] | None,
    skill: str,
    expected_answer: str,
    audio_metrics: dict | None,
    question,
    language: str = "en",
) -> dict:
    """
    Run the whole analysis for one submission and write the decision onto its
    row. ``media`` is the recording as (bytes, mime type).
    """
    logger.info(f"[assessment] Analysing {assessment_id} ({skill}, lang={language})")
    audio = analyze_audio_metrics(audio_metrics)
    flags = audio["flags"]
    whisper_hint = language if language and language != "en" else None

    # --- Transcription ---
    transcript, transcript_language, network_error = "", "", False
    if media:
        data, mime_type = media
        try:
            result = await transcribe_audio(data, f"assessment.{extension_for(mime_type)}", mime_type, whisper_hint)
            transcript, transcript_language = result["text"], result["language"]
        except Exception as e:
            logger.warning(f"[assessment] Transcription failed for {assessment_id}: {e!r}")
            if is_network_error(e):
                network_error = True
                flags.append("Whisper transcription failed due to network error, needs retry or manual review")
            else:
                flags.append("Whisper transcription failed, could not extract speech")
    else:
        flags.append("No recording provided, cannot transcribe")

    # --- Originality ---
    originality = None
    if len(transcript.strip()) > 10:
        try:
            originality = await check_originality(transcript, transcript_language, skill, question)
        except MarketplaceError as e:
            logger.warning(f"[assessment] Originality check failed: {e.message}")
        else:
            pattern = originality.get("speech_pattern")
            if not originality.get("is_original"):
                flags.append(f"NLP: Speech appears {pattern}: {originality.get('reasoning', '')}")
                audio["score"] = max(0, audio["score"] - 20)
            if pattern == "ai_generated":
                flags.append("NLP: Response likely generated by an AI tool")
                audio["score"] = max(0, audio["score"] - 25)
            if pattern == "scripted":
                flags.append("NLP: Speech consistent with reading from a script/screen")
                audio["score"] = max(0, audio["score"] - 15)
    elif not transcript.strip() and media and not network_error:
        flags.append("No speech detected in the recording, silent or inaudible")
        audio["score"] = max(0, audio["score"] - 30)

    # --- Correctness ---
    answer = None
    if is_not_original(originality):
        answer = {
            "is_correct": False,
            "score": 0,
            "matched_points": [],
            "missed_points": ["Answer flagged as not original, correctness not evaluated"],
            "summary": "Answer flagged as non-original (likely read or AI-generated). Correctness not evaluated.",
        }
    elif len(transcript.strip()) > 10 and expected_answer:
        try:
            answer = await check_correctness(transcript, transcript_language, skill, question, expected_answer)
        except MarketplaceError as e:
            logger.warning(f"[assessment] Correctness check failed: {e.message}")

    status, reason = decide(transcript, media is not None, network_error, originality, answer)

    details = []
    if transcript:
        details.append(f'Transcription ({transcript_language}): "{transcript[:300]}"')
    if originality:
        details.append(
            f"Originality: {originality.get('speech_pattern')} ({originality.get('confidence')}%): "
            f"{originality.get('reasoning', '')}"
        )
    if answer:
        details.append(f"Answer: {answer.get('score')}/100: {answer.get('summary', '')}")
    details.append(f"Auto-decision: {status.upper()}: {reason}")

    pattern = (originality or {}).get("speech_pattern")
    analysis = {
        "confidence_score": final_score(audio["score"], originality, answer),
        "is_reading": audio["is_reading"] or pattern == "scripted",
        "is_ai_voice": audio["is_ai_voice"] or pattern == "ai_generated",
        "tone_natural": audio["tone_natural"] and (originality is None or pattern == "natural"),
        "flags": flags,
        "details": " | ".join(details),
        "audio_metrics": audio_metrics,
        "transcribed_text": transcript or None,
        "transcription_language": transcript_language or None,
        "originality_check": originality,
        "answer_check": answer,
        "auto_decision": status,
        "auto_decision_reason": reason,
    }

    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE skill_assessments
            SET analysis = %s, status = %s, review_notes = %s, reviewed_at = NOW()
            WHERE id = %s
            """,
            (Jsonb(analysis), status, f"[AUTO] {reason}", assessment_id),
        )

    logger.info(f"[assessment] {assessment_id}: score={analysis['confidence_score']} decision={status}")
    return analysis


async def add_verified_skill(cur, worker_id, skill: str):
    await cur.execute(
        """
        UPDATE worker_profiles SET skills = array_append(COALESCE(skills, '{}'), %s)
        WHERE user_id = %s AND NOT (%s = ANY(COALESCE(skills, '{}')))
        """,
        (skill, worker_id, skill),
    )


# =========================================================
# 6. Video question
# =========================================================
VIDEO_QUESTION_SYSTEM_PROMPT = """You are a technical interview expert for HyperLocal, India's blue-collar job platform.

Generate ONE deep, knowledge-testing question that asks the worker to EXPLAIN HOW THEY WOULD SOLVE A SPECIFIC TECHNICAL PROBLEM in detail.

Rules:
1. Ask for their solution to a specific problem, never "tell me about a time"
2. Test depth of knowledge: root cause, step-by-step fix, why each step matters
3. The correct answer must have 4-6 specific, verifiable technical points, including at least one safety or quality point
4. Use simple conversational language; the answer should take 45-90 seconds to explain

Return ONLY valid JSON (no markdown, no code fences):
{
  "question": {"en": "...", "hi": "Hindi translation in Devanagari script", "te": "Telugu translation in Telugu script"},
  "expected_answer": "1) ... 2) ... 3) ... 4) ...",
  "difficulty": "medium",
  "estimated_answer_time_seconds": 75
}"""


def fallback_video_question(skill: str) -> dict:
    return {
        "question": {
            "en": f"Describe a situation where you used your {skill} skill to solve a real problem at work. "
                  "What was the problem, what did you do, and what was the result?",
            "hi": f"एक ऐसी स्थिति बताएं जहां आपने काम पर एक वास्तविक समस्या को हल करने के लिए अपने {skill} "
                  "कौशल का उपयोग किया। समस्या क्या थी, आपने क्या किया, और परिणाम क्या हुआ?",
            "te": f"మీరు పనిలో నిజమైన సమస్యను పరిష్కరించడానికి మీ {skill} నైపుణ్యాన్ని ఉపయోగించిన పరిస్థితిని "
                  "వివరించండి. సమస్య ఏమిటి, మీరు ఏమి చేశారు, ఫలితం ఏమిటి?",
        },
        "expected_answer": f"Worker should describe: 1) A specific situation related to {skill}, "
                           "2) The actions they took using their expertise, 3) The outcome and what they learned",
        "difficulty": "medium",
        "estimated_answer_time_seconds": 60,
    }


def build_video_question(parsed, skill: str) -> dict:
    if not isinstance(parsed, dict) or not isinstance(parsed.get("question"), dict) or "expected_answer" not in parsed:
        return fallback_video_question(skill)
    question = dict(parsed["question"])
    question.setdefault("en", "")
    # the client shows whichever language the worker picked
    question["hi"] = question.get("hi") or question["en"]
    question["te"] = question.get("te") or question["en"]
    return {
        "question": question,
        "expected_answer": parsed["expected_answer"],
        "difficulty": parsed.get("difficulty") or "medium",
        "estimated_answer_time_seconds": parsed.get("estimated_answer_time_seconds") or 60,
    }


async def generate_video_question(skill: str) -> dict:
    prompt = (
        f'Generate a deep, knowledge-testing question for the skill: "{skill}". '
        f"Ask the worker to explain exactly how they would diagnose and fix a specific technical problem in {skill}. "
        f"The expected_answer must have 4-6 specific technical points that only a genuinely experienced {skill} worker would know."
    )
    raw = await generate_text(prompt, max_tokens=1000, system_instruction=VIDEO_QUESTION_SYSTEM_PROMPT, temperature=0.5)
    match = re.search(r"\{[\s\S]*\}", raw or "")
    try:
        parsed = json.loads(match.group(0)) if match else None
    except ValueError:
        parsed = None
    return build_video_question(parsed, skill)
