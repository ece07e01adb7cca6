import base64
import math
import os
import re
from datetime import datetime

import aiofiles
from fastapi import UploadFile

from config import UPLOAD_ROOT

# --- 1. Upload folders ---
FOLDER_ASSESSMENTS = "assessments"  # skill video answers, one folder per worker
CHUNK_SIZE = 1024 * 64


def setup_upload_directories():
    """Make sure the upload root exists before StaticFiles mounts it."""
    os.makedirs(UPLOAD_ROOT, exist_ok=True)
    os.makedirs(os.path.join(UPLOAD_ROOT, FOLDER_ASSESSMENTS), exist_ok=True)


def _target(worker_id: str, filename: str) -> tuple[str, str]:
    """Returns (path on disk, public path under /uploads)."""
    target_dir = os.path.join(UPLOAD_ROOT, FOLDER_ASSESSMENTS, str(worker_id))
    os.makedirs(target_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    # spaces and path separators would break the URL or escape the folder
    safe_filename = re.sub(r"[\s/\\]+", "_", filename or "recording.webm")
    new_filename = f"{timestamp}_{safe_filename}"

    return (
        os.path.join(target_dir, new_filename),
        f"/{UPLOAD_ROOT}/{FOLDER_ASSESSMENTS}/{worker_id}/{new_filename}",
    )


async def save_assessment_video(file: UploadFile, worker_id: str) -> tuple[str, bytes]:
    """
    Stream an uploaded video to disk in chunks.

    Returns the public URL and the raw bytes (the analysis pipeline needs
    them for transcription).
    """
    file_path, url = _target(worker_id, file.filename)
    chunks = []
    async with aiofiles.open(file_path, "wb") as out_file:
        while content := await file.read(CHUNK_SIZE):
            chunks.append(content)
            await out_file.write(content)
    return url, b"".join(chunks)


async def save_assessment_video_bytes(data: bytes, worker_id: str, filename: str = "recording.webm") -> str:
    file_path, url = _target(worker_id, filename)
    async with aiofiles.open(file_path, "wb") as out_file:
        await out_file.write(data)
    return url


def decode_base64_payload(value: str) -> tuple[bytes, str | None]:
    """
    Accepts raw base64 or a data URL ('data:video/webm;base64,....').
    Returns (bytes, mime type if the data URL carried one).
    """
    mime = None
    match = re.match(r"^data:([^;,]+)?(?:;[^,]*)?,", value)
    if match:
        mime = match.group(1)
        value = value[match.end():]
    return base64.b64decode(value), mime


async def read_assessment_video(video_url: str) -> tuple[bytes, str] | None:
    """Load a stored recording back from disk; None when it is not a local upload."""
    prefix = f"/{UPLOAD_ROOT}/"
    if not video_url or not video_url.startswith(prefix):
        return None
    relative = video_url[len(prefix):]
    file_path = os.path.normpath(os.path.join(UPLOAD_ROOT, relative))
    if not file_path.startswith(os.path.normpath(UPLOAD_ROOT) + os.sep) or not os.path.isfile(file_path):
        return None
    async with aiofiles.open(file_path, "rb") as in_file:
        data = await in_file.read()
    return data, "video/mp4" if file_path.endswith(".mp4") else "video/webm"


# --- 2. Distance ---
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates, in km."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
