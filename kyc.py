"""
KYC lookups for employers: PAN through the Sandbox API, GSTIN through
ClearTax's public compliance report.
"""
import re
from datetime import datetime, timezone

import httpx
from loguru import logger

import config
from errors import (
    ServiceNotConfiguredError,
    UnprocessableError,
    UpstreamServiceError,
    ValidationError,
)
from http_client import request_with_retry

SANDBOX_BASE = "https://api.sandbox.co.in"
CLEARTAX_REPORT_URL = "https://cleartax.in/f/compliance-report/{gstin}/"

PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
GSTIN_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")
NAME_MATCH_THRESHOLD = 0.75

_TITLES = re.compile(r"\b(mr|mrs|ms|shri|smt|dr|prof)\b\.?", re.I)


# --- 1. Name matching ---

def normalise_name(raw: str) -> str:
    name = _TITLES.sub("", raw.lower())
    name = re.sub(r"[^a-z\s]", "", name)
    return re.sub(r"\s+", " ", name).strip()


def similarity(a: str, b: str) -> float:
    """1 - Levenshtein distance / longer length, case-insensitive."""
    s1, s2 = a.lower().strip(), b.lower().strip()
    if s1 == s2:
        return 1.0
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, 1):
        current = [i]
        for j, c2 in enumerate(s2, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            ))
        previous = current
    longest = max(len(s1), len(s2))
    return 1.0 if longest == 0 else 1 - previous[-1] / longest


def names_match(registered: str, claimed: str) -> tuple[bool, float]:
    a, b = normalise_name(registered), normalise_name(claimed)
    score = similarity(a, b)
    return score >= NAME_MATCH_THRESHOLD or a in b or b in a, score


# --- 2. PAN ---

async def verify_pan(pan: str, full_name: str) -> dict:
    if not pan or not full_name:
        raise ValidationError("PAN number and full name are required")
    pan = pan.strip().upper()
    if not PAN_RE.match(pan):
        raise ValidationError("Invalid PAN format. Expected format: ABCDE1234F")
    if not config.SANDBOX_API_KEY or not config.SANDBOX_API_SECRET:
        raise ServiceNotConfiguredError("KYC", "KYC service is not configured. Contact admin.")

    response = await request_with_retry(
        "GET",
        f"{SANDBOX_BASE}/pans/{pan}/verify",
        label="sandbox-pan",
        timeout=config.KYC_TIMEOUT_SECONDS,
        headers={
            "Accept": "application/json",
            "x-api-key": config.SANDBOX_API_KEY,
            "x-api-secret": config.SANDBOX_API_SECRET,
            "x-api-version": "2.0",
        },
    )

    if response.is_error:
        logger.error(f"[kyc] Sandbox PAN API error ({response.status_code}): {response.text[:200]}")
        if response.status_code == 404:
            return {"verified": False, "message": "PAN number not found. Please check and try again."}
        if response.status_code in (401, 403):
            raise UpstreamServiceError("KYC", "KYC service authentication failed. Contact admin.", status_code=500)
        raise UpstreamServiceError("KYC", "PAN verification service unavailable. Try again later.")

    data = (response.json() or {}).get("data") or {}
    pan_name = data.get("full_name")
    if not pan_name:
        return {"verified": False, "message": "Unable to retrieve PAN details. Try again later."}

    matched, score = names_match(pan_name, full_name)
    return {
        "verified": True,
        "pan": pan,
        "panName": pan_name,
        "nameMatch": matched,
        "similarity": round(score * 100),
        "category": data.get("category") or "Unknown",
        "message": (
            "PAN verified successfully. Name matches."
            if matched
            else f'Name mismatch. PAN is registered to "{pan_name}". Please enter your name exactly as on PAN card.'
        ),
    }


# --- 3. GSTIN ---

def parse_cleartax(payload: dict) -> dict:
    info = (payload or {}).get("taxpayerInfo")
    if not info:
        raise UnprocessableError("Unexpected ClearTax response: no taxpayerInfo")
    if info.get("errorMsg"):
        raise UnprocessableError(info["errorMsg"])

    addr = (info.get("pradr") or {}).get("addr") or {}
    parts = [addr.get(k) for k in ("bno", "bnm", "st", "loc", "dst", "stcd", "pncd")]
    status = info.get("sts") or "Unknown"
    return {
        "tradeName": info.get("tradeNam") or info.get("lgnm") or "",
        "legalName": info.get("lgnm") or info.get("tradeNam") or "",
        "status": status,
        "taxpayerType": info.get("dty") or "Regular",
        "registeredDate": info.get("rgdt"),
        "address": ", ".join(p for p in parts if p) or None,
        "state": addr.get("stcd") or "",
        "verified": status.lower() == "active",
        "verifiedAt": datetime.now(timezone.utc).isoformat(),
    }


async def verify_gstin(gstin: str) -> dict:
    gstin = (gstin or "").strip().upper()
    if len(gstin) != 15 or not GSTIN_RE.match(gstin):
        raise ValidationError("Invalid GSTIN")

    try:
        response = await request_with_retry(
            "GET",
            CLEARTAX_REPORT_URL.format(gstin=gstin),
            label="cleartax",
            timeout=config.KYC_TIMEOUT_SECONDS,
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        logger.warning(f"[kyc] ClearTax unreachable for {gstin}: {e!r}")
        raise UnprocessableError("GSTIN verification failed. Try again later.")

    if response.status_code == 404:
        raise UnprocessableError("GSTIN not found. Please check the number.")
    if response.is_error:
        logger.warning(f"[kyc] ClearTax returned HTTP {response.status_code} for {gstin}")
        raise UnprocessableError(f"ClearTax returned HTTP {response.status_code}")

    try:
        payload = response.json()
    except ValueError:
        raise UnprocessableError("Unexpected ClearTax response")
    return parse_cleartax(payload)
