# routes/kyc.py
from fastapi import APIRouter, Depends

from kyc import verify_gstin, verify_pan
from models.kyc import GstinRequest, PanRequest
from routes.auth import get_current_user

router = APIRouter(tags=["kyc"])


@router.post("/verify-pan")
async def verify_pan_route(body: PanRequest, user: dict = Depends(get_current_user)):
    return await verify_pan(body.pan or "", body.full_name or "")


@router.post("/verify-gstin")
async def verify_gstin_route(body: GstinRequest, user: dict = Depends(get_current_user)):
    return await verify_gstin(body.gstin)
