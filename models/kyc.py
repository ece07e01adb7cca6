# models/kyc.py
from models import CamelModel


class PanRequest(CamelModel):
    pan: str | None = None
    full_name: str | None = None


class GstinRequest(CamelModel):
    gstin: str | None = None
