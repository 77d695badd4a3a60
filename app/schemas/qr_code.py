from datetime import datetime
from pydantic import BaseModel
from typing import Optional


class QrCodeCreate(BaseModel):
    table_id: Optional[str] = None


class QrCodeUpdate(BaseModel):
    image_key: Optional[str] = None


class QrCodeResponse(BaseModel):
    id: int
    tenant_id: int
    table_id: Optional[str] = None
    code: str
    public_url: str
    image_key: Optional[str] = None
    scan_count: int
    last_scanned_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QrResolutionResponse(BaseModel):
    """What a public scan learns: which tenant (and table) the code points at."""
    code: str
    tenant_id: int
    tenant_name: str
    tenant_slug: str
    table_id: Optional[str] = None
    menu_url: str
