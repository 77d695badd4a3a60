from datetime import date
from pydantic import BaseModel
from typing import Dict, List, Optional


class DailyAnalyticsResponse(BaseModel):
    date: date
    views: int
    unique_views: int
    qr_scans: int
    item_views: Optional[Dict[str, int]] = None
    category_views: Optional[Dict[str, int]] = None

    class Config:
        from_attributes = True


class AnalyticsTotals(BaseModel):
    total_views: int = 0
    total_unique_views: int = 0
    total_qr_scans: int = 0


class PopularItem(BaseModel):
    item_id: str
    views: int


class CodeScanCount(BaseModel):
    code: str
    count: int


class AnalyticsSummary(BaseModel):
    totals: AnalyticsTotals
    daily_analytics: List[DailyAnalyticsResponse]
    popular_items: List[PopularItem]
    qr_scans: int
    qr_scans_by_code: List[CodeScanCount]


class MenuViewRequest(BaseModel):
    """Ids as served by the public menu; numeric strings are accepted too."""
    item_id: Optional[int] = None
    category_id: Optional[int] = None

    class Config:
        extra = "forbid"
