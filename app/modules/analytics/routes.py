from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.analytics.schemas import AnalyticsSummary, AnalyticsType, TimeRange
from app.modules.analytics.service import AnalyticsService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_dispatcher, require_privileged
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from datetime import datetime
from typing import Optional

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> AnalyticsService:
    return AnalyticsService(supabase, dispatcher)


@router.get("/{analytics_type}", response_model=AnalyticsSummary)
async def analytics_summary(
    analytics_type: AnalyticsType,
    time_range: TimeRange = Query("24h", alias="timeRange"),
    custom_start: Optional[datetime] = Query(None, alias="customStart"),
    custom_end: Optional[datetime] = Query(None, alias="customEnd"),
    department_id: Optional[int] = Query(None, alias="departmentId", gt=0),
    include_trends: bool = Query(True, alias="includeTrends"),
    principal: Principal = Depends(require_privileged),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Metrics for the current period next to the equally long period before it, with trends"""
    return service.summary(
        principal,
        analytics_type,
        time_range,
        custom_start=custom_start,
        custom_end=custom_end,
        department_id=department_id,
        include_trends=include_trends,
    )
