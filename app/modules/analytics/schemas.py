from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional

AnalyticsType = Literal["dashboard", "incidents", "requirements", "performance"]
TimeRange = Literal["1h", "24h", "7d", "30d", "custom"]


class AnalyticsSummary(BaseModel):
    current_period: Dict[str, Any]
    previous_period: Dict[str, Any]
    trends: Optional[Dict[str, Any]] = None
    alerts: List[Dict[str, Any]] = []
    last_updated: str
