from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, Literal, Optional
from datetime import datetime

ReportType = Literal["incidents", "requirements", "dashboard"]
ReportFormat = Literal["csv", "json"]


class DateRange(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self):
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class ReportFilters(BaseModel):
    department_id: Optional[int] = Field(None, alias="departmentId", gt=0)
    status: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high", "urgent"]] = None

    class Config:
        populate_by_name = True


class ReportRequest(BaseModel):
    type: ReportType
    format: ReportFormat = "csv"
    date_range: DateRange = Field(alias="dateRange")
    filters: ReportFilters = Field(default_factory=ReportFilters)

    class Config:
        populate_by_name = True


class ReportResult(BaseModel):
    report_id: Any = Field(alias="reportId")
    status: str
    download_url: str = Field(alias="downloadUrl")
    summary: Dict[str, Any]

    class Config:
        populate_by_name = True
