from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime
from uuid import UUID

IncidentType = Literal["technical", "software", "hardware", "network", "other"]
IncidentPriority = Literal["low", "medium", "high", "urgent"]
IncidentStatus = Literal["open", "in_progress", "resolved", "closed"]

# Fields that may be explicitly nulled by a partial update
NULLABLE_FIELDS = {"assigned_to", "description"}


class IncidentCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = Field("", max_length=5000)
    department_id: int = Field(alias="departmentId", gt=0)
    type: IncidentType = "technical"
    priority: IncidentPriority = "medium"
    assigned_to: Optional[UUID] = Field(None, alias="assignedTo")

    class Config:
        populate_by_name = True

    def to_values(self) -> Dict[str, Any]:
        values = self.model_dump(mode="json")
        values["description"] = values.get("description") or ""
        return values


class IncidentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    type: Optional[IncidentType] = None
    priority: Optional[IncidentPriority] = None
    status: Optional[IncidentStatus] = None
    department_id: Optional[int] = Field(None, alias="departmentId", gt=0)
    assigned_to: Optional[UUID] = Field(None, alias="assignedTo")
    expected_last_modified_at: Optional[str] = Field(None, alias="expectedLastModifiedAt")

    class Config:
        populate_by_name = True
        extra = "allow"

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client sent; null is kept only where the column is nullable.

        Unknown keys are passed through untouched so the policy gate can reject them.
        """
        present = (self.model_fields_set & set(type(self).model_fields)) - {"expected_last_modified_at"}
        values = self.model_dump(mode="json", include=present)
        changes = {k: v for k, v in values.items() if v is not None or k in NULLABLE_FIELDS}
        changes.update(self.model_extra or {})
        return changes


class IncidentStatusChange(BaseModel):
    status: str
    resolved_at: Optional[datetime] = Field(None, alias="resolvedAt")
    expected_last_modified_at: Optional[str] = Field(None, alias="expectedLastModifiedAt")

    class Config:
        populate_by_name = True


class IncidentMetrics(BaseModel):
    total_incidents: int = Field(alias="totalIncidents")
    open_incidents: int = Field(alias="openIncidents")
    in_progress_incidents: int = Field(alias="inProgressIncidents")
    resolved_incidents: int = Field(alias="resolvedIncidents")
    closed_incidents: int = Field(alias="closedIncidents")

    class Config:
        populate_by_name = True
