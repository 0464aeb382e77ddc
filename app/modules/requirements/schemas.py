from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import date, datetime
from uuid import UUID

RequirementType = Literal["document", "equipment", "service", "other"]
RequirementPriority = Literal["low", "medium", "high", "urgent"]
RequirementStatus = Literal["pending", "in_progress", "delivered", "closed"]

NULLABLE_FIELDS = {"assigned_to", "description", "estimated_delivery_date"}


class RequirementCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = Field("", max_length=5000)
    department_id: int = Field(alias="departmentId", gt=0)
    type: RequirementType = "document"
    priority: RequirementPriority = "medium"
    assigned_to: Optional[UUID] = Field(None, alias="assignedTo")
    estimated_delivery_date: Optional[date] = Field(None, alias="estimatedDeliveryDate")

    class Config:
        populate_by_name = True

    def to_values(self) -> Dict[str, Any]:
        values = self.model_dump(mode="json")
        values["description"] = values.get("description") or ""
        if values.get("estimated_delivery_date") is None:
            values.pop("estimated_delivery_date", None)
        return values


class RequirementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    type: Optional[RequirementType] = None
    priority: Optional[RequirementPriority] = None
    status: Optional[RequirementStatus] = None
    department_id: Optional[int] = Field(None, alias="departmentId", gt=0)
    assigned_to: Optional[UUID] = Field(None, alias="assignedTo")
    estimated_delivery_date: Optional[date] = Field(None, alias="estimatedDeliveryDate")
    expected_last_modified_at: Optional[str] = Field(None, alias="expectedLastModifiedAt")

    class Config:
        populate_by_name = True
        extra = "allow"

    def changes(self) -> Dict[str, Any]:
        present = (self.model_fields_set & set(type(self).model_fields)) - {"expected_last_modified_at"}
        values = self.model_dump(mode="json", include=present)
        changes = {k: v for k, v in values.items() if v is not None or k in NULLABLE_FIELDS}
        changes.update(self.model_extra or {})
        return changes


class RequirementStatusChange(BaseModel):
    status: str
    delivered_at: Optional[datetime] = Field(None, alias="deliveredAt")
    expected_last_modified_at: Optional[str] = Field(None, alias="expectedLastModifiedAt")

    class Config:
        populate_by_name = True


class RequirementMetrics(BaseModel):
    total_requirements: int = Field(alias="totalRequirements")
    pending_requirements: int = Field(alias="pendingRequirements")
    in_progress_requirements: int = Field(alias="inProgressRequirements")
    delivered_requirements: int = Field(alias="deliveredRequirements")
    closed_requirements: int = Field(alias="closedRequirements")

    class Config:
        populate_by_name = True
