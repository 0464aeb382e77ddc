from pydantic import BaseModel, Field
from typing import Literal, Optional
from uuid import UUID


class NotificationCreate(BaseModel):
    user_id: UUID = Field(alias="userId")
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    type: Literal["incident", "requirement", "user", "system"] = "system"
    priority: Optional[Literal["low", "medium", "high", "urgent"]] = None

    class Config:
        populate_by_name = True
