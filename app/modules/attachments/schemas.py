from pydantic import BaseModel
from typing import Any, Optional


class Attachment(BaseModel):
    id: Any
    name: str
    url: str
    size: int
    type: str
    uploaded_by: str
    incident_id: Optional[str] = None
    requirement_id: Optional[str] = None
    created_at: Optional[str] = None
