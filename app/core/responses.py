from pydantic import BaseModel, Field
from typing import Any, Optional


class CreatedResponse(BaseModel):
    id: Any
    status: str
    created_at: Optional[str] = Field(None, alias="createdAt")

    class Config:
        populate_by_name = True


class MutationResponse(BaseModel):
    ok: bool = True
    id: Any


class StatusResponse(MutationResponse):
    status: str


class OkResponse(BaseModel):
    ok: bool = True


class Envelope(BaseModel):
    """Body of the function-style endpoints: {success, data?, error?, message?}"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None


def success(data: Any = None, message: Optional[str] = None) -> Envelope:
    return Envelope(success=True, data=data, message=message)
