from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, Literal, Optional


class UserCreate(BaseModel):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6)
    role: str = Field(min_length=2)
    department: str = Field(min_length=1)  # short_name or name
    is_active: bool = Field(True, alias="isActive")

    class Config:
        populate_by_name = True


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    email: Optional[EmailStr] = None
    role: Optional[str] = Field(None, min_length=2)
    department: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = Field(None, alias="isActive")
    password: Optional[str] = Field(None, min_length=6)

    class Config:
        populate_by_name = True


class RegistrationRequest(BaseModel):
    """Public sign-up request. A password sent by older clients is accepted and discarded."""
    name: str = Field(min_length=2)
    email: EmailStr
    department: str = Field(min_length=1)
    requested_role: Literal["requester"] = Field("requester", alias="requestedRole")
    password: Optional[str] = Field(None, exclude=True)

    class Config:
        populate_by_name = True


def to_user_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    """profiles_with_roles row with the department flattened into a nested object"""
    return {
        **row,
        "department": {
            "id": row.get("department_id"),
            "name": row.get("department_name"),
            "short_name": row.get("department_short_name"),
        },
    }
