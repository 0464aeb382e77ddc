from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from app.core.policy import PRIVILEGED_ROLES, Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class Principal(BaseModel):
    """Authenticated caller, loaded from profiles_with_roles."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_active: bool = False
    role_name: Optional[str] = None
    department_id: Optional[int] = None

    @property
    def role(self) -> Optional[Role]:
        return Role.from_name(self.role_name)

    @property
    def is_privileged(self) -> bool:
        return self.is_active and self.role in PRIVILEGED_ROLES

    def describe(self) -> str:
        """Actor description used in activity log entries."""
        return f"{self.name or 'User'} ({self.email or ''}) [{self.role_name or ''}]"


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_active: bool = Field(alias="isActive")
    role_name: Optional[str] = Field(None, alias="roleName")
    capabilities: List[str]

    class Config:
        populate_by_name = True
