from pydantic import BaseModel
from typing import List, Optional


class Department(BaseModel):
    id: int
    name: str
    short_name: Optional[str] = None
    is_active: bool = True


class Role(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool = True


class DepartmentsResponse(BaseModel):
    departments: List[Department]


class RolesResponse(BaseModel):
    roles: List[Role]


class Catalogs(BaseModel):
    departments: List[Department]
    roles: List[Role]
