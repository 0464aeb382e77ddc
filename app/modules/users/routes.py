from fastapi import APIRouter, Depends, status
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import UserCreate, UserUpdate, RegistrationRequest
from app.modules.users.service import UserService
from app.modules.auth.schemas import Principal
from app.core.dependencies import require_capability, get_dispatcher
from app.core.pagination import Page
from app.core.responses import Envelope, success
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> UserService:
    return UserService(supabase, dispatcher)


@router.get("", response_model=Page)
async def list_users(
    search: Optional[str] = None,
    role: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    principal: Principal = Depends(require_capability("users:list")),
    service: UserService = Depends(get_user_service),
):
    """Users matching `search` on name or email, optionally filtered by role name"""
    return service.list_users(search=search, role=role, page=page, limit=limit)


@router.post("/register", response_model=Envelope, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegistrationRequest,
    service: UserService = Depends(get_user_service),
):
    """Public: create a pending registration request"""
    service.register(payload)
    return success(message="Registration request created")


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    principal: Principal = Depends(require_capability("users:get")),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    return service.get_user(user_id)


@router.post("", response_model=Envelope, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    principal: Principal = Depends(require_capability("users:create")),
    service: UserService = Depends(get_user_service),
):
    return success(data=service.create_user(principal, payload))


@router.patch("/{user_id}", response_model=Envelope, response_model_exclude_none=True)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    principal: Principal = Depends(require_capability("users:update")),
    service: UserService = Depends(get_user_service),
):
    return success(data=service.update_user(principal, user_id, payload))


@router.delete("/{user_id}", response_model=Envelope, response_model_exclude_none=True)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(require_capability("users:delete")),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(principal, user_id)
    return success(data={"deleted": True})
