from fastapi import APIRouter, Depends
from app.database.supabase_client import get_anon_supabase
from app.modules.auth.schemas import LoginRequest, TokenResponse, MeResponse, Principal
from app.modules.auth.service import AuthService
from app.core.dependencies import get_current_principal
from app.config.permissions_config import get_role_capabilities
from supabase import Client

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    supabase: Client = Depends(get_anon_supabase)
):
    """Login and get access token"""
    return AuthService(supabase).login(login_data)


@router.get("/me", response_model=MeResponse)
async def get_me(principal: Principal = Depends(get_current_principal)):
    """Current principal and the user-management capabilities of its role (for frontend UI)."""
    return MeResponse(
        id=principal.id,
        email=principal.email,
        name=principal.name,
        is_active=principal.is_active,
        role_name=principal.role_name,
        capabilities=sorted(get_role_capabilities(principal.role_name or "")),
    )
