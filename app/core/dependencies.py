"""
Core dependencies for route protection and request-scoped collaborators
"""

from fastapi import BackgroundTasks, Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.auth.schemas import Principal
from app.config.permissions_config import role_has_capability
from app.core.errors import Forbidden, Unauthenticated
from app.core.realtime import RealtimeBroadcaster, get_broadcaster
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is reported as 401 Unauthenticated, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Principal:
    """Resolve the caller from the Authorization bearer token"""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token")
    return auth_service.resolve_principal(credentials.credentials)


def ensure_privileged(principal: Principal) -> Principal:
    """Active admin or technician, required before any mutation"""
    if not principal.is_privileged:
        raise Forbidden("Only active administrators and technicians can perform this action")
    return principal


def require_privileged(principal: Principal = Depends(get_current_principal)) -> Principal:
    return ensure_privileged(principal)


def require_capability(capability: str):
    """Factory function to create a capability check dependency"""
    def check_capability(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.is_active:
            raise Forbidden("Account inactive")
        if not role_has_capability(principal.role_name or "", capability):
            raise Forbidden(f"Requires: {capability}")
        return principal
    return check_capability


def get_dispatcher(
    background_tasks: BackgroundTasks,
    supabase: Client = Depends(get_supabase),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> SideEffectDispatcher:
    """Side effects of this request, delivered after the response is produced"""
    return SideEffectDispatcher(supabase, broadcaster, background_tasks)
