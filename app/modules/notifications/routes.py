from fastapi import APIRouter, Depends, status
from app.database.supabase_client import get_supabase
from app.modules.notifications.schemas import NotificationCreate
from app.modules.notifications.service import NotificationService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_current_principal, require_privileged, get_dispatcher
from app.core.responses import Envelope, success
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> NotificationService:
    return NotificationService(supabase, dispatcher)


@router.post("", response_model=Envelope, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def send_notification(
    payload: NotificationCreate,
    principal: Principal = Depends(require_privileged),
    service: NotificationService = Depends(get_notification_service),
):
    return success(data=service.send(principal, payload))


@router.get("", response_model=Envelope, response_model_exclude_none=True)
async def my_notifications(
    unread: bool = False,
    limit: Optional[int] = None,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
):
    """The caller's own notifications, newest first"""
    return success(data=service.list_for(principal, unread_only=unread, limit=limit))


@router.post("/{notification_id}/read", response_model=Envelope, response_model_exclude_none=True)
async def mark_read(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
):
    return success(data=service.mark_read(principal, notification_id))
