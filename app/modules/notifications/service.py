import logging
from supabase import Client
from typing import Any, Dict, List, Optional
from app.core.errors import NotFound, QueryFailed, UpdateFailed, store_error_message
from app.core.pagination import clamp_limit
from app.core.repository import EntityRepository, ensure_reference_exists
from app.core.side_effects import Broadcast, NOTIFICATIONS_CHANNEL, SideEffectDispatcher
from app.modules.auth.schemas import Principal
from app.modules.notifications.schemas import NotificationCreate

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client, dispatcher: Optional[SideEffectDispatcher] = None):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.repository = EntityRepository(supabase, "notifications", label="Notification")

    def send(self, principal: Principal, data: NotificationCreate) -> Dict[str, Any]:
        """Insert a notification for a user and broadcast it on the notifications channel"""
        values = data.model_dump(mode="json")
        ensure_reference_exists(self.supabase, "profiles", values["user_id"], "Recipient does not exist")
        notification = self.repository.insert(values)
        logger.info(f"Notification {notification.get('id')} sent to {values['user_id']} by {principal.id}")

        if self.dispatcher is not None:
            self.dispatcher.dispatch(Broadcast(NOTIFICATIONS_CHANNEL, "new_notification", {
                "entityId": notification.get("id"),
                "changeSummary": {"title": values["title"], "message": values["message"]},
                "actorId": principal.id,
                "userId": values["user_id"],
            }))
        return notification

    def list_for(self, principal: Principal, unread_only: bool = False, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = self.supabase.table("notifications")\
            .select("*")\
            .eq("user_id", principal.id)
        if unread_only:
            query = query.eq("is_read", False)
        try:
            result = query.order("created_at", desc=True).limit(clamp_limit(limit)).execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        return result.data or []

    def mark_read(self, principal: Principal, notification_id: str) -> Dict[str, Any]:
        """Only the recipient can mark a notification read; anyone else gets NotFound."""
        try:
            result = self.supabase.table("notifications")\
                .update({"is_read": True})\
                .eq("id", notification_id)\
                .eq("user_id", principal.id)\
                .execute()
        except Exception as e:
            raise UpdateFailed(store_error_message(e))
        if not result.data:
            raise NotFound("Notification not found")
        return result.data[0]
