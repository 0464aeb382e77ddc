"""
Best-effort side effects of mutations: activity log rows, realtime broadcasts
and assignment notifications.

Effects are queued on the request's BackgroundTasks, so they run only after
the primary write committed and the response was handed to the server. A
failing effect is logged and dropped; it is never retried and never reaches
the caller.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from fastapi import BackgroundTasks
from supabase import Client

from app.core.realtime import RealtimeBroadcaster

logger = logging.getLogger(__name__)

NOTIFICATIONS_CHANNEL = "notifications"


@dataclass(frozen=True)
class ActivityLogEntry:
    type: str
    action: str
    title: str
    description: str
    user_id: Optional[str] = None
    item_id: Optional[str] = None


@dataclass(frozen=True)
class Broadcast:
    channel: str
    event: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentNotification:
    user_id: str
    title: str
    message: str
    type: str
    priority: Optional[str] = None


SideEffect = Union[ActivityLogEntry, Broadcast, AssignmentNotification]


class SideEffectDispatcher:
    def __init__(
        self,
        supabase: Client,
        broadcaster: RealtimeBroadcaster,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.supabase = supabase
        self.broadcaster = broadcaster
        self.background_tasks = background_tasks

    def dispatch(self, effect: SideEffect) -> None:
        """Queue an effect; without a request context it is delivered immediately."""
        if self.background_tasks is not None:
            self.background_tasks.add_task(self.deliver, effect)
        else:
            self.deliver(effect)

    def deliver(self, effect: SideEffect) -> None:
        try:
            if isinstance(effect, ActivityLogEntry):
                self._append_activity(effect)
            elif isinstance(effect, Broadcast):
                self.broadcaster.send(effect.channel, effect.event, effect.payload)
            elif isinstance(effect, AssignmentNotification):
                self._notify(effect)
            else:
                raise TypeError(f"Unknown side effect {type(effect).__name__}")
        except Exception as e:
            logger.warning(
                "Side effect %s failed (item=%s): %s",
                type(effect).__name__,
                _item_of(effect),
                e,
            )

    def _append_activity(self, entry: ActivityLogEntry) -> None:
        self.supabase.rpc("log_activity", {
            "p_type": entry.type,
            "p_action": entry.action,
            "p_title": entry.title,
            "p_description": entry.description,
            "p_user_id": entry.user_id,
            "p_item_id": entry.item_id,
        }).execute()

    def _notify(self, notification: AssignmentNotification) -> None:
        result = self.supabase.table("notifications").insert({
            "user_id": notification.user_id,
            "title": notification.title,
            "message": notification.message,
            "type": notification.type,
            "priority": notification.priority,
        }).execute()
        row = result.data[0] if result.data else {}
        self.broadcaster.send(NOTIFICATIONS_CHANNEL, "new_notification", {
            "entityId": row.get("id"),
            "changeSummary": {"title": notification.title, "message": notification.message},
            "actorId": None,
            "userId": notification.user_id,
        })


def _item_of(effect: Any) -> Optional[str]:
    if isinstance(effect, ActivityLogEntry):
        return effect.item_id
    if isinstance(effect, Broadcast):
        return effect.payload.get("entityId")
    if isinstance(effect, AssignmentNotification):
        return effect.user_id
    return None
