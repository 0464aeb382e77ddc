import logging
from typing import Any, Dict

import httpx

from app.config.settings import settings

logger = logging.getLogger(__name__)


class RealtimeBroadcaster:
    """Publishes broadcast messages through the Supabase Realtime REST endpoint.

    Delivery is at-most-once; callers treat every failure as best-effort.
    """

    def __init__(self, supabase_url: str, api_key: str, timeout_seconds: float = 5.0):
        self.url = f"{supabase_url.rstrip('/')}/realtime/v1/api/broadcast"
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def send(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {"messages": [{"topic": channel, "event": event, "payload": payload}]}
        with httpx.Client(timeout=self.timeout_seconds) as client:
            response = client.post(self.url, json=body, headers=headers)
            response.raise_for_status()
        logger.debug("Broadcast %s on %s", event, channel)


def get_broadcaster() -> RealtimeBroadcaster:
    return RealtimeBroadcaster(
        settings.supabase_url,
        settings.supabase_service_role_key or settings.supabase_key,
        settings.realtime_timeout_seconds,
    )
