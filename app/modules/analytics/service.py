import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client

from app.core.dependencies import ensure_privileged
from app.core.errors import QueryFailed, ValidationError, store_error_message
from app.core.repository import EntityRepository, ListQuery
from app.core.side_effects import ActivityLogEntry, SideEffectDispatcher
from app.modules.analytics.metrics import calculate_trends, period_metrics
from app.modules.auth.schemas import Principal
from app.modules.incidents.service import INCIDENT_LIFECYCLE
from app.modules.requirements.service import REQUIREMENT_LIFECYCLE

logger = logging.getLogger(__name__)

RANGE_LENGTHS = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

# Columns the period metrics read
METRIC_COLUMNS = "id, status, priority, created_at, {completion}"

# More pending registration requests than this raises an alert
PENDING_REGISTRATIONS_THRESHOLD = 5

Period = Tuple[datetime, datetime]


def resolve_periods(
    time_range: str,
    now: datetime,
    custom_start: Optional[datetime] = None,
    custom_end: Optional[datetime] = None,
) -> Tuple[Period, Period]:
    """Current period and the equally long period right before it."""
    if time_range == "custom":
        if custom_start is None or custom_end is None:
            raise ValidationError("Custom time range requires start and end dates")
        custom_start, custom_end = _as_utc(custom_start), _as_utc(custom_end)
        if custom_end <= custom_start:
            raise ValidationError("Custom time range must end after it starts")
        current = (custom_start, custom_end)
    elif time_range in RANGE_LENGTHS:
        current = (now - RANGE_LENGTHS[time_range], now)
    else:
        raise ValidationError(f"Invalid time range. Allowed values: {', '.join([*RANGE_LENGTHS, 'custom'])}")
    length = current[1] - current[0]
    return current, (current[0] - length, current[0])


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AnalyticsService:
    def __init__(self, supabase: Client, dispatcher: Optional[SideEffectDispatcher] = None):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.sources = {
            config.table: (config, EntityRepository(supabase, config.table, config.view, label=config.label))
            for config in (INCIDENT_LIFECYCLE, REQUIREMENT_LIFECYCLE)
        }

    def summary(
        self,
        principal: Principal,
        analytics_type: str,
        time_range: str,
        custom_start: Optional[datetime] = None,
        custom_end: Optional[datetime] = None,
        department_id: Optional[int] = None,
        include_trends: bool = True,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        ensure_privileged(principal)
        now = now or datetime.now(timezone.utc)
        current, previous = resolve_periods(time_range, now, custom_start, custom_end)

        with ThreadPoolExecutor(max_workers=2) as pool:
            current_future = pool.submit(self.period, analytics_type, current, department_id)
            previous_future = pool.submit(self.period, analytics_type, previous, department_id)
            current_metrics = current_future.result()
            previous_metrics = previous_future.result()

        result = {
            "current_period": {"start": current[0].isoformat(), "end": current[1].isoformat(), **current_metrics},
            "previous_period": {"start": previous[0].isoformat(), "end": previous[1].isoformat(), **previous_metrics},
            "trends": calculate_trends(current_metrics, previous_metrics) if include_trends else None,
            "alerts": self.alerts(now) if analytics_type == "dashboard" else [],
            "last_updated": now.isoformat(),
        }
        logger.debug(f"{analytics_type} analytics for {time_range} computed for {principal.id}")
        if self.dispatcher is not None:
            self.dispatcher.dispatch(ActivityLogEntry(
                type="analytics",
                action="viewed",
                title="Analytics viewed",
                description=f"{principal.describe()} viewed {analytics_type} analytics for {time_range}",
                user_id=principal.id,
            ))
        return result

    def period(self, analytics_type: str, period: Period, department_id: Optional[int] = None) -> Dict[str, Any]:
        if analytics_type in self.sources:
            return self._entity_metrics(analytics_type, period, department_id)
        if analytics_type == "dashboard":
            return {kind: self._entity_metrics(kind, period, department_id) for kind in self.sources}
        if analytics_type == "performance":
            incidents = self._entity_metrics("incidents", period, department_id)
            requirements = self._entity_metrics("requirements", period, department_id)
            total = incidents["total"] + requirements["total"]
            completed = incidents["completed"] + requirements["completed"]
            return {
                "incidents": incidents,
                "requirements": requirements,
                "user_activity": self._user_activity(period),
                "system_performance": {
                    "avg_resolution_hours": incidents["avg_completion_hours"],
                    "resolution_efficiency": incidents["completion_rate"],
                    "overall_completion_rate": round(completed / total * 100, 2) if total else 0.0,
                },
            }
        raise ValidationError("Invalid analytics type. Allowed values: dashboard, incidents, requirements, performance")

    def alerts(self, now: datetime) -> List[Dict[str, Any]]:
        """Urgent incidents still open from the last day, overdue requirements, a backlog of registrations."""
        alerts = []
        urgent = self._select(
            self.supabase.table("incidents")
                .select("id, title, priority, created_at")
                .eq("status", INCIDENT_LIFECYCLE.initial_status)
                .eq("priority", "urgent")
                .gte("created_at", (now - timedelta(hours=24)).isoformat())
        )
        if urgent:
            alerts.append({
                "type": "urgent_incidents",
                "message": f"{len(urgent)} urgent incidents unresolved",
                "count": len(urgent),
                "items": urgent,
            })

        overdue = self._select(
            self.supabase.table("requirements")
                .select("id, title, priority, estimated_delivery_date")
                .in_("status", [s for s in REQUIREMENT_LIFECYCLE.statuses if s not in REQUIREMENT_LIFECYCLE.terminal_statuses])
                .lt("estimated_delivery_date", now.date().isoformat())
        )
        if overdue:
            alerts.append({
                "type": "overdue_requirements",
                "message": f"{len(overdue)} requirements past their estimated delivery date",
                "count": len(overdue),
                "items": overdue,
            })

        pending = self._select(
            self.supabase.table("registration_requests")
                .select("id, name, email, created_at")
                .eq("status", "pending")
        )
        if len(pending) > PENDING_REGISTRATIONS_THRESHOLD:
            alerts.append({
                "type": "pending_registrations",
                "message": f"{len(pending)} registration requests pending",
                "count": len(pending),
                "items": pending[:PENDING_REGISTRATIONS_THRESHOLD],
            })
        return alerts

    def _entity_metrics(self, kind: str, period: Period, department_id: Optional[int]) -> Dict[str, Any]:
        config, repository = self.sources[kind]
        rows = repository.rows(
            ListQuery(
                equals={config.area_column: department_id},
                created_from=period[0].isoformat(),
                created_to=period[1].isoformat(),
            ),
            METRIC_COLUMNS.format(completion=config.completion_column),
        )
        return period_metrics(rows, config)

    def _user_activity(self, period: Period) -> Dict[str, Any]:
        rows = self._select(
            self.supabase.table("activities")
                .select("user_id, type, action, timestamp")
                .gte("timestamp", period[0].isoformat())
                .lte("timestamp", period[1].isoformat())
        )
        users = {row.get("user_id") for row in rows if row.get("user_id")}
        by_type = Counter(row.get("type") for row in rows)
        return {
            "total_activities": len(rows),
            "unique_users": len(users),
            "activity_by_type": dict(by_type),
            "avg_activities_per_user": round(len(rows) / len(users), 2) if users else 0.0,
        }

    @staticmethod
    def _select(query) -> List[Dict[str, Any]]:
        try:
            return query.execute().data or []
        except Exception as e:
            raise QueryFailed(store_error_message(e))
