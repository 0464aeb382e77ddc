"""
Lifecycle service shared by incidents and requirements.

Create, update, status change and delete follow the same sequence:
privilege check, policy gate, payload/reference validation, one durable write,
then best-effort side effects. Subclasses only supply a LifecycleConfig.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from supabase import Client

from app.core.dependencies import ensure_privileged
from app.core.errors import Forbidden, QueryFailed, ValidationError, store_error_message
from app.core.pagination import Page
from app.core.policy import PermissionView, compute_permissions
from app.core.repository import EntityRepository, ListQuery, ensure_reference_exists
from app.core.side_effects import ActivityLogEntry, AssignmentNotification, Broadcast, SideEffectDispatcher
from app.modules.auth.schemas import Principal

logger = logging.getLogger(__name__)

# Internal field name -> name used in PermissionView.allowed_fields
POLICY_FIELD_NAMES = {"assigned_to": "assignedTo", "estimated_delivery_date": "estimatedDeliveryDate"}


@dataclass(frozen=True)
class LifecycleConfig:
    kind: str                       # activity/notification type, e.g. "incident"
    label: str                      # human label, e.g. "Incident"
    table: str
    view: str
    channel: str                    # realtime channel
    statuses: Tuple[str, ...]
    initial_status: str
    terminal_statuses: FrozenSet[str]
    completion_column: str          # stamped iff status is terminal
    area_column: str                # department FK column
    area_field: str                 # area name in permission views
    area_name_column: str           # department name column on the view
    extra_fields: Tuple[str, ...] = ()  # admin-only fields, as named in permission views


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LifecycleService:
    config: LifecycleConfig

    def __init__(self, supabase: Client, dispatcher: Optional[SideEffectDispatcher] = None):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.repository = EntityRepository(
            supabase, self.config.table, self.config.view, label=self.config.label
        )

    # Reads

    def permissions(self, principal: Principal, entity_id: Optional[Any] = None) -> PermissionView:
        entity = None
        if entity_id is not None:
            entity = self.repository.get_row(entity_id, "id, status")
        return self._view_for(principal, entity)

    def list(self, filters: ListQuery, page: Optional[int] = None, limit: Optional[int] = None) -> Page:
        return self.repository.list(filters, page, limit)

    def list_query(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        type: Optional[str] = None,
        assigned_to: Optional[str] = None,
        created_by: Optional[str] = None,
        department: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        search: Optional[str] = None,
    ) -> ListQuery:
        return ListQuery(
            equals={
                "status": status,
                "priority": priority,
                "type": type,
                "assigned_to": assigned_to,
                "created_by": created_by,
                self.config.area_name_column: department,
            },
            created_from=date_from,
            created_to=date_to,
            search=search,
        )

    def get(self, entity_id: Any) -> Dict[str, Any]:
        return self.repository.get(entity_id)

    def activities(self, entity_id: Any) -> List[Dict[str, Any]]:
        self.repository.get_row(entity_id, "id")
        try:
            result = self.supabase.table("activities_with_users")\
                .select("id, action, description, timestamp, user_name")\
                .eq("item_id", entity_id)\
                .eq("type", self.config.kind)\
                .order("timestamp", desc=True)\
                .execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        return result.data or []

    def metrics(self) -> Dict[str, int]:
        """Total plus one count per status; the counts are independent reads and run concurrently."""
        statuses = self.config.statuses
        with ThreadPoolExecutor(max_workers=len(statuses) + 1) as pool:
            total = pool.submit(self.repository.count)
            per_status = {status: pool.submit(self.repository.count, {"status": status}) for status in statuses}
            counts = {status: future.result() for status, future in per_status.items()}
            counts["total"] = total.result()
        return counts

    # Mutations

    def create(self, principal: Principal, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new entity in its initial status. `values` uses internal field names."""
        ensure_privileged(principal)
        view = self._view_for(principal, None)
        if view.is_read_only:
            raise Forbidden(f"Not allowed to create {self.config.kind}s")
        self._ensure_references(values)

        row_values = {self._column(name): value for name, value in values.items()}
        row_values.update({
            "status": self.config.initial_status,
            "created_by": principal.id,
        })
        row = self.repository.insert(row_values)
        logger.info(f"{self.config.label} {row.get('id')} created by {principal.id}")

        title = row.get("title") or values.get("title") or ""
        self._dispatch(ActivityLogEntry(
            type=self.config.kind,
            action="created",
            title=f"New {self.config.kind} created: {title}",
            description=f'{self.config.label} "{title}" created by {principal.describe()}',
            user_id=principal.id,
            item_id=row.get("id"),
        ))
        if values.get("assigned_to"):
            self._notify_assignee(values["assigned_to"], title, values.get("priority"))
        self._dispatch(Broadcast(self.config.channel, f"{self.config.kind}_created", {
            "entityId": row.get("id"),
            "changeSummary": {"title": title, "status": row.get("status")},
            "actorId": principal.id,
        }))
        return row

    def update(
        self,
        principal: Principal,
        entity_id: Any,
        changes: Dict[str, Any],
        expected_last_modified_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Partial update of the fields present in `changes`, gated by the role policy."""
        ensure_privileged(principal)
        current = self.repository.get_row(entity_id)
        view = self._view_for(principal, current)
        self._authorize_changes(view, current, changes)
        if "status" in changes:
            self._validate_status(changes["status"])
        self._ensure_references(changes, current)

        values = {self._column(name): value for name, value in changes.items()}
        if "status" in changes and changes["status"] != current.get("status"):
            values[self.config.completion_column] = self._completion_for(changes["status"])
        values["last_modified_at"] = utc_now()
        values["last_modified_by"] = principal.id
        row = self.repository.update(entity_id, values, expected_last_modified_at)

        title = row.get("title") or current.get("title") or ""
        self._dispatch(ActivityLogEntry(
            type=self.config.kind,
            action="updated",
            title=f"{self.config.label} updated",
            description=f'{principal.describe()} updated {self.config.kind} "{title}": {", ".join(sorted(changes)) or "no fields"}',
            user_id=principal.id,
            item_id=row.get("id", entity_id),
        ))
        new_assignee = changes.get("assigned_to")
        if new_assignee and new_assignee != current.get("assigned_to"):
            self._notify_assignee(new_assignee, title, row.get("priority"))
        self._dispatch(Broadcast(self.config.channel, f"{self.config.kind}_updated", {
            "entityId": row.get("id", entity_id),
            "changeSummary": values,
            "actorId": principal.id,
        }))
        return row

    def change_status(
        self,
        principal: Principal,
        entity_id: Any,
        new_status: str,
        completed_at: Optional[str] = None,
        expected_last_modified_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Set the status; a terminal status stamps the completion timestamp (a supplied value wins)."""
        ensure_privileged(principal)
        self._validate_status(new_status)
        current = self.repository.get_row(entity_id, "id, title, status")
        view = self._view_for(principal, current)
        if not view.can_edit_status:
            raise Forbidden(f"Not allowed to change the status of {self.config.kind}s")

        completion = self._completion_for(new_status, completed_at)
        values = {
            "status": new_status,
            self.config.completion_column: completion,
            "last_modified_at": utc_now(),
            "last_modified_by": principal.id,
        }
        row = self.repository.update(entity_id, values, expected_last_modified_at)
        logger.info(f"{self.config.label} {entity_id} status {current.get('status')} -> {new_status} by {principal.id}")

        self._dispatch(ActivityLogEntry(
            type=self.config.kind,
            action="status_changed",
            title=f"{self.config.label} status changed",
            description=(
                f'{principal.describe()} changed {self.config.kind} "{current.get("title") or ""}" '
                f"from {current.get('status')} to {new_status}"
            ),
            user_id=principal.id,
            item_id=row.get("id", entity_id),
        ))
        self._dispatch(Broadcast(self.config.channel, f"{self.config.kind}_status_updated", {
            "entityId": row.get("id", entity_id),
            "changeSummary": {"status": new_status, self.config.completion_column: completion},
            "actorId": principal.id,
        }))
        return row

    def delete(self, principal: Principal, entity_id: Any) -> None:
        ensure_privileged(principal)
        current = self.repository.get_row(entity_id, "id, title")
        self.repository.delete(entity_id)
        logger.info(f"{self.config.label} {entity_id} deleted by {principal.id}")

        self._dispatch(ActivityLogEntry(
            type=self.config.kind,
            action="deleted",
            title=f"{self.config.label} deleted",
            description=f'{principal.describe()} deleted {self.config.kind} "{current.get("title") or ""}"',
            user_id=principal.id,
            item_id=entity_id,
        ))
        self._dispatch(Broadcast(self.config.channel, f"{self.config.kind}_deleted", {
            "entityId": entity_id,
            "changeSummary": {"deleted": True},
            "actorId": principal.id,
        }))

    # Helpers

    def _view_for(self, principal: Principal, entity: Optional[Mapping[str, Any]]) -> PermissionView:
        return compute_permissions(
            principal.role,
            entity,
            open_status=self.config.initial_status,
            area_field=self.config.area_field,
            extra_fields=self.config.extra_fields,
        )

    def _authorize_changes(self, view: PermissionView, current: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
        if view.is_read_only:
            raise Forbidden(f"Only {self.config.initial_status} {self.config.kind}s can be edited")
        for name, value in changes.items():
            if name == "department_id":
                if value != current.get(self.config.area_column) and not view.can_edit_area:
                    raise Forbidden(f"Not allowed to change the area of {self.config.kind}s")
            elif name == "status":
                if value != current.get("status") and not view.can_edit_status:
                    raise Forbidden(f"Not allowed to change the status of {self.config.kind}s")
            elif not view.can_edit_content or POLICY_FIELD_NAMES.get(name, name) not in view.allowed_fields:
                raise Forbidden(f"Not allowed to change {POLICY_FIELD_NAMES.get(name, name)}")

    def _validate_status(self, status: Any) -> None:
        if status not in self.config.statuses:
            raise ValidationError(f"Invalid status. Allowed values: {', '.join(self.config.statuses)}")

    def _ensure_references(self, values: Mapping[str, Any], current: Optional[Mapping[str, Any]] = None) -> None:
        current = current or {}
        department_id = values.get("department_id")
        if department_id is not None and department_id != current.get(self.config.area_column):
            ensure_reference_exists(self.supabase, "departments", department_id, "Department does not exist")
        assigned_to = values.get("assigned_to")
        if assigned_to and assigned_to != current.get("assigned_to"):
            ensure_reference_exists(self.supabase, "profiles", assigned_to, "Assigned user does not exist")

    def _completion_for(self, status: str, supplied: Optional[str] = None) -> Optional[str]:
        if status in self.config.terminal_statuses:
            return supplied or utc_now()
        return None

    def _column(self, name: str) -> str:
        if name == "department_id":
            return self.config.area_column
        return name

    def _notify_assignee(self, user_id: str, title: str, priority: Optional[str]) -> None:
        self._dispatch(AssignmentNotification(
            user_id=user_id,
            title=f"New {self.config.kind} assigned",
            message=f"You have been assigned the {self.config.kind}: {title}",
            type=self.config.kind,
            priority=priority,
        ))

    def _dispatch(self, effect) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(effect)
