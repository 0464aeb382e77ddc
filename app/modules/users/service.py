import logging
from typing import Any, Dict, Optional

from supabase import Client

from app.config.permissions_config import role_has_capability
from app.core.errors import Conflict, Forbidden, UpdateFailed, ValidationError, store_error_message
from app.core.lifecycle import utc_now
from app.core.pagination import Page
from app.core.repository import EntityRepository, ListQuery, find_one
from app.core.side_effects import ActivityLogEntry, SideEffectDispatcher
from app.modules.auth.schemas import Principal
from app.modules.users.schemas import RegistrationRequest, UserCreate, UserUpdate, to_user_dto

logger = logging.getLogger(__name__)


def describe_target(name: Optional[str], email: Optional[str], role: Optional[str]) -> str:
    return f"{name or ''} ({email or ''}) [{role or ''}]"


class UserService:
    def __init__(self, supabase: Client, dispatcher: Optional[SideEffectDispatcher] = None):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.repository = EntityRepository(
            supabase, "profiles", "profiles_with_roles", search_columns=("name", "email"), label="User"
        )

    def find_role_id(self, role_name: str) -> int:
        row = find_one(self.supabase, "roles", {"name": role_name}, "id")
        if not row:
            raise ValidationError("Invalid role")
        return row["id"]

    def find_department_id(self, identifier: str) -> int:
        """Department by short_name first, then by name"""
        row = find_one(self.supabase, "departments", {"short_name": identifier}, "id") \
            or find_one(self.supabase, "departments", {"name": identifier}, "id")
        if not row:
            raise ValidationError("Invalid department")
        return row["id"]

    def list_users(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        result = self.repository.list(ListQuery(equals={"role_name": role}, search=search), page, limit)
        result.items = [to_user_dto(row) for row in result.items]
        return result

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return to_user_dto(self.repository.get(user_id))

    def create_user(self, principal: Principal, data: UserCreate) -> Dict[str, Any]:
        """Create the auth user, then complete its profile. A failed profile write removes the auth user again."""
        role_id = self.find_role_id(data.role)
        department_id = self.find_department_id(data.department)

        try:
            created = self.supabase.auth.admin.create_user({
                "email": data.email,
                "password": data.password,
                "email_confirm": True,
                "user_metadata": {"name": data.name},
            })
        except Exception as e:
            raise Conflict(f"Could not create user: {e}")
        if not created or not created.user:
            raise Conflict("Could not create user")
        user_id = created.user.id

        try:
            self.supabase.table("profiles")\
                .update({
                    "name": data.name,
                    "role_id": role_id,
                    "role_name": data.role,
                    "department_id": department_id,
                    "is_active": data.is_active,
                    "is_email_verified": True,
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Profile update for new user {user_id} failed, removing auth user: {store_error_message(e)}")
            try:
                self.supabase.auth.admin.delete_user(user_id)
            except Exception as cleanup_error:
                logger.error(f"Could not remove auth user {user_id}: {cleanup_error}")
            raise UpdateFailed(store_error_message(e))

        logger.info(f"User {user_id} created by {principal.id}")
        self._log(principal, "created", "User created",
                  f"created {describe_target(data.name, data.email, data.role)}", user_id)
        return {"id": user_id}

    def update_user(self, principal: Principal, user_id: str, data: UserUpdate) -> Dict[str, Any]:
        """Partial profile update; role and department names are resolved to ids, password goes to the auth API."""
        if data.role and not role_has_capability(principal.role_name, "users:create"):
            current = self.repository.get_row(user_id, "id, role_name")
            if current.get("role_name") != data.role:
                raise Forbidden("Not allowed to change user roles")
        updates: Dict[str, Any] = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.email is not None:
            updates["email"] = data.email
        if data.is_active is not None:
            updates["is_active"] = data.is_active
        if data.department:
            updates["department_id"] = self.find_department_id(data.department)
        if data.role:
            updates["role_id"] = self.find_role_id(data.role)
            updates["role_name"] = data.role

        if updates:
            self.repository.update(user_id, updates)
        else:
            self.repository.get_row(user_id, "id")

        if data.password:
            try:
                self.supabase.auth.admin.update_user_by_id(user_id, {"password": data.password})
            except Exception as e:
                raise UpdateFailed(f"Password update failed: {e}")

        user = self.get_user(user_id)
        changed = sorted(updates) + (["password"] if data.password else [])
        self._log(principal, "updated", "User updated",
                  f"updated {describe_target(user.get('name'), user.get('email'), user.get('role_name'))}: "
                  f"{', '.join(changed) or 'no fields'}",
                  user_id)
        return user

    def delete_user(self, principal: Principal, user_id: str) -> None:
        """Profile first (its delete trigger clears references), then the auth user, best-effort."""
        if user_id == principal.id:
            raise Forbidden("You cannot delete your own account")
        target = self.repository.get(user_id)
        self.repository.delete(user_id)

        self._log(principal, "deleted", "User deleted",
                  f"deleted {describe_target(target.get('name'), target.get('email'), target.get('role_name'))}",
                  user_id)
        try:
            self.supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"auth.admin.delete_user failed for {user_id}: {e}")
        logger.info(f"User {user_id} deleted by {principal.id}")

    def register(self, data: RegistrationRequest) -> Dict[str, Any]:
        """Public registration request. No credential is stored; it is created when an admin approves."""
        if find_one(self.supabase, "profiles", {"email": data.email}, "email"):
            raise Conflict("Email already registered")
        if find_one(self.supabase, "registration_requests", {"email": data.email, "status": "pending"}, "email"):
            raise Conflict("A pending registration request already exists")
        department_id = self.find_department_id(data.department)

        request = EntityRepository(self.supabase, "registration_requests", label="Registration request")\
            .insert({
                "name": data.name,
                "email": data.email,
                "department_id": department_id,
                "requested_role": data.requested_role,
                "status": "pending",
                "created_at": utc_now(),
            })
        logger.info(f"Registration request {request.get('id')} created for {data.email}")

        self._dispatch(ActivityLogEntry(
            type="registration",
            action="requested",
            title="New registration request",
            description=f"User {data.email} requested registration as {data.requested_role}",
            item_id=request.get("id"),
        ))
        return request

    def _log(self, principal: Principal, action: str, title: str, what: str, item_id: str) -> None:
        self._dispatch(ActivityLogEntry(
            type="user",
            action=action,
            title=title,
            description=f"{principal.describe()} {what}",
            user_id=principal.id,
            item_id=item_id,
        ))

    def _dispatch(self, effect) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(effect)
