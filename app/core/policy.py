"""
Role policy engine.

Pure decision function mapping (role, entity state) to the fields and actions a
caller may edit. Used both by the read-only permissions endpoints (the UI asks
what to render) and as the server-side gate inside the update and status paths.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field


class Role(str, Enum):
    ADMIN = "admin"
    TECHNICIAN = "technician"
    REQUESTER = "requester"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["Role"]:
        try:
            return cls(name)
        except ValueError:
            return None


PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.TECHNICIAN})

# Fields a technician may touch while the entity is still in its initial status
CONTENT_FIELDS = ("title", "description", "type", "priority", "assignedTo")


class PermissionView(BaseModel):
    allowed_fields: List[str] = Field(default_factory=list, alias="allowedFields")
    can_edit_status: bool = Field(False, alias="canEditStatus")
    can_edit_area: bool = Field(False, alias="canEditArea")
    can_edit_content: bool = Field(False, alias="canEditContent")
    is_read_only: bool = Field(True, alias="isReadOnly")
    message: str = ""

    class Config:
        frozen = True
        populate_by_name = True


def _admin_view(
    entity: Optional[Mapping[str, Any]], open_status: str, area_field: str, extra_fields: Sequence[str]
) -> PermissionView:
    return PermissionView(
        allowed_fields=["title", "description", "type", "priority", "status", area_field, "assignedTo", *extra_fields],
        can_edit_status=True,
        can_edit_area=True,
        can_edit_content=True,
        is_read_only=False,
        message="Administrator with full permissions",
    )


def _technician_view(
    entity: Optional[Mapping[str, Any]], open_status: str, area_field: str, extra_fields: Sequence[str]
) -> PermissionView:
    if entity is None:
        return PermissionView(
            allowed_fields=list(CONTENT_FIELDS),
            can_edit_status=False,
            can_edit_area=True,
            can_edit_content=True,
            is_read_only=False,
            message="Technician can create",
        )
    is_open = entity.get("status") == open_status
    return PermissionView(
        allowed_fields=list(CONTENT_FIELDS),
        can_edit_status=False,
        can_edit_area=False,
        can_edit_content=is_open,
        is_read_only=not is_open,
        message="Technician can edit content" if is_open else "Technician cannot edit in this status",
    )


def _no_access_view(
    entity: Optional[Mapping[str, Any]], open_status: str, area_field: str, extra_fields: Sequence[str] = ()
) -> PermissionView:
    return PermissionView(message="User without edit permissions")


_POLICIES: Dict[Role, Callable[[Optional[Mapping[str, Any]], str, str, Sequence[str]], PermissionView]] = {
    Role.ADMIN: _admin_view,
    Role.TECHNICIAN: _technician_view,
    Role.REQUESTER: _no_access_view,
}


def _check_coverage(policies: Mapping[Role, Any]) -> None:
    missing = set(Role) - set(policies)
    if missing:
        raise RuntimeError(f"No policy for roles: {', '.join(sorted(r.value for r in missing))}")


_check_coverage(_POLICIES)


def compute_permissions(
    role: Optional[Role],
    entity: Optional[Mapping[str, Any]] = None,
    *,
    open_status: str = "open",
    area_field: str = "affectedArea",
    extra_fields: Sequence[str] = (),
) -> PermissionView:
    """Permission view for `role` on `entity` (None when creating).

    `open_status` is the entity's initial status, the only one in which a
    technician may still edit content. `extra_fields` are entity-specific fields
    only an administrator may edit. Unknown roles (None) are read-only.
    """
    if role is None:
        return _no_access_view(entity, open_status, area_field)
    return _POLICIES[role](entity, open_status, area_field, tuple(extra_fields))
