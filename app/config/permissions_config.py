"""
Role capability configuration.
Declares which capabilities each profile role holds for the user management
endpoints, so routes depend on a capability name instead of branching on
role strings.
"""
from typing import Dict, FrozenSet, List

# Modules and the capabilities they expose
MODULES = {
    "users": {
        "resource": "users",
        "actions": ["list", "get", "create", "update", "delete"],
        "description": "User and profile management"
    },
}

_USER_ADMIN = frozenset({"users:list", "users:get", "users:create", "users:update", "users:delete"})

# Capabilities per role_name stored on profiles
ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "admin": _USER_ADMIN,
    "technician": frozenset({"users:list", "users:get", "users:update"}),
    "requester": frozenset(),

    # Legacy role names still present on older profiles
    "platform_admin": _USER_ADMIN,
    "operations_admin": _USER_ADMIN,
    "service_admin": frozenset({"users:list", "users:get", "users:create", "users:update"}),
    "support_technician": frozenset({"users:list", "users:get"}),
}


def get_all_capabilities() -> List[str]:
    """Every capability name declared in MODULES, e.g. 'users:list'."""
    return [
        f"{config['resource']}:{action}"
        for config in MODULES.values()
        for action in config["actions"]
    ]


def get_role_capabilities(role_name: str) -> FrozenSet[str]:
    """Capabilities for a role; unknown roles get none."""
    return ROLE_CAPABILITIES.get(role_name, frozenset())


def role_has_capability(role_name: str, capability: str) -> bool:
    return capability in get_role_capabilities(role_name)
