"""Role and permission registry.

Roles are the unit of assignment, permissions the unit of decision. Routes
require capabilities (``approve_user``) and the registry answers which roles
hold them, so adding an admin tier is a registry edit rather than a route edit.

The registry is an immutable value. A default instance is built at import and
handed to the gate through a FastAPI dependency, which lets tests swap in a
registry built from a different permission set.
"""
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional


class Role(str, Enum):
    USER = "USER"
    MEMBER = "MEMBER"
    MEMBER_ADMIN = "MEMBER_ADMIN"
    CONTENT_ADMIN = "CONTENT_ADMIN"
    NEWSLETTER_ADMIN = "NEWSLETTER_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class AccountStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class Permission(str, Enum):
    # User management
    MANAGE_ALL_USERS = "manage_all_users"
    APPROVE_USER = "approve_user"
    REJECT_USER = "reject_user"
    SUSPEND_USER = "suspend_user"
    DELETE_USER = "delete_user"

    # Admin management
    CREATE_ADMIN = "create_admin"
    DELETE_ADMIN = "delete_admin"
    CHANGE_ROLE = "change_role"
    MANAGE_ADMINS = "manage_admins"

    # Newsletter
    CREATE_NEWSLETTER = "create_newsletter"
    EDIT_NEWSLETTER = "edit_newsletter"
    PUBLISH_NEWSLETTER = "publish_newsletter"
    DELETE_NEWSLETTER = "delete_newsletter"
    MANAGE_SUBSCRIBERS = "manage_subscribers"
    VIEW_NEWSLETTER_ANALYTICS = "view_newsletter_analytics"

    # Content
    MANAGE_PROJECTS = "manage_projects"
    MANAGE_LMS = "manage_lms"
    MANAGE_SCHOLARSHIPS = "manage_scholarships"
    UPLOAD_FILES = "upload_files"
    DELETE_FILES = "delete_files"
    EDIT_PAGES = "edit_pages"
    MANAGE_GALLERY = "manage_gallery"
    VIEW_CONTENT_ANALYTICS = "view_content_analytics"

    # System
    VIEW_ANALYTICS = "view_analytics"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    SYSTEM_SETTINGS = "system_settings"
    DATABASE_OPERATIONS = "database_operations"
    MANAGE_API_KEYS = "manage_api_keys"


ADMIN_ROLES: FrozenSet[str] = frozenset({
    Role.MEMBER_ADMIN.value,
    Role.CONTENT_ADMIN.value,
    Role.NEWSLETTER_ADMIN.value,
    Role.SUPER_ADMIN.value,
})

# SUPER_ADMIN is absent on purpose: its grant is the whole universe, computed
# by PermissionRegistry.
ROLE_GRANTS: Dict[str, FrozenSet[str]] = {
    Role.MEMBER_ADMIN.value: frozenset({
        Permission.MANAGE_ALL_USERS.value,
        Permission.APPROVE_USER.value,
        Permission.REJECT_USER.value,
        Permission.SUSPEND_USER.value,
        Permission.VIEW_ANALYTICS.value,
        Permission.VIEW_AUDIT_LOGS.value,
    }),
    Role.NEWSLETTER_ADMIN.value: frozenset({
        Permission.CREATE_NEWSLETTER.value,
        Permission.EDIT_NEWSLETTER.value,
        Permission.PUBLISH_NEWSLETTER.value,
        Permission.DELETE_NEWSLETTER.value,
        Permission.MANAGE_SUBSCRIBERS.value,
        Permission.VIEW_NEWSLETTER_ANALYTICS.value,
        Permission.VIEW_ANALYTICS.value,
    }),
    Role.CONTENT_ADMIN.value: frozenset({
        Permission.MANAGE_PROJECTS.value,
        Permission.MANAGE_LMS.value,
        Permission.MANAGE_SCHOLARSHIPS.value,
        Permission.UPLOAD_FILES.value,
        Permission.DELETE_FILES.value,
        Permission.EDIT_PAGES.value,
        Permission.MANAGE_GALLERY.value,
        Permission.VIEW_CONTENT_ANALYTICS.value,
        Permission.VIEW_ANALYTICS.value,
    }),
    Role.MEMBER.value: frozenset(),
    Role.USER.value: frozenset(),
}

RESOURCE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    "user": frozenset({
        Permission.MANAGE_ALL_USERS.value,
        Permission.APPROVE_USER.value,
        Permission.REJECT_USER.value,
        Permission.SUSPEND_USER.value,
    }),
    "admin": frozenset({
        Permission.CREATE_ADMIN.value,
        Permission.DELETE_ADMIN.value,
        Permission.MANAGE_ADMINS.value,
    }),
    "newsletter": frozenset({
        Permission.CREATE_NEWSLETTER.value,
        Permission.EDIT_NEWSLETTER.value,
        Permission.PUBLISH_NEWSLETTER.value,
        Permission.DELETE_NEWSLETTER.value,
    }),
    "project": frozenset({Permission.MANAGE_PROJECTS.value}),
    "lms": frozenset({Permission.MANAGE_LMS.value}),
    "scholarship": frozenset({Permission.MANAGE_SCHOLARSHIPS.value}),
}


def as_key(value) -> str:
    """Accept enum members or raw strings interchangeably."""
    return value.value if isinstance(value, Enum) else value


class PermissionRegistry:
    """Immutable role -> permission lookup.

    ``super_role`` is granted every permission in ``universe``; the grant is
    derived at construction, never listed, so a registry built with a larger
    universe hands the new permissions to the super role automatically.
    """

    __slots__ = ("_universe", "_grants", "_admin_roles", "_resources", "_super_role")

    def __init__(
        self,
        universe: Iterable[str],
        grants: Mapping[str, Iterable[str]],
        admin_roles: Iterable[str],
        resources: Mapping[str, Iterable[str]],
        super_role: str = Role.SUPER_ADMIN.value,
    ):
        universe = frozenset(as_key(p) for p in universe)
        table = {as_key(role): frozenset(as_key(p) for p in perms) for role, perms in grants.items()}
        table[super_role] = universe

        object.__setattr__(self, "_universe", universe)
        object.__setattr__(self, "_grants", MappingProxyType(table))
        object.__setattr__(self, "_admin_roles", frozenset(as_key(r) for r in admin_roles))
        object.__setattr__(self, "_resources", MappingProxyType(
            {name.lower(): frozenset(as_key(p) for p in perms) for name, perms in resources.items()}
        ))
        object.__setattr__(self, "_super_role", super_role)

    def __setattr__(self, name, value):
        raise AttributeError("PermissionRegistry is immutable")

    @classmethod
    def from_defaults(cls) -> "PermissionRegistry":
        return cls(
            universe=[p.value for p in Permission],
            grants=ROLE_GRANTS,
            admin_roles=ADMIN_ROLES,
            resources=RESOURCE_PERMISSIONS,
        )

    def with_permissions(self, *extra: str) -> "PermissionRegistry":
        """Return a copy whose permission universe also contains ``extra``."""
        grants = {role: perms for role, perms in self._grants.items() if role != self._super_role}
        return PermissionRegistry(
            universe=self._universe | {as_key(p) for p in extra},
            grants=grants,
            admin_roles=self._admin_roles,
            resources=self._resources,
            super_role=self._super_role,
        )

    @property
    def universe(self) -> FrozenSet[str]:
        return self._universe

    def permissions_of(self, role: Optional[str]) -> FrozenSet[str]:
        """Permission set of ``role``; unknown or missing roles hold nothing."""
        if role is None:
            return frozenset()
        return self._grants.get(as_key(role), frozenset())

    def has_permission(self, role: Optional[str], permission: str) -> bool:
        return as_key(permission) in self.permissions_of(role)

    def has_any_permission(self, role: Optional[str], permissions: Iterable[str]) -> bool:
        """True iff ``role`` holds at least one of ``permissions``. Empty input is False."""
        held = self.permissions_of(role)
        return any(as_key(p) in held for p in permissions)

    def has_all_permissions(self, role: Optional[str], permissions: Iterable[str]) -> bool:
        """True iff ``role`` holds every one of ``permissions``.

        Requiring zero permissions is satisfied by every role, including
        unknown ones.
        """
        held = self.permissions_of(role)
        return all(as_key(p) in held for p in permissions)

    def is_admin_role(self, role: Optional[str]) -> bool:
        return role is not None and as_key(role) in self._admin_roles

    def can_access_resource(self, role: Optional[str], resource_type: Optional[str]) -> bool:
        """Capability discovery for clients; unknown resource types return False."""
        if not resource_type:
            return False
        required = self._resources.get(resource_type.lower())
        if required is None:
            return False
        return self.has_any_permission(role, required)

    def accessible_resources(self, role: Optional[str]) -> list:
        return sorted(name for name in self._resources if self.can_access_resource(role, name))


default_registry = PermissionRegistry.from_defaults()


def is_valid_role(role) -> bool:
    return as_key(role) in {r.value for r in Role}


def is_valid_status(status) -> bool:
    return as_key(status) in {s.value for s in AccountStatus}


def permissions_of(role: Optional[str]) -> FrozenSet[str]:
    return default_registry.permissions_of(role)


def has_permission(role: Optional[str], permission: str) -> bool:
    return default_registry.has_permission(role, permission)


def has_any_permission(role: Optional[str], permissions: Iterable[str]) -> bool:
    return default_registry.has_any_permission(role, permissions)


def has_all_permissions(role: Optional[str], permissions: Iterable[str]) -> bool:
    return default_registry.has_all_permissions(role, permissions)


def is_admin_role(role: Optional[str]) -> bool:
    return default_registry.is_admin_role(role)


def can_access_resource(role: Optional[str], resource_type: Optional[str]) -> bool:
    return default_registry.can_access_resource(role, resource_type)
