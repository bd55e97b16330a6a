"""Tests for the role/permission registry"""
import pytest

from membership.utils.permissions import (
    ADMIN_ROLES,
    Permission,
    PermissionRegistry,
    Role,
    can_access_resource,
    default_registry,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_admin_role,
    permissions_of,
)

ALL_ROLES = [r.value for r in Role]
ALL_PERMISSIONS = [p.value for p in Permission]


@pytest.mark.parametrize("role", ALL_ROLES)
def test_has_permission_matches_permission_set(role):
    """Test has_permission agrees with permissions_of for every role/permission pair"""
    granted = permissions_of(role)
    for permission in ALL_PERMISSIONS:
        assert has_permission(role, permission) == (permission in granted)


def test_super_admin_holds_every_permission():
    """Test SUPER_ADMIN resolves to the whole permission universe"""
    assert permissions_of(Role.SUPER_ADMIN) == frozenset(ALL_PERMISSIONS)
    assert default_registry.permissions_of("SUPER_ADMIN") == default_registry.universe


def test_super_admin_gains_new_permissions_automatically():
    """Test a permission added to the universe is granted to SUPER_ADMIN only"""
    registry = default_registry.with_permissions("manage_events")

    assert registry.has_permission(Role.SUPER_ADMIN, "manage_events")
    for role in ALL_ROLES:
        if role != Role.SUPER_ADMIN.value:
            assert not registry.has_permission(role, "manage_events")

    # The original registry is untouched
    assert not default_registry.has_permission(Role.SUPER_ADMIN, "manage_events")


def test_registry_built_from_scratch_computes_super_role():
    """Test the super role's grant is derived, not listed"""
    registry = PermissionRegistry(
        universe=["a", "b", "c"],
        grants={"EDITOR": ["a"]},
        admin_roles=["EDITOR", "SUPER_ADMIN"],
        resources={"thing": ["b"]},
    )
    assert registry.permissions_of("SUPER_ADMIN") == frozenset({"a", "b", "c"})
    assert registry.can_access_resource("SUPER_ADMIN", "Thing")
    assert not registry.can_access_resource("EDITOR", "thing")


@pytest.mark.parametrize("role", ALL_ROLES + ["UNKNOWN_ROLE"])
def test_empty_permission_lists(role):
    """Test requiring nothing always passes and asking for any of nothing never does"""
    assert has_all_permissions(role, []) is True
    assert has_any_permission(role, []) is False


@pytest.mark.parametrize("role", [Role.MEMBER.value, Role.USER.value])
def test_non_admin_roles_hold_nothing(role):
    """Test MEMBER and USER have no permissions and are not admin roles"""
    assert permissions_of(role) == frozenset()
    assert is_admin_role(role) is False


@pytest.mark.parametrize("role", sorted(ADMIN_ROLES))
def test_admin_tiers_are_admin_roles(role):
    """Test the four admin tiers are recognised"""
    assert is_admin_role(role) is True


def test_unknown_role_never_raises():
    """Test unknown and missing roles resolve to an empty permission set"""
    assert permissions_of("NOT_A_ROLE") == frozenset()
    assert permissions_of(None) == frozenset()
    assert has_permission("NOT_A_ROLE", "approve_user") is False
    assert is_admin_role(None) is False


def test_member_admin_grants():
    """Test the member admin tier manages accounts but not admins"""
    role = Role.MEMBER_ADMIN
    assert has_all_permissions(role, ["approve_user", "reject_user", "suspend_user", "view_audit_logs"])
    assert not has_permission(role, "create_admin")
    assert not has_permission(role, "delete_user")


def test_any_vs_all_semantics():
    """Test OR and AND semantics over a mixed permission list"""
    mixed = ["approve_user", "publish_newsletter"]
    assert has_any_permission(Role.MEMBER_ADMIN, mixed)
    assert not has_all_permissions(Role.MEMBER_ADMIN, mixed)
    assert has_all_permissions(Role.SUPER_ADMIN, mixed)


@pytest.mark.parametrize("role,resource,expected", [
    (Role.CONTENT_ADMIN, "project", True),
    (Role.CONTENT_ADMIN, "LMS", True),
    (Role.CONTENT_ADMIN, "scholarship", True),
    (Role.CONTENT_ADMIN, "newsletter", False),
    (Role.NEWSLETTER_ADMIN, "Newsletter", True),
    (Role.NEWSLETTER_ADMIN, "user", False),
    (Role.MEMBER_ADMIN, "user", True),
    (Role.MEMBER_ADMIN, "admin", False),
    (Role.SUPER_ADMIN, "admin", True),
    (Role.USER, "user", False),
    (Role.SUPER_ADMIN, "spaceship", False),
    (Role.SUPER_ADMIN, "", False),
])
def test_can_access_resource(role, resource, expected):
    """Test resource capability discovery, including unknown resource types"""
    assert can_access_resource(role, resource) is expected


def test_registry_is_immutable():
    """Test the registry and its tables cannot be modified after construction"""
    with pytest.raises(AttributeError):
        default_registry._grants = {}
    with pytest.raises(TypeError):
        default_registry._grants["USER"] = frozenset({"approve_user"})
    assert permissions_of(Role.USER) == frozenset()


def test_accessible_resources_for_content_admin():
    """Test the resource list reported to the admin UI"""
    assert default_registry.accessible_resources(Role.CONTENT_ADMIN) == ["lms", "project", "scholarship"]
    assert default_registry.accessible_resources(Role.USER) == []
