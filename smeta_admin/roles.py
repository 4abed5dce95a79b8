"""Role policy: who may see or reach what.

Every check is a flat membership test over the closed ``Role`` enumeration.
No role inherits another role's rights; a role that should see something is
listed explicitly wherever it is allowed.
"""

from __future__ import annotations

from typing import Iterable

from smeta_admin.models import Role, UnknownRoleError

RoleLike = Role | str
AllowedRoles = Iterable[RoleLike] | None


class PermissionDeniedError(PermissionError):
    def __init__(self, permission: str, role: Role | None):
        role_name = role.value if role is not None else "anonymous"
        super().__init__(f"Permission denied: {permission} (role {role_name})")
        self.permission = permission
        self.role = role


ADMIN_ROLES: frozenset[Role] = frozenset({Role.SUPER_ADMIN, Role.OPERATOR})
ORGANIZATION_ROLES: frozenset[Role] = frozenset(set(Role) - ADMIN_ROLES)


def roles(*names: RoleLike) -> frozenset[Role]:
    return frozenset(Role.parse(name) for name in names)


def coerce_role(role: RoleLike | None) -> Role | None:
    """Return ``role`` as a ``Role``, or ``None`` when missing or unknown."""
    if role is None or role == "":
        return None
    try:
        return Role.parse(role)
    except UnknownRoleError:
        return None


def has_role(role: RoleLike | None, allowed: AllowedRoles) -> bool:
    allowed_set = roles(*allowed) if allowed else frozenset()
    if not allowed_set:
        return True

    current = coerce_role(role)
    if current is None:
        return False
    return current in allowed_set


# Longest prefixes first; the first matching prefix decides.
ROUTE_ROLES: tuple[tuple[str, frozenset[Role]], ...] = (
    ("/admin/operators", roles("SUPER_ADMIN")),
    ("/admin", ADMIN_ROLES),
    ("/users", roles("DIREKTOR", "BOSS")),
    ("/kassa", roles("DIREKTOR", "BOSS", "BUGALTERIYA", "PTO", "SNABJENIYA", "SKLAD", "PRORAB")),
    ("/finance", roles("DIREKTOR", "BOSS", "BUGALTERIYA")),
    ("/warehouse", roles("DIREKTOR", "BOSS", "SKLAD")),
    ("/suppliers", roles("DIREKTOR", "BOSS", "SNABJENIYA")),
    ("/workers", roles("DIREKTOR", "BOSS", "PRORAB", "BUGALTERIYA")),
    ("/validation", roles("DIREKTOR", "BOSS", "PTO")),
    ("/reports", roles("DIREKTOR", "BOSS", "BUGALTERIYA", "PTO")),
    ("/settings", roles("DIREKTOR", "BOSS")),
)


def _matches_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def allowed_roles_for(path: str) -> frozenset[Role]:
    normalized = "/" + path.strip().strip("/") if path.strip("/ ") else "/"
    for prefix, allowed in ROUTE_ROLES:
        if _matches_prefix(normalized, prefix):
            return allowed
    return frozenset()


def can_access_route(role: RoleLike | None, path: str) -> bool:
    if coerce_role(role) is None:
        return False
    return has_role(role, allowed_roles_for(path))


_VIEWERS = ("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO", "SNABJENIYA", "SKLAD", "PRORAB")

PERMISSIONS: dict[str, frozenset[Role]] = {
    # Admin
    "admin:operators": roles("SUPER_ADMIN"),
    "admin:organizations": ADMIN_ROLES,
    "admin:org_users": ADMIN_ROLES,
    "admin:org_projects": ADMIN_ROLES,
    # Organization
    "org:create": roles("DIREKTOR"),
    "org:edit": roles("DIREKTOR"),
    "org:invite": roles("DIREKTOR"),
    # Projects
    "project:create": roles("BOSS", "DIREKTOR"),
    "project:edit": roles("BOSS", "DIREKTOR"),
    "project:delete": roles("BOSS"),
    "project:view": roles(*_VIEWERS),
    # Smeta
    "smeta:upload": roles("DIREKTOR", "PTO"),
    "smeta:edit": roles("DIREKTOR", "PTO"),
    "smeta:delete": roles("DIREKTOR"),
    "smeta:view": roles(*_VIEWERS),
    "smeta:validate": roles("PTO", "DIREKTOR"),
    # Purchase requests
    "request:create": roles("PRORAB", "SNABJENIYA", "DIREKTOR"),
    "request:approve": roles("DIREKTOR"),
    "request:reject": roles("DIREKTOR"),
    "request:view_all": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO", "SNABJENIYA"),
    "request:view_own": roles("PRORAB", "SKLAD"),
    "request:cancel_own": roles("PRORAB", "SNABJENIYA", "DIREKTOR"),
    # Income / expense
    "income:create": roles("BUGALTERIYA", "DIREKTOR"),
    "income:edit": roles("BUGALTERIYA", "DIREKTOR"),
    "income:delete": roles("DIREKTOR"),
    "income:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA"),
    "expense:create": roles("BUGALTERIYA", "PRORAB", "DIREKTOR"),
    "expense:edit": roles("BUGALTERIYA", "DIREKTOR"),
    "expense:delete": roles("DIREKTOR"),
    "expense:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO"),
    # Cash register and accounts
    "kashlok:manage": roles("BUGALTERIYA", "DIREKTOR"),
    "kashlok:view_all": roles("DIREKTOR", "BUGALTERIYA"),
    "kashlok:view_own": roles("PRORAB"),
    "kashlok:transfer": roles("BUGALTERIYA", "DIREKTOR"),
    "account:manage": roles("BUGALTERIYA", "DIREKTOR"),
    "account:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA"),
    # Suppliers and orders
    "supplier:create": roles("SNABJENIYA", "DIREKTOR"),
    "supplier:edit": roles("SNABJENIYA", "DIREKTOR"),
    "supplier:delete": roles("DIREKTOR"),
    "supplier:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "SNABJENIYA"),
    "order:create": roles("SNABJENIYA", "DIREKTOR"),
    "order:edit": roles("SNABJENIYA", "DIREKTOR"),
    "order:delete": roles("DIREKTOR"),
    "order:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "SNABJENIYA", "SKLAD"),
    "delivery:confirm": roles("SNABJENIYA", "SKLAD"),
    "supplier_debt:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "SNABJENIYA"),
    "supplier_debt:pay": roles("BUGALTERIYA", "DIREKTOR"),
    # Workers and work logs
    "worker:create": roles("PRORAB", "DIREKTOR"),
    "worker:edit": roles("PRORAB", "DIREKTOR"),
    "worker:delete": roles("DIREKTOR"),
    "worker:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO", "PRORAB"),
    "worker:pay": roles("BUGALTERIYA", "PRORAB", "DIREKTOR"),
    "worklog:create": roles("PRORAB"),
    "worklog:edit": roles("PRORAB", "PTO", "DIREKTOR"),
    "worklog:delete": roles("DIREKTOR"),
    "worklog:view": roles("BOSS", "DIREKTOR", "PTO", "BUGALTERIYA", "PRORAB"),
    "worklog:validate": roles("PTO", "DIREKTOR"),
    # Warehouse
    "warehouse:create": roles("DIREKTOR", "SKLAD"),
    "warehouse:edit": roles("DIREKTOR", "SKLAD"),
    "warehouse:delete": roles("DIREKTOR"),
    "warehouse:view": roles("BOSS", "DIREKTOR", "SKLAD", "PRORAB", "SNABJENIYA"),
    "warehouse:receive": roles("SKLAD"),
    "warehouse:issue": roles("SKLAD"),
    "warehouse:transfer": roles("SKLAD", "DIREKTOR"),
    "inventory:view": roles("BOSS", "DIREKTOR", "SKLAD", "SNABJENIYA", "PRORAB"),
    # Receipts
    "receipt:submit": roles("PRORAB", "SNABJENIYA", "BUGALTERIYA", "DIREKTOR"),
    "receipt:view_all": roles("DIREKTOR", "BUGALTERIYA", "PTO"),
    "receipt:view_own": roles("PRORAB", "SNABJENIYA"),
    "receipt:delete": roles("DIREKTOR"),
    # Reports and dashboard
    "report:view": roles(*_VIEWERS),
    "report:export": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO"),
    "dashboard:view": roles(*_VIEWERS),
    "statistics:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA"),
    "debt:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "SNABJENIYA", "PRORAB"),
    # Kassa
    "kassa:view": roles(*_VIEWERS),
    "kassa:request_money": roles("BOSS", "DIREKTOR", "PTO", "SNABJENIYA", "SKLAD", "PRORAB"),
    "kassa:add_expense": roles(*_VIEWERS),
    "cash_request:create": roles("BOSS", "DIREKTOR", "PTO", "SNABJENIYA", "SKLAD", "PRORAB"),
    "cash_request:approve": roles("BOSS", "DIREKTOR", "BUGALTERIYA"),
    # Audit, users, telegram
    "audit:view": roles("DIREKTOR", "BUGALTERIYA"),
    "user:invite": roles("DIREKTOR"),
    "user:edit": roles("DIREKTOR"),
    "user:delete": roles("DIREKTOR"),
    "user:view": roles("BOSS", "DIREKTOR", "BUGALTERIYA", "PTO", "SNABJENIYA"),
    "telegram:connect": roles("DIREKTOR"),
    "telegram:disconnect": roles("DIREKTOR"),
}


def has_permission(role: RoleLike | None, permission: str) -> bool:
    allowed = PERMISSIONS[permission]
    current = coerce_role(role)
    return current is not None and current in allowed


def check_permission(role: RoleLike | None, permission: str) -> None:
    if not has_permission(role, permission):
        raise PermissionDeniedError(permission, coerce_role(role))


ROLE_LEVELS: dict[Role, int] = {
    Role.SUPER_ADMIN: 10,
    Role.OPERATOR: 9,
    Role.DIREKTOR: 7,
    Role.BOSS: 6,
    Role.BUGALTERIYA: 5,
    Role.PTO: 5,
    Role.SNABJENIYA: 5,
    Role.SKLAD: 4,
    Role.MODERATOR: 4,
    Role.PRORAB: 3,
    Role.HAYDOVCHI: 2,
}


def can_assign_role(assigner: RoleLike, target: RoleLike) -> bool:
    """Whether a user holding ``assigner`` may give someone the ``target`` role."""
    assigner_role = Role.parse(assigner)
    target_role = Role.parse(target)

    if assigner_role is Role.SUPER_ADMIN:
        return True
    if assigner_role is Role.OPERATOR:
        return target_role not in ADMIN_ROLES
    if assigner_role is Role.DIREKTOR:
        return True
    if target_role in (Role.DIREKTOR, Role.BOSS):
        return False
    return ROLE_LEVELS[assigner_role] > ROLE_LEVELS[target_role]
