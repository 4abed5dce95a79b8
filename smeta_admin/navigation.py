from __future__ import annotations

from typing import Iterable

from smeta_admin.models import NavItem, Role
from smeta_admin.roles import has_role, roles


def nav(title: str, target: str, *allowed: str) -> NavItem:
    return NavItem(title=title, target=target, required_roles=roles(*allowed))


DASHBOARD_MAIN_NAV: tuple[NavItem, ...] = (
    nav("Bosh sahifa", "/"),
    nav("Loyihalar", "/projects"),
    nav("So'rovlar", "/requests", "DIREKTOR", "BOSS", "BUGALTERIYA", "SNABJENIYA"),
    nav("Hisobotlar", "/reports", "DIREKTOR", "BOSS", "BUGALTERIYA", "PTO"),
    nav("Xodimlar", "/users", "DIREKTOR", "BOSS"),
)

DASHBOARD_ROLE_NAV: tuple[NavItem, ...] = (
    nav("Kassa", "/kassa"),
    nav("Moliya", "/finance", "DIREKTOR", "BOSS", "BUGALTERIYA"),
    nav("Ombor", "/warehouse", "DIREKTOR", "BOSS", "SKLAD"),
    nav("Yetkazuvchilar", "/suppliers", "DIREKTOR", "BOSS", "SNABJENIYA"),
    nav("Ustalar", "/workers", "DIREKTOR", "BOSS", "PRORAB", "BUGALTERIYA"),
    nav("Tekshirish", "/validation", "DIREKTOR", "BOSS", "PTO"),
)

DASHBOARD_SETTINGS_NAV: tuple[NavItem, ...] = (
    nav("Sozlamalar", "/settings", "DIREKTOR", "BOSS"),
)

ADMIN_SYSTEM_NAV: tuple[NavItem, ...] = (
    nav("Bosh sahifa", "/admin"),
)

ADMIN_MANAGEMENT_NAV: tuple[NavItem, ...] = (
    nav("Operatorlar", "/admin/operators", "SUPER_ADMIN"),
    nav("Kompaniyalar", "/admin/organizations"),
)

DASHBOARD_SECTIONS: tuple[tuple[str, tuple[NavItem, ...]], ...] = (
    ("Asosiy", DASHBOARD_MAIN_NAV),
    ("Bo'limlar", DASHBOARD_ROLE_NAV),
    ("Sozlamalar", DASHBOARD_SETTINGS_NAV),
)

ADMIN_SECTIONS: tuple[tuple[str, tuple[NavItem, ...]], ...] = (
    ("Tizim", ADMIN_SYSTEM_NAV),
    ("Boshqaruv", ADMIN_MANAGEMENT_NAV),
)


def visible_items(items: Iterable[NavItem], role: Role | str | None) -> list[NavItem]:
    """Entries without a role restriction are always kept; the guard for the
    area has already decided the session may be here."""
    return [item for item in items if has_role(role, item.required_roles)]


def _visible_sections(
    sections: Iterable[tuple[str, tuple[NavItem, ...]]],
    role: Role | str | None,
) -> list[tuple[str, list[NavItem]]]:
    visible: list[tuple[str, list[NavItem]]] = []
    for title, items in sections:
        kept = visible_items(items, role)
        if kept:
            visible.append((title, kept))
    return visible


def dashboard_sections(role: Role | str | None) -> list[tuple[str, list[NavItem]]]:
    return _visible_sections(DASHBOARD_SECTIONS, role)


def admin_sections(role: Role | str | None) -> list[tuple[str, list[NavItem]]]:
    return _visible_sections(ADMIN_SECTIONS, role)


def known_routes() -> frozenset[str]:
    """Every path some navigation entry points at."""
    return frozenset(
        item.target
        for _, items in DASHBOARD_SECTIONS + ADMIN_SECTIONS
        for item in items
    )
