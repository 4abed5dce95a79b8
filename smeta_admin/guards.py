from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable

from smeta_admin.models import Role
from smeta_admin.roles import ADMIN_ROLES, AllowedRoles, can_access_route, has_role, roles
from smeta_admin.session import SessionStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
REGISTER_PATH = "/register"
HOME_PATH = "/"
ADMIN_HOME_PATH = "/admin"

PUBLIC_PATHS = (LOGIN_PATH, REGISTER_PATH)

_MAX_REDIRECTS = 5

# Guards redirect here, so these always count as known routes.
_GUARD_TARGETS = frozenset({HOME_PATH, LOGIN_PATH, ADMIN_HOME_PATH})


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: str | None = None
    reason: str = ""

    @staticmethod
    def allow() -> "GuardDecision":
        return GuardDecision(allowed=True)

    @staticmethod
    def redirect(path: str, reason: str) -> "GuardDecision":
        return GuardDecision(allowed=False, redirect_to=path, reason=reason)


def landing_path(role: Role | None) -> str:
    if role in ADMIN_ROLES:
        return ADMIN_HOME_PATH
    return HOME_PATH


def _in_area(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


class AuthGuard:
    """Lets any authenticated session through; everyone else goes to login."""

    def __init__(self, store: SessionStore):
        self._store = store

    def check(self, path: str = HOME_PATH) -> GuardDecision:
        if not self._store.state.is_authenticated:
            return GuardDecision.redirect(LOGIN_PATH, "not signed in")
        return GuardDecision.allow()


class AdminGuard(AuthGuard):
    """Admin-tier area: SUPER_ADMIN and OPERATOR only.

    A signed-in organization user is sent to the dashboard home, not to
    login, so "not signed in" and "not allowed here" stay distinguishable.
    """

    def check(self, path: str = ADMIN_HOME_PATH) -> GuardDecision:
        decision = super().check(path)
        if not decision.allowed:
            return decision

        role = self._store.role
        if not has_role(role, ADMIN_ROLES):
            return GuardDecision.redirect(HOME_PATH, "admin tier required")
        if not can_access_route(role, path):
            return GuardDecision.redirect(ADMIN_HOME_PATH, "role not allowed on this admin page")
        return GuardDecision.allow()


class RouteGuard(AuthGuard):
    """Dashboard area: authenticated, plus the per-route role table."""

    def check(self, path: str = HOME_PATH) -> GuardDecision:
        decision = super().check(path)
        if not decision.allowed:
            return decision

        role = self._store.role
        if not can_access_route(role, path):
            return GuardDecision.redirect(landing_path(role), "role not allowed on this page")
        return GuardDecision.allow()


class RoleGuard(AuthGuard):
    def __init__(self, store: SessionStore, allowed: AllowedRoles, redirect_to: str = HOME_PATH):
        super().__init__(store)
        self._allowed = roles(*allowed) if allowed else frozenset()
        self._redirect_to = redirect_to

    def check(self, path: str = HOME_PATH) -> GuardDecision:
        decision = super().check(path)
        if not decision.allowed:
            return decision
        if not has_role(self._store.role, self._allowed):
            return GuardDecision.redirect(self._redirect_to, "role not allowed")
        return GuardDecision.allow()


class GuestGuard(AuthGuard):
    """Login and registration screens; signed-in sessions go to their landing page."""

    def check(self, path: str = LOGIN_PATH) -> GuardDecision:
        state = self._store.state
        if state.is_authenticated:
            return GuardDecision.redirect(landing_path(state.role), "already signed in")
        return GuardDecision.allow()


class RoleGate:
    """In-page visibility switch for panels limited to some roles."""

    def __init__(self, store: SessionStore, allowed: AllowedRoles):
        self._store = store
        self._allowed = roles(*allowed) if allowed else frozenset()

    @property
    def visible(self) -> bool:
        return has_role(self._store.role, self._allowed)


class Navigator:
    """Routes a path to its guard.

    When ``routes`` is given, a path outside it is sent to ``HOME_PATH``
    before any guard runs.
    """

    def __init__(self, store: SessionStore, routes: Iterable[str] | None = None):
        self._store = store
        self._routes = (frozenset(routes) | _GUARD_TARGETS) if routes is not None else None
        self._guest_guard = GuestGuard(store)
        self._admin_guard = AdminGuard(store)
        self._route_guard = RouteGuard(store)

    def guard_for(self, path: str) -> AuthGuard:
        if any(_in_area(path, public) for public in PUBLIC_PATHS):
            return self._guest_guard
        if _in_area(path, ADMIN_HOME_PATH):
            return self._admin_guard
        return self._route_guard

    def check(self, path: str) -> GuardDecision:
        if self._routes is not None and path not in self._routes:
            return GuardDecision.redirect(HOME_PATH, "unknown page")
        return self.guard_for(path).check(path)

    def resolve(self, path: str) -> str:
        """Follow guard redirects from ``path`` to the page that will render."""
        current = path or HOME_PATH
        visited: list[str] = []
        while len(visited) < _MAX_REDIRECTS:
            decision = self.check(current)
            if decision.allowed or decision.redirect_to is None:
                return current
            logger.debug("Redirecting %s -> %s (%s)", current, decision.redirect_to, decision.reason)
            visited.append(current)
            current = decision.redirect_to
            if current in visited:
                break

        raise RuntimeError("Navigation redirect loop: " + " -> ".join(visited + [current]))
