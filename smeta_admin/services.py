from __future__ import annotations

from typing import Any

from smeta_admin.apis import AdminApi, AuthApi, ProjectsApi
from smeta_admin.auth import AuthManager
from smeta_admin.config import AppSettings
from smeta_admin.http import HttpClient
from smeta_admin.models import AuthState
from smeta_admin.roles import check_permission, has_permission
from smeta_admin.session import SessionStore
from smeta_admin.storage import SessionStorage


class DashboardService:
    def __init__(
        self,
        auth_manager: AuthManager,
        store: SessionStore,
        projects_api: ProjectsApi,
        admin_api: AdminApi,
        request_timeout_seconds: int,
    ):
        self._auth_manager = auth_manager
        self._store = store
        self._projects_api = projects_api
        self._admin_api = admin_api
        self._request_timeout_seconds = request_timeout_seconds

    @property
    def request_timeout_seconds(self) -> int:
        return self._request_timeout_seconds

    @property
    def store(self) -> SessionStore:
        return self._store

    def auth_state(self) -> AuthState:
        return self._auth_manager.get_auth_state()

    def sign_in(self, phone: str, password: str) -> AuthState:
        return self._auth_manager.sign_in(phone, password)

    def sign_out(self) -> AuthState:
        return self._auth_manager.sign_out()

    def restore(self) -> AuthState:
        return self._auth_manager.restore()

    def can(self, permission: str) -> bool:
        return has_permission(self._store.role, permission)

    def list_projects(
        self,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        check_permission(self._store.role, "project:view")
        return self._projects_api.list_projects(page=page, limit=limit, status=status, search=search)

    def get_project(self, project_id: str) -> dict[str, Any]:
        check_permission(self._store.role, "project:view")
        return self._projects_api.get(project_id)

    def create_project(self, payload: dict[str, Any]) -> dict[str, Any]:
        check_permission(self._store.role, "project:create")
        name = str(payload.get("name", "")).strip()
        if not name:
            raise ValueError("Project name is required")
        return self._projects_api.create({**payload, "name": name})

    def update_project(self, project_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        check_permission(self._store.role, "project:edit")
        return self._projects_api.update(project_id, payload)

    def delete_project(self, project_id: str) -> None:
        check_permission(self._store.role, "project:delete")
        self._projects_api.delete(project_id)

    def admin_stats(self) -> dict[str, Any]:
        check_permission(self._store.role, "admin:organizations")
        return self._admin_api.stats()

    def list_organizations(self, page: int | None = None, limit: int | None = None) -> dict[str, Any]:
        check_permission(self._store.role, "admin:organizations")
        return self._admin_api.organizations(page=page, limit=limit)


def build_service(settings: AppSettings | None = None) -> DashboardService:
    settings = settings or AppSettings.from_env()
    store = SessionStore(SessionStorage(settings.session_store_path))
    http_client = HttpClient(
        settings,
        token_provider=lambda: store.access_token,
        on_unauthorized=store.expire,
    )
    auth_api = AuthApi(settings, http_client)
    return DashboardService(
        auth_manager=AuthManager(store, auth_api),
        store=store,
        projects_api=ProjectsApi(settings, http_client),
        admin_api=AdminApi(settings, http_client),
        request_timeout_seconds=settings.timeout_seconds,
    )
