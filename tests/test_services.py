from __future__ import annotations

import pytest

from conftest import FakeRequestsSession, FakeResponse, FakeStorage, make_session, make_token
from smeta_admin.apis import AdminApi, AuthApi, ProjectsApi
from smeta_admin.auth import AuthManager
from smeta_admin.http import HttpClient, UnauthorizedError
from smeta_admin.models import Role
from smeta_admin.roles import PermissionDeniedError
from smeta_admin.services import DashboardService, build_service
from smeta_admin.session import SessionStore


def _service(settings, role, *replies):
    store = SessionStore(FakeStorage())
    if role is not None:
        store.login(make_session(role=role))
    http_client = HttpClient(settings, token_provider=lambda: store.access_token, on_unauthorized=store.expire)
    fake = FakeRequestsSession(*replies)
    http_client._session = fake
    service = DashboardService(
        auth_manager=AuthManager(store, AuthApi(settings, http_client)),
        store=store,
        projects_api=ProjectsApi(settings, http_client),
        admin_api=AdminApi(settings, http_client),
        request_timeout_seconds=settings.timeout_seconds,
    )
    return service, fake, store


def test_list_projects_passes_filters(settings):
    service, fake, _ = _service(settings, Role.PRORAB, FakeResponse(200, {"data": [], "total": 0}))

    assert service.list_projects(page=1, search="tower") == {"data": [], "total": 0}
    assert fake.calls[0]["params"] == {"page": 1, "search": "tower"}


def test_create_project_requires_permission(settings):
    service, fake, _ = _service(settings, Role.PRORAB)

    with pytest.raises(PermissionDeniedError):
        service.create_project({"name": "Tower"})
    assert fake.calls == []


def test_create_project_trims_and_validates_name(settings):
    service, fake, _ = _service(settings, Role.BOSS, FakeResponse(201, {"id": "p1", "name": "Tower"}))

    with pytest.raises(ValueError):
        service.create_project({"name": "   "})

    service.create_project({"name": "  Tower  ", "budget": 10})
    assert fake.calls[0]["json"] == {"name": "Tower", "budget": 10}
    assert fake.calls[0]["method"] == "POST"


def test_update_and_delete_project(settings):
    service, fake, _ = _service(settings, Role.BOSS, FakeResponse(200, {"id": "p1"}), FakeResponse(204))

    service.update_project("p1", {"status": "ACTIVE"})
    service.delete_project("p1")

    assert [(c["method"], c["url"]) for c in fake.calls] == [
        ("PATCH", "http://api.test/vendor/projects/p1"),
        ("DELETE", "http://api.test/vendor/projects/p1"),
    ]


def test_admin_endpoints_are_admin_only(settings):
    service, _, _ = _service(settings, Role.DIREKTOR)
    with pytest.raises(PermissionDeniedError):
        service.admin_stats()

    service, fake, _ = _service(settings, Role.OPERATOR, FakeResponse(200, {"organizations": 3}))
    assert service.admin_stats() == {"organizations": 3}
    assert fake.calls[0]["url"] == "http://api.test/admin/stats"


def test_unauthorized_response_signs_the_user_out(settings):
    service, _, store = _service(settings, Role.BOSS, FakeResponse(401, {"message": "jwt expired"}))

    with pytest.raises(UnauthorizedError):
        service.list_projects()

    assert not store.state.is_authenticated


def test_late_unauthorized_response_keeps_the_newer_session(settings):
    def switch_user_mid_request():
        store.logout()
        store.login(make_session(role=Role.PTO, user_id="user-2", access_token=make_token(7200)))
        return FakeResponse(401, {"message": "jwt expired"})

    service, _, store = _service(settings, Role.BOSS, switch_user_mid_request)

    with pytest.raises(UnauthorizedError):
        service.list_projects()

    assert store.state.is_authenticated
    assert store.role is Role.PTO


def test_can_reflects_current_role(settings):
    service, _, store = _service(settings, Role.BUGALTERIYA)

    assert service.can("income:create") is True
    assert service.can("project:create") is False

    store.logout()
    assert service.can("income:create") is False


def test_build_service_wires_file_storage(settings):
    service = build_service(settings)

    assert service.request_timeout_seconds == settings.timeout_seconds
    assert not service.auth_state().is_authenticated
