from __future__ import annotations

from typing import Any

from smeta_admin.config import AppSettings
from smeta_admin.http import HttpClient


class ProjectsApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    @property
    def projects_path(self) -> str:
        return self._settings.projects_path

    def list_projects(
        self,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if page:
            params["page"] = page
        if limit:
            params["limit"] = limit
        if status:
            params["status"] = status
        if search:
            params["search"] = search

        return self._http_client.get_json(self.projects_path, params=params or None)

    def get(self, project_id: str) -> dict[str, Any]:
        return self._http_client.get_json(f"{self.projects_path}/{project_id}")

    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._http_client.post_json(self.projects_path, payload)

    def update(self, project_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._http_client.patch_json(f"{self.projects_path}/{project_id}", payload)

    def delete(self, project_id: str) -> None:
        self._http_client.delete(f"{self.projects_path}/{project_id}")
