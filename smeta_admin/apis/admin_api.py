from __future__ import annotations

from typing import Any

from smeta_admin.config import AppSettings
from smeta_admin.http import HttpClient


class AdminApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    def stats(self) -> dict[str, Any]:
        return self._http_client.get_json(f"{self._settings.admin_path}/stats")

    def organizations(self, page: int | None = None, limit: int | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if page:
            params["page"] = page
        if limit:
            params["limit"] = limit

        return self._http_client.get_json(
            f"{self._settings.admin_path}/organizations",
            params=params or None,
        )
