from __future__ import annotations

from typing import Any

from smeta_admin.config import AppSettings
from smeta_admin.http import HttpClient


class AuthApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    def login(self, phone: str, password: str) -> dict[str, Any]:
        return self._http_client.post_json(
            self._settings.login_path,
            {"login": phone, "password": password},
            authenticated=False,
        )

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        return self._http_client.post_json(
            self._settings.refresh_path,
            {"refreshToken": refresh_token},
            authenticated=False,
        )

    def profile(self, token: str | None = None) -> dict[str, Any]:
        data = self._http_client.get_json(self._settings.profile_path, token=token)
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            return data["user"]
        return data
