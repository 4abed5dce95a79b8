from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from smeta_admin.config import AppSettings

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = (429, 500, 502, 503, 504)
_IDEMPOTENT_METHODS = ("GET", "HEAD")
_VALIDATION_STATUS = (400, 409, 422)


class TransportError(RuntimeError):
    pass


class ApiHttpError(RuntimeError):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload


class UnauthorizedError(ApiHttpError):
    pass


class ValidationError(ApiHttpError):
    pass


class HttpClient:
    def __init__(
        self,
        settings: AppSettings,
        token_provider: Callable[[], str | None] | None = None,
        on_unauthorized: Callable[[str], Any] | None = None,
    ):
        self._settings = settings
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def call(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: dict[str, Any] | None = None,
        token: str | None = None,
        authenticated: bool = True,
    ) -> Any:
        method = method.upper()
        url = f"{self._settings.api_url}{path}"

        headers: dict[str, str] = {}
        bearer: str | None = None
        if authenticated:
            bearer = token or (self._token_provider() if self._token_provider else None)
            if bearer:
                headers["Authorization"] = f"Bearer {bearer}"

        attempts = self._settings.retry_attempts + 1 if method in _IDEMPOTENT_METHODS else 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=headers,
                    json=body,
                    params=params,
                    timeout=self._settings.timeout_seconds,
                )
            except requests.RequestException as exc:
                if attempt < attempts:
                    logger.warning("%s %s failed (%s); retrying", method, path, type(exc).__name__)
                    time.sleep(1.5 * attempt)
                    continue
                raise TransportError(f"{method} {path} failed: {exc}") from exc

            if response.ok:
                return self._parse_body(response, method, path)

            if response.status_code in _RETRYABLE_STATUS and attempt < attempts:
                logger.warning("%s %s returned HTTP %s; retrying", method, path, response.status_code)
                time.sleep(1.5 * attempt)
                continue

            raise self._build_error(response, bearer)

        raise TransportError(f"{method} {path} failed")

    def get_json(self, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.call(path, "GET", params=params, **kwargs)

    def post_json(self, path: str, payload: Any, **kwargs: Any) -> Any:
        return self.call(path, "POST", body=payload, **kwargs)

    def patch_json(self, path: str, payload: Any, **kwargs: Any) -> Any:
        return self.call(path, "PATCH", body=payload, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.call(path, "DELETE", **kwargs)

    @staticmethod
    def _parse_body(response: requests.Response, method: str, path: str) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned a non-JSON body") from exc

    def _build_error(self, response: requests.Response, bearer: str | None) -> ApiHttpError:
        payload: Any = None
        message = ""
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            detail = payload.get("message") or payload.get("error")
            if isinstance(detail, list):
                message = "; ".join(str(item) for item in detail)
            elif detail:
                message = str(detail)
        if not message:
            message = response.text[:500] or response.reason or "Request failed"

        status_code = response.status_code
        text = f"HTTP {status_code}: {message}"

        if status_code == 401:
            # The callback gets the rejected credential so it can ignore a stale one.
            if bearer and self._on_unauthorized is not None:
                self._on_unauthorized(bearer)
            return UnauthorizedError(status_code, text, payload)
        if status_code in _VALIDATION_STATUS:
            return ValidationError(status_code, text, payload)
        return ApiHttpError(status_code, text, payload)
