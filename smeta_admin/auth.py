from __future__ import annotations

import logging
from typing import Any

from smeta_admin.apis import AuthApi
from smeta_admin.http import ApiHttpError, TransportError
from smeta_admin.models import AuthState, Session
from smeta_admin.session import SessionStore, SessionTransitionError

logger = logging.getLogger(__name__)


class AuthenticationError(RuntimeError):
    pass


class AuthManager:
    def __init__(self, store: SessionStore, auth_api: AuthApi):
        self._store = store
        self._auth_api = auth_api

    def get_auth_state(self) -> AuthState:
        return self._store.state

    def sign_in(self, phone: str, password: str) -> AuthState:
        if self._store.state.is_authenticated:
            raise AuthenticationError("Already signed in. Sign out before signing in again.")

        try:
            result = self._auth_api.login(phone.strip(), password)
        except ApiHttpError as exc:
            raise AuthenticationError(f"Login failed: {exc.message}") from exc
        except TransportError as exc:
            raise AuthenticationError(f"Login failed: {exc}") from exc

        access_token, refresh_token = self._extract_tokens(result)
        if not access_token or not refresh_token:
            raise AuthenticationError("Login failed: invalid response from server")

        user = result.get("user") if isinstance(result, dict) else None
        try:
            if not isinstance(user, dict):
                user = self._auth_api.profile(token=access_token)
            session = Session.from_payload(user, access_token, refresh_token)
        except (ApiHttpError, TransportError) as exc:
            raise AuthenticationError(f"Could not load the user profile: {exc}") from exc
        except ValueError as exc:
            raise AuthenticationError(f"Login failed: {exc}") from exc

        try:
            return self._store.login(session)
        except SessionTransitionError as exc:
            raise AuthenticationError(f"Login failed: {exc}") from exc

    def restore(self) -> AuthState:
        """Rehydrate at start-up, falling back to one refresh-token exchange."""
        state = self._store.rehydrate()
        if state.is_authenticated:
            return state

        refresh_token = self._store.stored_refresh_token()
        if not refresh_token:
            return state

        try:
            result = self._auth_api.refresh(refresh_token)
            access_token, new_refresh_token = self._extract_tokens(result)
            if not access_token:
                raise AuthenticationError("refresh response carried no access token")
            user = self._auth_api.profile(token=access_token)
            session = Session.from_payload(user, access_token, new_refresh_token or refresh_token)
            return self._store.login(session)
        except (ApiHttpError, TransportError, AuthenticationError, SessionTransitionError, ValueError) as exc:
            logger.warning("Could not restore the previous session: %s", exc)
            return self._store.logout(reason="refresh failed")

    def sign_out(self) -> AuthState:
        return self._store.logout()

    @staticmethod
    def _extract_tokens(result: Any) -> tuple[str | None, str | None]:
        if not isinstance(result, dict):
            return None, None
        tokens = result.get("tokens") if isinstance(result.get("tokens"), dict) else result
        access_token = str(tokens.get("accessToken") or "").strip() or None
        refresh_token = str(tokens.get("refreshToken") or "").strip() or None
        return access_token, refresh_token
