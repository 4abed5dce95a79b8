from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Protocol

from smeta_admin.models import AuthState, Role, Session, SessionStatus

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthState], None]


class SessionTransitionError(RuntimeError):
    pass


class SessionPersistence(Protocol):
    def load(self) -> dict[str, Any] | None: ...

    def save(self, payload: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class SessionStore:
    """Single owner of the signed-in identity.

    Guards, pages and the HTTP transport read from the store; only ``login``,
    ``logout``/``expire`` and ``rehydrate`` change it. ``state`` re-checks the
    access token expiry on every read, so a session whose token lapsed reads
    as unauthenticated even before anybody calls ``logout``.

    Transitions may be requested from worker threads (a sign-in running in
    the background, a 401 seen by the transport), so they are serialized by
    a lock. Listeners run on the thread that made the change and must hand
    UI work to their own event loop.
    """

    def __init__(self, storage: SessionPersistence, clock: Callable[[], float] = time.time):
        self._storage = storage
        self._clock = clock
        self._session: Session | None = None
        self._listeners: list[AuthListener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> AuthState:
        session = self._session
        if session is None or session.is_expired(now=self._clock()):
            return AuthState(status=SessionStatus.UNAUTHENTICATED, session=session)
        return AuthState(status=SessionStatus.AUTHENTICATED, session=session)

    @property
    def access_token(self) -> str | None:
        state = self.state
        if not state.is_authenticated or state.session is None:
            return None
        return state.session.access_token

    @property
    def role(self) -> Role | None:
        return self.state.role

    def stored_refresh_token(self) -> str | None:
        payload = self._storage.load() or {}
        token = str(payload.get("refreshToken") or "").strip()
        return token or None

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def rehydrate(self) -> AuthState:
        with self._lock:
            payload = self._storage.load()
            session = self._session_from_payload(payload)
            if session is None:
                if self._session is not None:
                    self._set_session(None, "rehydrate found no usable session")
                return self.state

            self._set_session(session, "rehydrated from storage")
            return self.state

    def login(self, session: Session) -> AuthState:
        with self._lock:
            if self.state.is_authenticated:
                raise SessionTransitionError("A session is already active; log out first")
            if session.is_expired(now=self._clock()):
                raise SessionTransitionError("Cannot log in with an expired access token")

            self._storage.save(session.to_payload())
            self._set_session(session, "login")
            return self.state

    def logout(self, reason: str = "user") -> AuthState:
        with self._lock:
            self._storage.clear()
            if self._session is not None:
                self._set_session(None, f"logout ({reason})")
            return self.state

    def expire(self, token: str | None = None) -> AuthState:
        """Force a logout after the backend rejected ``token``.

        A rejection of some other credential (a request sent before the
        current session began) leaves the current session alone.
        """
        with self._lock:
            current = self._session
            if token is not None and (current is None or current.access_token != token):
                logger.debug("Ignoring rejection of a credential that is no longer current")
                return self.state
            if current is not None:
                logger.warning("Backend rejected the access token; forcing logout")
            return self.logout(reason="unauthorized")

    def _session_from_payload(self, payload: dict[str, Any] | None) -> Session | None:
        if not payload or not payload.get("isAuthenticated"):
            return None

        access_token = str(payload.get("accessToken") or "").strip()
        if not access_token:
            return None

        user = payload.get("user")
        if not isinstance(user, dict):
            return None

        try:
            session = Session.from_payload(
                user,
                access_token,
                str(payload.get("refreshToken") or "").strip() or None,
            )
        except ValueError as exc:
            logger.warning("Stored session is unusable: %s", exc)
            return None

        if session.is_expired(now=self._clock()):
            logger.info("Stored access token has expired")
            return None
        return session

    def _set_session(self, session: Session | None, reason: str) -> None:
        self._session = session
        state = self.state
        if session is None:
            logger.info("Session cleared: %s", reason)
        else:
            logger.info("Session active for user %s (%s): %s", session.user_id, session.role.value, reason)

        for listener in list(self._listeners):
            listener(state)
