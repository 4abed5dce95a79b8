from __future__ import annotations

import threading
import time

import pytest

from conftest import FakeStorage, make_session, make_token
from smeta_admin.models import Role, SessionStatus
from smeta_admin.session import SessionStore, SessionTransitionError


def test_fresh_store_is_unauthenticated():
    store = SessionStore(FakeStorage())

    assert store.state.status is SessionStatus.UNAUTHENTICATED
    assert store.access_token is None
    assert store.role is None


def test_login_persists_and_notifies():
    storage = FakeStorage()
    store = SessionStore(storage)
    seen = []
    store.subscribe(seen.append)

    session = make_session(role=Role.BOSS)
    state = store.login(session)

    assert state.is_authenticated
    assert store.role is Role.BOSS
    assert store.access_token == session.access_token
    assert storage.payload["isAuthenticated"] is True
    assert storage.payload["user"]["role"] == "BOSS"
    assert len(seen) == 1 and seen[0].is_authenticated


def test_login_while_authenticated_is_rejected():
    store = SessionStore(FakeStorage())
    store.login(make_session())

    with pytest.raises(SessionTransitionError):
        store.login(make_session(role=Role.PTO))
    assert store.role is Role.DIREKTOR


def test_login_with_expired_token_is_rejected():
    storage = FakeStorage()
    store = SessionStore(storage)

    with pytest.raises(SessionTransitionError):
        store.login(make_session(expires_in=-60))
    assert storage.saves == 0


def test_logout_clears_storage_and_state():
    storage = FakeStorage()
    store = SessionStore(storage)
    store.login(make_session())
    seen = []
    store.subscribe(seen.append)

    state = store.logout()

    assert not state.is_authenticated
    assert storage.payload is None
    assert len(seen) == 1


def test_logout_when_signed_out_still_clears_storage_without_notifying():
    storage = FakeStorage(payload={"isAuthenticated": False})
    store = SessionStore(storage)
    seen = []
    store.subscribe(seen.append)

    store.logout()

    assert storage.clears == 1
    assert seen == []


def test_logout_then_rehydrate_stays_signed_out():
    storage = FakeStorage()
    store = SessionStore(storage)
    store.login(make_session())
    store.logout()

    assert store.rehydrate().status is SessionStatus.UNAUTHENTICATED


def test_rehydrate_restores_a_stored_session():
    storage = FakeStorage(payload=make_session(role=Role.SKLAD).to_payload())
    store = SessionStore(storage)

    state = store.rehydrate()

    assert state.is_authenticated
    assert store.role is Role.SKLAD
    assert state.session.org_id == "org-1"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        {"isAuthenticated": False, "accessToken": "x", "user": {"id": "1", "role": "BOSS"}},
        {"isAuthenticated": True, "accessToken": "", "user": {"id": "1", "role": "BOSS"}},
        {"isAuthenticated": True, "accessToken": "t", "user": "not-a-dict"},
        {"isAuthenticated": True, "accessToken": "t", "user": {"id": "1", "role": "GHOST"}},
    ],
)
def test_rehydrate_ignores_unusable_payloads(payload):
    if payload and payload.get("accessToken") == "t":
        payload = {**payload, "accessToken": make_token()}
    storage = FakeStorage(payload=payload)
    store = SessionStore(storage)

    assert not store.rehydrate().is_authenticated
    assert storage.clears == 0


def test_rehydrate_with_expired_token_is_unauthenticated():
    storage = FakeStorage(payload=make_session(expires_in=-1).to_payload())
    store = SessionStore(storage)

    assert not store.rehydrate().is_authenticated


def test_state_reads_unauthenticated_once_token_lapses():
    clock = {"now": time.time()}
    store = SessionStore(FakeStorage(), clock=lambda: clock["now"])
    store.login(make_session(expires_in=60))
    assert store.state.is_authenticated

    clock["now"] += 3600
    assert not store.state.is_authenticated
    assert store.access_token is None


def test_authentication_follows_the_store_clock_not_the_wall_clock():
    store = SessionStore(FakeStorage(), clock=lambda: time.time() - 3600)
    store.login(make_session(expires_in=-60))

    assert store.state.is_authenticated
    assert store.access_token is not None


def test_expire_forces_logout():
    storage = FakeStorage()
    store = SessionStore(storage)
    store.login(make_session())

    state = store.expire()

    assert not state.is_authenticated
    assert storage.payload is None


def test_expire_with_the_current_token_logs_out():
    store = SessionStore(FakeStorage())
    session = make_session()
    store.login(session)

    assert not store.expire(session.access_token).is_authenticated


def test_expire_with_a_superseded_token_keeps_the_session():
    storage = FakeStorage()
    store = SessionStore(storage)
    store.login(make_session(role=Role.PTO, access_token=make_token(7200)))

    state = store.expire(make_token(60))

    assert state.is_authenticated
    assert state.role is Role.PTO
    assert storage.payload is not None


def test_expire_with_a_token_while_signed_out_stays_signed_out():
    store = SessionStore(FakeStorage())

    assert not store.expire(make_token()).is_authenticated


def test_concurrent_logins_admit_exactly_one():
    store = SessionStore(FakeStorage())
    barrier = threading.Barrier(4)
    outcomes = []

    def attempt(index):
        session = make_session(user_id=f"user-{index}", access_token=make_token(3600 + index))
        barrier.wait()
        try:
            store.login(session)
        except SessionTransitionError:
            outcomes.append("rejected")
        else:
            outcomes.append("accepted")

    threads = [threading.Thread(target=attempt, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sorted(outcomes) == ["accepted", "rejected", "rejected", "rejected"]
    assert store.state.is_authenticated


def test_unsubscribe_stops_notifications():
    store = SessionStore(FakeStorage())
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    unsubscribe()

    store.login(make_session())

    assert seen == []


def test_stored_refresh_token_reads_storage():
    storage = FakeStorage(payload={"refreshToken": " r-9 "})
    store = SessionStore(storage)

    assert store.stored_refresh_token() == "r-9"
    assert SessionStore(FakeStorage()).stored_refresh_token() is None
