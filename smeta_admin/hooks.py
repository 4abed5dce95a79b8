"""Background data loading bound to the lifetime of a UI element.

Pages describe *what* to load (a blocking producer or action that usually
ends in an HTTP call) and these classes take care of *when*: work runs on a
background runner, and its outcome is handed back through ``dispatch`` so
that state only ever changes on the UI thread.

Both classes stamp every invocation with an ownership token. An outcome is
applied only while its token is still the current one, which covers two
hazards with one check:

* a slow response to an older invocation arriving after a newer one started
  (it is discarded, never overwriting the newer result), and
* a response arriving after the element was disposed (also discarded).

Cancellation is cooperative: the underlying call keeps running until it
returns, only its effect on the state is suppressed.

The token check and the state write it guards happen under one lock, as does
starting a new invocation. With the default ``call_inline`` dispatch the
outcome is applied on the worker thread, and an older outcome must not slip
in between a newer ``refetch()`` bumping the token and publishing
``loading=True``. Listeners run on whichever thread applied the change.
"""

from __future__ import annotations

from concurrent.futures import Future
from functools import partial
import logging
import threading
from typing import Any, Callable, Generic, Sequence, TypeVar

from smeta_admin.models import MutationState, RequestState

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")

Job = Callable[[], None]
Runner = Callable[[Job], None]
Dispatcher = Callable[[Callable[[], None]], None]
StateListener = Callable[[RequestState[Any]], None]


def spawn_thread(job: Job) -> None:
    threading.Thread(target=job, daemon=True).start()


def call_inline(callback: Callable[[], None]) -> None:
    callback()


def _deps_changed(previous: Sequence[Any], current: Sequence[Any]) -> bool:
    if len(previous) != len(current):
        return True
    for old, new in zip(previous, current):
        if old is new:
            continue
        try:
            equal = bool(old == new)
        except (TypeError, ValueError):
            # No usable equality (e.g. array-likes): treat as a change.
            equal = False
        if not equal:
            return True
    return False


class _Tracked(Generic[T]):
    def __init__(self, initial: RequestState[T], runner: Runner, dispatch: Dispatcher):
        self._state: RequestState[T] = initial
        self._runner = runner
        self._dispatch = dispatch
        self._token = 0
        self._disposed = False
        self._listeners: list[StateListener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> RequestState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> BaseException | None:
        return self._state.error

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        """Detach from the UI; pending outcomes become no-ops."""
        with self._lock:
            self._disposed = True
            self._token += 1
            self._listeners.clear()

    def _next_token(self) -> int:
        self._token += 1
        return self._token

    def _is_current(self, token: int) -> bool:
        return not self._disposed and token == self._token

    def _set_state(self, state: RequestState[T]) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)


class AsyncResource(_Tracked[T]):
    """Loads ``producer()`` in the background and tracks ``data``/``loading``/``error``.

    Lifecycle mirrors a page: ``mount()`` once it is shown, ``update()`` each
    time its inputs change, ``dispose()`` when it goes away. ``deps`` are
    compared element-wise by identity, then equality; a changed element, a
    changed length or ``enabled`` turning on starts a new load.

    Previously loaded ``data`` stays visible while a reload is in flight.
    Failures never raise to the caller; they land in ``error``.
    """

    def __init__(
        self,
        producer: Callable[[], T],
        deps: Sequence[Any] = (),
        *,
        enabled: bool = True,
        runner: Runner = spawn_thread,
        dispatch: Dispatcher = call_inline,
    ):
        super().__init__(RequestState(data=None, loading=enabled, error=None), runner, dispatch)
        self._producer = producer
        self._deps = tuple(deps)
        self._enabled = enabled
        self._mounted = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def mount(self) -> None:
        with self._lock:
            if self._disposed:
                raise RuntimeError("Cannot mount a disposed resource")
            if self._mounted:
                return
            self._mounted = True
            if self._enabled:
                self._start()

    def update(
        self,
        deps: Sequence[Any] | None = None,
        enabled: bool | None = None,
        producer: Callable[[], T] | None = None,
    ) -> None:
        with self._lock:
            if self._disposed:
                return

            if producer is not None:
                self._producer = producer

            changed = False
            if deps is not None:
                new_deps = tuple(deps)
                changed = _deps_changed(self._deps, new_deps)
                self._deps = new_deps

            was_enabled = self._enabled
            if enabled is not None:
                self._enabled = enabled

            if not self._mounted:
                if not self._enabled and self._state.loading:
                    self._set_state(RequestState(data=self._state.data, loading=False, error=self._state.error))
                return

            if not self._enabled:
                if was_enabled:
                    self._next_token()
                    if self._state.loading:
                        self._set_state(
                            RequestState(data=self._state.data, loading=False, error=self._state.error)
                        )
                return

            if changed or not was_enabled:
                self._start()

    def refetch(self) -> None:
        with self._lock:
            if self._disposed:
                logger.debug("refetch() ignored on a disposed resource")
                return
            self._start()

    def _start(self) -> None:
        with self._lock:
            token = self._next_token()
            producer = self._producer
            self._set_state(RequestState(data=self._state.data, loading=True, error=None))

        def job() -> None:
            try:
                result = producer()
            except Exception as exc:
                self._dispatch(partial(self._settle, token, None, exc))
                return
            self._dispatch(partial(self._settle, token, result, None))

        self._runner(job)

    def _settle(self, token: int, result: T | None, error: BaseException | None) -> None:
        with self._lock:
            if not self._is_current(token):
                logger.debug("Discarding outcome of superseded load #%s", token)
                return
            if error is not None:
                self._set_state(RequestState(data=None, loading=False, error=error))
            else:
                self._set_state(RequestState(data=result, loading=False, error=None))


class AsyncMutation(_Tracked[T], Generic[T, V]):
    """Runs ``action(variables)`` on demand; never automatically.

    ``mutate`` returns a ``concurrent.futures.Future`` settled after the state
    update: with the action's result on success, or with the same exception
    on failure, so submit handlers can chain follow-up work or show the
    error inline. On the UI thread use ``add_done_callback`` rather than
    blocking on ``result()``; the completion itself is dispatched there.
    """

    def __init__(
        self,
        action: Callable[[V], T],
        *,
        runner: Runner = spawn_thread,
        dispatch: Dispatcher = call_inline,
    ):
        super().__init__(MutationState(data=None, loading=False, error=None), runner, dispatch)
        self._action = action

    def mutate(self, variables: V) -> "Future[T]":
        future: Future[T] = Future()
        with self._lock:
            if self._disposed:
                future.set_exception(RuntimeError("Cannot mutate through a disposed mutation"))
                return future

            token = self._next_token()
            action = self._action
            self._set_state(MutationState(data=None, loading=True, error=None))

        def job() -> None:
            try:
                result = action(variables)
            except Exception as exc:
                self._dispatch(partial(self._fail, token, future, exc))
                return
            self._dispatch(partial(self._succeed, token, future, result))

        self._runner(job)
        return future

    def _succeed(self, token: int, future: "Future[T]", result: T) -> None:
        with self._lock:
            if self._is_current(token):
                self._set_state(MutationState(data=result, loading=False, error=None))
            else:
                logger.debug("Mutation #%s finished after being superseded", token)
        # Outside the lock: done-callbacks may call back into this mutation.
        if not future.cancelled():
            future.set_result(result)

    def _fail(self, token: int, future: "Future[T]", error: BaseException) -> None:
        with self._lock:
            if self._is_current(token):
                self._set_state(MutationState(data=None, loading=False, error=error))
            else:
                logger.debug("Mutation #%s failed after being superseded", token)
        if not future.cancelled():
            future.set_exception(error)
