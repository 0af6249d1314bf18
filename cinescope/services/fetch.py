"""Reusable state holder for one asynchronous request context.

``FetchController`` runs a zero-argument coroutine function and tracks the
usual ``data`` / ``loading`` / ``error`` triple for whoever renders it. Every
``execute()`` and ``reset()`` starts a new generation; a completion that
belongs to an older generation is dropped instead of overwriting newer state.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, TypeVar

from cinescope.logging import logger
from cinescope.services.exceptions import FetchError

T = TypeVar("T")
Producer = Callable[[], Awaitable[T]]

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


class FetchStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchState(Generic[T]):
    data: T | None = None
    loading: bool = False
    error: Exception | None = None
    status: FetchStatus = FetchStatus.IDLE


def normalize_error(exc: Exception) -> Exception:
    if str(exc):
        return exc
    error = FetchError(UNKNOWN_ERROR_MESSAGE)
    error.__cause__ = exc
    return error


def _settled_status(state: FetchState) -> FetchStatus:
    """Status for a state whose in-flight work was abandoned."""

    if state.error is not None:
        return FetchStatus.FAILED
    if state.data is not None:
        return FetchStatus.SUCCEEDED
    return FetchStatus.IDLE


class FetchController(Generic[T]):
    """Owns the fetch state of one request context.

    With ``auto_start`` the constructor schedules the first ``execute()`` on the
    running loop, so such controllers must be created from async code. Overlapping
    ``execute()`` calls are not serialized; the newest one decides the state.
    """

    def __init__(self, producer: Producer[T], *, auto_start: bool = True) -> None:
        self._producer = producer
        self._state: FetchState[T] = FetchState()
        self._generation = 0
        self._started = False
        self._stopped = False
        self._tasks: set[asyncio.Task[None]] = set()
        if auto_start:
            self.start()

    @property
    def state(self) -> FetchState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Exception | None:
        return self._state.error

    @property
    def status(self) -> FetchStatus:
        return self._state.status

    def start(self) -> None:
        """Schedule the initial ``execute()``; only the first call has any effect."""

        if self._started or self._stopped:
            return
        self._started = True
        loop = asyncio.get_running_loop()
        self._state = replace(self._state, loading=True, error=None, status=FetchStatus.LOADING)
        task = loop.create_task(self.execute())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        if self._state.loading:
            self._state = replace(self._state, loading=False, status=_settled_status(self._state))

    async def wait(self) -> None:
        """Wait for work scheduled by ``start()`` to settle."""

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def execute(self) -> None:
        if self._stopped:
            logger.warning("fetch_after_stop_ignored")
            return

        self._generation += 1
        generation = self._generation
        self._state = replace(self._state, loading=True, error=None, status=FetchStatus.LOADING)
        try:
            result = await self._producer()
        except Exception as exc:
            if generation == self._generation:
                error = normalize_error(exc)
                self._state = replace(self._state, error=error, status=FetchStatus.FAILED)
                logger.warning(
                    "fetch_failed",
                    error_type=exc.__class__.__name__,
                    error=str(error),
                )
        else:
            if generation == self._generation:
                self._state = replace(self._state, data=result, status=FetchStatus.SUCCEEDED)
        finally:
            if generation == self._generation:
                self._state = replace(self._state, loading=False)

    refetch = execute

    def reset(self) -> None:
        self._generation += 1
        self._state = FetchState()

    async def __aenter__(self) -> FetchController[T]:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()


__all__ = [
    "FetchController",
    "FetchState",
    "FetchStatus",
    "UNKNOWN_ERROR_MESSAGE",
    "normalize_error",
]
