from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Share one pending operation between concurrent callers of the same key.

    The first caller for a key runs the loader; callers arriving while it is
    in flight wait for and receive the same result (or exception). Once the
    operation settles the key is forgotten, so later calls load afresh.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, Future[T]] = {}

    def do(self, key: str, loader: Callable[[], T]) -> T:
        with self._lock:
            future = self._pending.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._pending[key] = future

        if not owner:
            return future.result()

        try:
            future.set_result(loader())
        except BaseException as exc:
            future.set_exception(exc)
        finally:
            with self._lock:
                self._pending.pop(key, None)
        return future.result()
