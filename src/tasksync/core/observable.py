# src/tasksync/core/observable.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    """
    Observable value holder used for UI-facing state (task list, auth state, errors).

    - set() swaps the whole value under a lock, then notifies listeners with it
    - listeners never see a half-built value: store immutable values (tuples, frozen dataclasses)
    - a failing listener is logged and does not stop delivery to the others
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Observable listener failed: %r", listener)

    def subscribe(self, listener: Listener[T], *, emit_current: bool = False) -> Callable[[], None]:
        """
        Register a listener. Returns a callable that removes it again.
        With emit_current=True the listener is called immediately with the current value.
        """
        with self._lock:
            self._listeners.append(listener)
            current = self._value

        if emit_current:
            try:
                listener(current)
            except Exception:
                logger.exception("Observable listener failed: %r", listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
