# src/todo_companion/core/observable.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    """
    Latest-value holder with synchronous fan-out.

    Views subscribe and re-render on every emitted snapshot.
    A failing listener is logged and skipped; it never blocks the others.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, listener: Listener[T], *, emit_current: bool = False) -> Callable[[], None]:
        self._listeners.append(listener)
        if emit_current:
            self._notify_one(listener, self._value)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def emit(self, value: T) -> None:
        self._value = value
        # Copy: listeners may unsubscribe while being notified.
        for listener in list(self._listeners):
            self._notify_one(listener, value)

    def _notify_one(self, listener: Listener[T], value: T) -> None:
        try:
            listener(value)
        except Exception:
            logger.exception("Snapshot listener failed: %r", listener)

    def __len__(self) -> int:
        return len(self._listeners)
