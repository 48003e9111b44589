"""Observable value holder for published client state.

UI layers subscribe to a holder and receive an immutable snapshot after
every mutation, instead of reaching into the store's internals.
"""

import threading
from typing import Callable, Generic, List, Tuple, TypeVar

from catalog_admin.logging_config import get_logger

__all__ = ["Observable", "ObservableList"]

T = TypeVar("T")
Listener = Callable[[T], None]

logger = get_logger("observable")


class Observable(Generic[T]):
    """Holds a value and notifies listeners whenever it is replaced.

    Usage:
        names = Observable(())
        unsubscribe = names.subscribe(lambda value: print(value))
        names.set(("a", "b"))
        unsubscribe()
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set(self, value: T) -> None:
        """Replace the value and notify every listener with it."""
        self._value = value
        self._notify(value)

    def _notify(self, value: T) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                # One broken view must not block the others or the store
                logger.exception("Observer callback failed")


class ObservableList(Observable[Tuple[T, ...]]):
    """Observable over a tuple, with the mutations the store needs."""

    def __init__(self) -> None:
        super().__init__(())

    def __len__(self) -> int:
        return len(self._value)

    def replace(self, items) -> None:
        self.set(tuple(items))

    def append(self, item: T) -> None:
        self.set(self._value + (item,))

    def remove_where(self, predicate: Callable[[T], bool]) -> int:
        """Drop matching items; returns how many were removed."""
        kept = tuple(item for item in self._value if not predicate(item))
        removed = len(self._value) - len(kept)
        self.set(kept)
        return removed
