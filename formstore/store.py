"""
Keyed, watchable record stores.

Forms never hold their own state; every read and write goes through a
:class:`Store`. :class:`MemoryStore` is the in-process implementation.
"""
import inspect
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional

from formstore.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Listener = Callable[..., None]


class Store(ABC):
    """
    Contract of the external key/value store a form persists into.
    """

    @abstractmethod
    def write(self, key: str, record: Record) -> None:
        """Replaces the record at ``key`` wholesale."""
        raise NotImplementedError

    @abstractmethod
    def read(self, key: str) -> Optional[Record]:
        """
        Returns the record at ``key``.

        Implementations may return None or raise RecordNotFoundError for a
        missing key; callers tolerate both.
        """
        raise NotImplementedError

    @abstractmethod
    def watch(self, key: str, on_change: Listener) -> Callable[[], bool]:
        """
        Registers a listener called with the new record whenever the record
        at ``key`` changes. Returns a function that removes the listener.
        """
        raise NotImplementedError

    @abstractmethod
    def evict(self, key: str) -> None:
        """Removes the record at ``key``."""
        raise NotImplementedError


class MemoryStore(Store):
    """
    Dictionary-backed store.

    Records are deep-copied on the way in and out so no caller can mutate
    stored state through a reference.

    Args:
        raise_on_miss: Raise RecordNotFoundError from ``read`` instead of
                       returning None for a missing key.
    """
    def __init__(self, raise_on_miss: bool = False):
        self.raise_on_miss = raise_on_miss
        self._records: Dict[str, Record] = {}
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def keys(self) -> List[str]:
        return list(self._records)

    def read(self, key: str) -> Optional[Record]:
        if key not in self._records:
            if self.raise_on_miss:
                raise RecordNotFoundError(key)
            return None
        return deepcopy(self._records[key])

    def write(self, key: str, record: Record) -> None:
        previous_value = self._records.get(key)
        self._records[key] = deepcopy(record)

        # Only notify if the record has actually changed
        if previous_value != record:
            logger.debug("Record '%s' changed, notifying %d listener(s)", key, len(self._listeners[key]))
            self._notify_listeners(key, previous_value, record)

    def evict(self, key: str) -> None:
        previous_value = self._records.pop(key, None)
        if previous_value is not None:
            logger.debug("Record '%s' evicted", key)
            self._notify_listeners(key, previous_value, None)

    def watch(self, key: str, on_change: Listener) -> Callable[[], bool]:
        """
        The listener can accept one or two parameters:
        - new_value: The new record (None after eviction)
        - previous_value: (Optional) The previous record
        """
        self._listeners[key].append(on_change)
        return lambda: self._remove_listener(key, on_change)

    def _remove_listener(self, key: str, listener: Listener) -> bool:
        if key in self._listeners and listener in self._listeners[key]:
            self._listeners[key].remove(listener)
            return True
        return False

    def _notify_listeners(self, key: str, previous_value: Optional[Record], new_value: Optional[Record]) -> None:
        """
        Notifies all listeners of a change to a record.
        Uses introspection to determine if a listener accepts previous_value.
        """
        for listener in list(self._listeners[key]):
            new_copy = deepcopy(new_value)
            try:
                param_count = len(inspect.signature(listener).parameters)
            except (ValueError, TypeError):
                # Built-ins without an inspectable signature get the new value only
                param_count = 1

            if param_count >= 2:
                listener(new_copy, deepcopy(previous_value))
            else:
                listener(new_copy)
