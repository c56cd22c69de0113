"""Listener lists backing the coordinator's output streams."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from homeassistant.core import CALLBACK_TYPE, callback

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class ListenerList(Generic[_T]):
    """Callbacks interested in one kind of value."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[[_T], None]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    @callback
    def async_add(self, update_callback: Callable[[_T], None]) -> CALLBACK_TYPE:
        """
        Register ``update_callback``.

        Returns:
            Callback that can be used to remove the listener

        """
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            """Remove update listener."""
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    @callback
    def async_notify(self, value: _T) -> None:
        """Call every registered listener with ``value``."""
        for update_callback in list(self._listeners):
            update_callback(value)

        _LOGGER.debug("Notified %d %s listeners", len(self._listeners), self._name)

    @callback
    def async_clear(self) -> None:
        self._listeners.clear()
