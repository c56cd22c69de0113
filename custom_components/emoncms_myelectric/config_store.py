"""Persisted, observable configuration of MyElectric apps."""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import (
    CONF_KWH_FEED_ID,
    CONF_NAME,
    CONF_USE_FEED_ID,
    STORE_KEY_FMT,
    STORE_VERSION,
)
from .exceptions import AppConfigNotFoundError, MyElectricErrorKind
from .listeners import ListenerList
from .models import AppConfig

_LOGGER = logging.getLogger(__name__)

_FIELDS = (CONF_NAME, CONF_USE_FEED_ID, CONF_KWH_FEED_ID)


def app_config_from_dict(data: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from its stored representation."""
    use_feed_id = data.get(CONF_USE_FEED_ID)
    kwh_feed_id = data.get(CONF_KWH_FEED_ID)
    return AppConfig(
        name=str(data.get(CONF_NAME) or ""),
        use_feed_id=str(use_feed_id) if use_feed_id is not None else None,
        kwh_feed_id=str(kwh_feed_id) if kwh_feed_id is not None else None,
    )


def app_config_to_dict(config: AppConfig) -> dict[str, Any]:
    return {
        CONF_NAME: config.name,
        CONF_USE_FEED_ID: config.use_feed_id,
        CONF_KWH_FEED_ID: config.kwh_feed_id,
    }


class AppConfigStore:
    """Hold app configuration records keyed by app id."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._records: dict[str, AppConfig] = {}
        self._listeners: dict[str, ListenerList[AppConfig]] = {}

    @classmethod
    def for_entry(cls, hass: HomeAssistant, entry_id: str) -> AppConfigStore:
        return cls(Store(hass, STORE_VERSION, STORE_KEY_FMT.format(entry_id=entry_id)))

    async def async_load(self) -> None:
        """Load stored records; a failed load leaves the store empty."""
        try:
            stored = await self._store.async_load()
        except (OSError, HomeAssistantError) as err:
            _LOGGER.warning("Failed to load app configuration: %s", err)
            return

        if not stored:
            _LOGGER.debug("No stored app configuration found")
            return

        for app_id, data in (stored.get("apps") or {}).items():
            if isinstance(data, Mapping):
                self._records[app_id] = app_config_from_dict(data)

        _LOGGER.debug("Loaded app configuration for %s", list(self._records))

    def get(self, app_id: str) -> AppConfig:
        """Return the record for ``app_id`` or raise AppConfigNotFoundError."""
        try:
            return self._records[app_id]
        except KeyError:
            raise AppConfigNotFoundError(app_id) from None

    async def async_ensure(self, app_id: str, name: str) -> AppConfig:
        """Return the record for ``app_id``, creating a default one when missing."""
        if app_id not in self._records:
            self._records[app_id] = AppConfig(name=name)
            await self._async_save()
        return self._records[app_id]

    @callback
    def async_add_listener(
        self, app_id: str, update_callback: Callable[[AppConfig], None]
    ) -> CALLBACK_TYPE:
        """Listen for replacements of the record for ``app_id``."""
        listeners = self._listeners.setdefault(app_id, ListenerList(f"config:{app_id}"))
        return listeners.async_add(update_callback)

    async def async_update_fields(self, app_id: str, fields: Mapping[str, Any]) -> None:
        """
        Apply ``fields`` to the record for ``app_id``.

        Only known keys with string values are applied, as one replacement of the
        record. Saving happens afterwards and a failure to save is only logged.

        """
        current = self.get(app_id)
        changes = {
            key: value
            for key, value in fields.items()
            if key in _FIELDS and isinstance(value, str)
        }
        ignored = set(fields) - set(changes)
        if ignored:
            _LOGGER.debug("Ignoring app configuration keys %s", sorted(ignored))
        if not changes:
            return

        updated = replace(current, **changes)
        self._records[app_id] = updated
        _LOGGER.debug("App %s configuration updated: %s", app_id, changes)

        if listeners := self._listeners.get(app_id):
            listeners.async_notify(updated)

        await self._async_save()

    async def _async_save(self) -> None:
        data = {
            "apps": {
                app_id: app_config_to_dict(config)
                for app_id, config in self._records.items()
            }
        }
        try:
            await self._store.async_save(data)
        except (OSError, HomeAssistantError):
            _LOGGER.exception(
                "Failed to save app data (%s)", MyElectricErrorKind.UPDATE_FAILED
            )
