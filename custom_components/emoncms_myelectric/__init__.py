"""The EmonCMS MyElectric integration."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import EmonCMSClient
from .config_store import AppConfigStore
from .const import (
    CONF_API_KEY,
    CONF_URL,
    DATA_CLIENT,
    DATA_CONFIG_STORE,
    DATA_COORDINATOR,
    DEFAULT_APP_NAME,
    DOMAIN,
    PLATFORMS,
)
from .coordinator import MyElectricCoordinator
from .exceptions import EmonCMSAuthError, EmonCMSError
from .models import Account

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up EmonCMS MyElectric from a config entry."""
    _LOGGER.debug("Setting up EmonCMS MyElectric for entry %s", entry.entry_id)

    account = Account(
        uuid=entry.entry_id,
        url=entry.data[CONF_URL],
        apikey=entry.data[CONF_API_KEY],
    )
    client = EmonCMSClient(async_get_clientsession(hass), account)

    try:
        await client.async_get_feeds()
    except EmonCMSAuthError as err:
        raise ConfigEntryAuthFailed(str(err)) from err
    except EmonCMSError as err:
        raise ConfigEntryNotReady(f"Failed to connect to EmonCMS: {err}") from err

    config_store = AppConfigStore.for_entry(hass, entry.entry_id)
    await config_store.async_load()
    await config_store.async_ensure(entry.entry_id, entry.title or DEFAULT_APP_NAME)

    coordinator = MyElectricCoordinator(
        hass, client, config_store, entry.entry_id, config_entry=entry
    )

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        DATA_CLIENT: client,
        DATA_CONFIG_STORE: config_store,
        DATA_COORDINATOR: coordinator,
    }

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)
        await coordinator.async_shutdown()
        raise

    coordinator.active = True

    _LOGGER.info(
        "EmonCMS MyElectric set up for %s (ready=%s)", account.url, coordinator.is_ready
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading EmonCMS MyElectric for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        entry_data = hass.data[DOMAIN].pop(entry.entry_id)
        coordinator: MyElectricCoordinator = entry_data[DATA_COORDINATOR]
        coordinator.active = False
        await coordinator.async_shutdown()

        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)

    return unload_ok
