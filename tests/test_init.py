"""Tests for config entry setup and unload."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from custom_components.emoncms_myelectric import async_setup_entry, async_unload_entry
from custom_components.emoncms_myelectric.const import DATA_COORDINATOR, DOMAIN
from custom_components.emoncms_myelectric.exceptions import EmonCMSAuthError, EmonCMSError
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

MODULE = "custom_components.emoncms_myelectric"


def _entry() -> MagicMock:
    entry = MagicMock()
    entry.entry_id = "entry"
    entry.title = "Home"
    entry.data = {"url": "https://emoncms.example", "api_key": "secret"}
    return entry


def _hass() -> MagicMock:
    hass = MagicMock()
    hass.data = {}
    hass.config_entries.async_forward_entry_setups = AsyncMock()
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    return hass


@pytest.fixture
def setup_mocks():
    client = MagicMock()
    client.async_get_feeds = AsyncMock(return_value=[])
    store = MagicMock()
    store.async_load = AsyncMock()
    store.async_ensure = AsyncMock()
    coordinator = MagicMock()
    coordinator.active = False
    coordinator.async_shutdown = AsyncMock()

    with (
        patch(f"{MODULE}.async_get_clientsession"),
        patch(f"{MODULE}.EmonCMSClient", return_value=client),
        patch(f"{MODULE}.AppConfigStore.for_entry", return_value=store),
        patch(f"{MODULE}.MyElectricCoordinator", return_value=coordinator) as coordinator_cls,
    ):
        yield client, store, coordinator, coordinator_cls


@pytest.mark.asyncio
async def test_setup_activates_coordinator_and_unload_shuts_it_down(setup_mocks) -> None:
    _client, store, coordinator, coordinator_cls = setup_mocks
    hass = _hass()
    entry = _entry()

    assert await async_setup_entry(hass, entry)

    store.async_ensure.assert_awaited_once_with("entry", "Home")
    assert coordinator_cls.call_args.kwargs["config_entry"] is entry
    assert hass.data[DOMAIN]["entry"][DATA_COORDINATOR] is coordinator
    assert coordinator.active is True

    assert await async_unload_entry(hass, entry)

    assert coordinator.active is False
    coordinator.async_shutdown.assert_awaited_once()
    assert DOMAIN not in hass.data


@pytest.mark.asyncio
async def test_platform_setup_failure_shuts_coordinator_down(setup_mocks) -> None:
    _client, _store, coordinator, _coordinator_cls = setup_mocks
    hass = _hass()
    hass.config_entries.async_forward_entry_setups.side_effect = RuntimeError("platform")

    with pytest.raises(RuntimeError):
        await async_setup_entry(hass, _entry())

    coordinator.async_shutdown.assert_awaited_once()
    assert coordinator.active is False
    assert DOMAIN not in hass.data


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (EmonCMSAuthError("bad key"), ConfigEntryAuthFailed),
        (EmonCMSError("offline"), ConfigEntryNotReady),
    ],
)
async def test_server_check_failures_map_to_entry_errors(setup_mocks, error, expected) -> None:
    client, _store, _coordinator, coordinator_cls = setup_mocks
    client.async_get_feeds.side_effect = error

    with pytest.raises(expected):
        await async_setup_entry(_hass(), _entry())

    coordinator_cls.assert_not_called()
