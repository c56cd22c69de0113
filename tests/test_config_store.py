"""Tests for the app configuration store."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.emoncms_myelectric.config_store import AppConfigStore
from custom_components.emoncms_myelectric.exceptions import AppConfigNotFoundError
from custom_components.emoncms_myelectric.models import AppConfig


def _backing_store(stored=None, save_error=None) -> Mock:
    store = Mock()
    store.async_load = AsyncMock(return_value=stored)
    store.async_save = AsyncMock(side_effect=save_error)
    return store


def test_unknown_app_raises() -> None:
    store = AppConfigStore(_backing_store())
    with pytest.raises(AppConfigNotFoundError):
        store.get("missing")
    with pytest.raises(KeyError):
        store.get("missing")


@pytest.mark.asyncio
async def test_load_restores_records() -> None:
    store = AppConfigStore(
        _backing_store({"apps": {"app": {"name": "Home", "use_feed_id": "1", "kwh_feed_id": None}}})
    )
    await store.async_load()

    assert store.get("app") == AppConfig(name="Home", use_feed_id="1")


@pytest.mark.asyncio
async def test_load_failure_leaves_store_empty(caplog: pytest.LogCaptureFixture) -> None:
    backing = _backing_store()
    backing.async_load.side_effect = OSError("unreadable")
    store = AppConfigStore(backing)

    with caplog.at_level(logging.WARNING):
        await store.async_load()

    assert "Failed to load app configuration" in caplog.text
    with pytest.raises(AppConfigNotFoundError):
        store.get("app")


@pytest.mark.asyncio
async def test_ensure_creates_default_once() -> None:
    backing = _backing_store()
    store = AppConfigStore(backing)

    first = await store.async_ensure("app", "My Electric")
    second = await store.async_ensure("app", "Other")

    assert first == second == AppConfig(name="My Electric")
    backing.async_save.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_fields_replaces_record_and_notifies() -> None:
    backing = _backing_store()
    store = AppConfigStore(backing)
    await store.async_ensure("app", "Home")
    seen: list[AppConfig] = []
    store.async_add_listener("app", seen.append)

    await store.async_update_fields(
        "app", {"use_feed_id": "1", "kwh_feed_id": "2", "colour": "red", "name": 5}
    )

    expected = AppConfig(name="Home", use_feed_id="1", kwh_feed_id="2")
    assert store.get("app") == expected
    assert seen == [expected]
    saved = backing.async_save.await_args_list[-1].args[0]
    assert saved["apps"]["app"] == {"name": "Home", "use_feed_id": "1", "kwh_feed_id": "2"}


@pytest.mark.asyncio
async def test_update_without_known_fields_is_noop() -> None:
    backing = _backing_store()
    store = AppConfigStore(backing)
    await store.async_ensure("app", "Home")
    listener = Mock()
    store.async_add_listener("app", listener)

    await store.async_update_fields("app", {"unknown": "x"})

    listener.assert_not_called()
    assert backing.async_save.await_count == 1


@pytest.mark.asyncio
async def test_save_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    backing = _backing_store()
    store = AppConfigStore(backing)
    await store.async_ensure("app", "Home")
    backing.async_save.side_effect = OSError("Disk full")
    listener = Mock()
    store.async_add_listener("app", listener)

    with caplog.at_level(logging.ERROR):
        await store.async_update_fields("app", {"name": "Cabin"})

    assert store.get("app").name == "Cabin"
    listener.assert_called_once()
    assert "Failed to save app data" in caplog.text


@pytest.mark.asyncio
async def test_removed_listener_is_not_called() -> None:
    store = AppConfigStore(_backing_store())
    await store.async_ensure("app", "Home")
    listener = Mock()
    remove = store.async_add_listener("app", listener)
    remove()

    await store.async_update_fields("app", {"name": "Cabin"})

    listener.assert_not_called()
