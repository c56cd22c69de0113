"""Diagnostics support for the EmonCMS MyElectric integration."""
from __future__ import annotations

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_API_KEY, DATA_COORDINATOR, DOMAIN
from .coordinator import MyElectricCoordinator

TO_REDACT = {CONF_API_KEY}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict:
    """Return diagnostics for a config entry."""
    runtime = hass.data[DOMAIN][entry.entry_id]
    coordinator: MyElectricCoordinator = runtime[DATA_COORDINATOR]
    return build_diagnostics(coordinator, dict(entry.data))


def build_diagnostics(coordinator: MyElectricCoordinator, entry_data: dict) -> dict:
    payload: dict[str, object] = {
        "config": async_redact_data(entry_data, TO_REDACT),
        "app": coordinator.config_data(),
        "is_ready": coordinator.is_ready,
        "is_refreshing": coordinator.is_refreshing,
        "last_update_success": coordinator.last_update_success,
        "active": coordinator.active,
        "last_error": str(coordinator.last_error) if coordinator.last_error else None,
        "start_of_day": None,
        "data": None,
    }

    if entry := coordinator.start_of_day:
        payload["start_of_day"] = {
            "feed_id": entry.feed_id,
            "day": entry.day.isoformat(),
            "time": entry.value.time.isoformat(),
            "value": entry.value.value,
        }

    if data := coordinator.data:
        payload["data"] = {
            "power_now": data.power_now,
            "usage_today": data.usage_today,
            "line_chart(len)": len(data.line_chart_data),
            "bar_chart(len)": len(data.bar_chart_data),
        }

    return payload
