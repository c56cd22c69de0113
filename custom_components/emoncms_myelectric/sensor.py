"""Sensor platform for the EmonCMS MyElectric app."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import UnitOfEnergy, UnitOfPower
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.util import dt as dt_util

from .const import DATA_COORDINATOR, DOMAIN, SENSOR_KIND_POWER_NOW, SENSOR_KIND_USAGE_TODAY
from .coordinator import MyElectricCoordinator
from .models import DataPoint

FRIENDLY_SENSOR_NAMES = {
    SENSOR_KIND_POWER_NOW: "Power Now",
    SENSOR_KIND_USAGE_TODAY: "Usage Today",
}


@dataclass(frozen=True, kw_only=True)
class MyElectricSensorDescription(SensorEntityDescription):
    """Describe a MyElectric sensor."""

    metric: str = ""
    chart: str = ""
    resets_daily: bool = False


SENSOR_DESCRIPTIONS: tuple[MyElectricSensorDescription, ...] = (
    MyElectricSensorDescription(
        key=SENSOR_KIND_POWER_NOW,
        translation_key=SENSOR_KIND_POWER_NOW,
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfPower.WATT,
        metric="power_now",
        chart="line_chart_data",
    ),
    MyElectricSensorDescription(
        key=SENSOR_KIND_USAGE_TODAY,
        translation_key=SENSOR_KIND_USAGE_TODAY,
        device_class=SensorDeviceClass.ENERGY,
        state_class=SensorStateClass.TOTAL,
        native_unit_of_measurement=UnitOfEnergy.KILO_WATT_HOUR,
        metric="usage_today",
        chart="bar_chart_data",
        resets_daily=True,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up MyElectric sensors for a config entry."""
    runtime = hass.data[DOMAIN][entry.entry_id]
    coordinator: MyElectricCoordinator = runtime[DATA_COORDINATOR]

    async_add_entities(
        MyElectricSensor(coordinator=coordinator, entry=entry, description=description)
        for description in SENSOR_DESCRIPTIONS
    )


class MyElectricSensor(CoordinatorEntity[MyElectricCoordinator], SensorEntity):
    """Sensor pushed by the MyElectric coordinator."""

    _attr_has_entity_name = False

    def __init__(
        self,
        coordinator: MyElectricCoordinator,
        entry: ConfigEntry,
        *,
        description: MyElectricSensorDescription,
    ) -> None:
        super().__init__(coordinator)
        self.entity_description = description
        self._entry_id = entry.entry_id
        self._attr_unique_id = f"{entry.entry_id}_{description.key}"
        self._attr_translation_key = description.translation_key
        self._title = coordinator.title
        self._ready = coordinator.is_ready

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(self.coordinator.async_add_title_listener(self._handle_title))
        self.async_on_remove(self.coordinator.async_add_ready_listener(self._handle_ready))

    @callback
    def _handle_title(self, title: str) -> None:
        if title != self._title:
            self._title = title
            self.async_write_ha_state()

    @callback
    def _handle_ready(self, ready: bool) -> None:
        if ready != self._ready:
            self._ready = ready
            self.async_write_ha_state()

    @property
    def name(self) -> str:
        label = FRIENDLY_SENSOR_NAMES.get(self.entity_description.key, self.entity_description.key)
        return f"{self._title} {label}".strip()

    @property
    def available(self) -> bool:
        # A failed refresh keeps the last good data on show
        return self._ready and self.coordinator.data is not None

    @property
    def native_value(self) -> float | None:
        data = self.coordinator.data
        if data is None:
            return None
        return round(getattr(data, self.entity_description.metric), 3)

    @property
    def last_reset(self) -> datetime | None:
        if not self.entity_description.resets_daily:
            return None
        if entry := self.coordinator.start_of_day:
            return dt_util.start_of_local_day(entry.day)
        return dt_util.start_of_local_day()

    @property
    def extra_state_attributes(self) -> dict[str, object] | None:
        data = self.coordinator.data
        if data is None:
            return None

        attributes: dict[str, object] = {
            self.entity_description.chart: _serialise_points(
                getattr(data, self.entity_description.chart)
            ),
        }
        if self.coordinator.last_error is not None:
            attributes["last_error"] = str(self.coordinator.last_error)
        return attributes

    @property
    def device_info(self) -> dict[str, object]:
        return {
            "identifiers": {(DOMAIN, self._entry_id)},
            "name": self._title,
            "manufacturer": "OpenEnergyMonitor",
            "model": "EmonCMS MyElectric",
        }


def _serialise_points(points: tuple[DataPoint, ...]) -> list[dict[str, object]]:
    return [{"time": point.time.isoformat(), "value": point.value} for point in points]
