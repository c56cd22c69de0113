"""Coordinator for the EmonCMS MyElectric app."""
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .api import EmonCMSClient
from .cache import StartOfDayCache
from .config_store import AppConfigStore
from .const import (
    BAR_CHART_DAYS,
    CONF_KWH_FEED_ID,
    CONF_NAME,
    CONF_USE_FEED_ID,
    DOMAIN,
    FIELD_TYPE_FEED,
    FIELD_TYPE_STRING,
    LINE_CHART_TARGET_SAMPLES,
    LINE_CHART_WINDOW,
    REFRESH_INTERVAL,
)
from .exceptions import (
    EmonCMSError,
    MyElectricError,
    MyElectricErrorKind,
    NotConfiguredError,
    error_kind,
)
from .listeners import ListenerList
from .models import Account, AppConfig, AppConfigField, DataPoint, MyElectricData, StartOfDayEntry
from .triggers import RefreshTriggerAggregator

_LOGGER = logging.getLogger(__name__)


def compute_daily_deltas(points: Sequence[DataPoint]) -> list[DataPoint]:
    """Turn a cumulative daily series into per-day usage.

    Each output point keeps the time of the later sample and the difference to
    the sample before it, so the output is one shorter than the input.
    """
    if len(points) < 2:
        return []

    deltas: list[DataPoint] = []
    last_value = points[0].value
    for point in points[1:]:
        deltas.append(DataPoint(time=point.time, value=point.value - last_value))
        last_value = point.value
    return deltas


def line_chart_interval(start: datetime, end: datetime) -> int:
    """Sampling interval in seconds giving roughly 1500 samples over the window."""
    return int(math.floor((end - start).total_seconds() / LINE_CHART_TARGET_SAMPLES))


class MyElectricCoordinator(DataUpdateCoordinator[MyElectricData]):
    """
    Drive refreshes of one MyElectric app.

    Refresh requests come from a timer that runs while ``active`` is set and
    from changes of the selected feeds. At most one refresh runs at a time;
    requests arriving while one is in flight are dropped. The timer is owned by
    the trigger aggregator, so the coordinator has no update interval of its
    own. Results reach entities through the coordinator listeners; the
    refreshing flag, readiness, the title and errors have their own streams.

    """

    def __init__(
        self,
        hass: HomeAssistant,
        client: EmonCMSClient,
        config_store: AppConfigStore,
        app_id: str,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialise the coordinator; raises AppConfigNotFoundError for unknown apps."""
        app_config = config_store.get(app_id)
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{app_id}",
            update_interval=None,
        )

        self.client = client
        self.app_id = app_id
        self._config_store = config_store
        self._app_config = app_config

        self._start_of_day = StartOfDayCache()
        self._is_refreshing = False
        self._last_error: MyElectricErrorKind | None = None
        # Bumped on shutdown so late results are not published
        self._generation = 0

        self._title_listeners: ListenerList[str] = ListenerList("title")
        self._refreshing_listeners: ListenerList[bool] = ListenerList("refreshing")
        self._ready_listeners: ListenerList[bool] = ListenerList("ready")
        self._error_listeners: ListenerList[MyElectricErrorKind] = ListenerList("error")

        self._triggers = RefreshTriggerAggregator(hass, REFRESH_INTERVAL, self._handle_trigger)
        self._triggers.async_observe_config(self._app_config)
        self._remove_config_listener: CALLBACK_TYPE | None = config_store.async_add_listener(
            app_id, self._handle_config_changed
        )

    # ---------- State ----------

    @property
    def account(self) -> Account:
        return self.client.account

    @property
    def app_config(self) -> AppConfig:
        return self._app_config

    @property
    def title(self) -> str:
        return self._app_config.name

    @property
    def is_ready(self) -> bool:
        return self._app_config.is_ready

    @property
    def is_refreshing(self) -> bool:
        return self._is_refreshing

    @property
    def last_error(self) -> MyElectricErrorKind | None:
        return self._last_error

    @property
    def start_of_day(self) -> StartOfDayEntry | None:
        return self._start_of_day.entry

    @property
    def active(self) -> bool:
        return self._triggers.active

    @active.setter
    def active(self, value: bool) -> None:
        self._triggers.async_set_active(value)

    # ---------- Listeners ----------

    @callback
    def async_add_error_listener(
        self, update_callback: Callable[[MyElectricErrorKind], None]
    ) -> CALLBACK_TYPE:
        """Listen for failed refreshes."""
        return self._error_listeners.async_add(update_callback)

    @callback
    def async_add_title_listener(self, update_callback: Callable[[str], None]) -> CALLBACK_TYPE:
        """Listen for the app name; called at once with the current name."""
        remove = self._title_listeners.async_add(update_callback)
        update_callback(self.title)
        return remove

    @callback
    def async_add_ready_listener(self, update_callback: Callable[[bool], None]) -> CALLBACK_TYPE:
        """Listen for readiness; called at once with the current value."""
        remove = self._ready_listeners.async_add(update_callback)
        update_callback(self.is_ready)
        return remove

    @callback
    def async_add_refreshing_listener(
        self, update_callback: Callable[[bool], None]
    ) -> CALLBACK_TYPE:
        """Listen for the refreshing flag; called at once with the current value."""
        remove = self._refreshing_listeners.async_add(update_callback)
        update_callback(self._is_refreshing)
        return remove

    # ---------- Refresh dispatch ----------

    @callback
    def _handle_trigger(self, source: str) -> None:
        self.async_start_refresh(source)

    @callback
    def _handle_config_changed(self, config: AppConfig) -> None:
        self._app_config = config
        self._title_listeners.async_notify(config.name)
        self._ready_listeners.async_notify(config.is_ready)
        self._triggers.async_observe_config(config)

    async def async_request_refresh(self) -> None:
        """Request a refresh; dropped while one is already running."""
        self.async_start_refresh("manual")

    @callback
    def async_start_refresh(self, source: str) -> bool:
        """
        Start a refresh unless one is already running.

        Returns:
            True if a refresh was started, False if the request was dropped

        """
        if self._is_refreshing:
            _LOGGER.debug(
                "App %s: refresh requested by %s dropped, one is already in flight",
                self.app_id,
                source,
            )
            return False

        _LOGGER.debug("App %s: refresh requested by %s", self.app_id, source)
        self._set_refreshing(True)
        self.hass.async_create_task(
            self._async_run_refresh(self._generation),
            f"{DOMAIN}_refresh_{self.app_id}",
        )
        return True

    async def _async_run_refresh(self, generation: int) -> None:
        try:
            data = await self._async_update_data()
        except Exception as err:  # noqa: BLE001 - every failure is surfaced on the error stream
            kind = error_kind(err)
            if isinstance(err, (MyElectricError, EmonCMSError)):
                _LOGGER.error("App %s: refresh failed (%s): %s", self.app_id, kind, err)
            else:
                _LOGGER.exception("App %s: unexpected error during refresh", self.app_id)

            if generation == self._generation:
                self.last_exception = err
                self.last_update_success = False
                self._last_error = kind
                self._error_listeners.async_notify(kind)
                self.async_update_listeners()
        else:
            if generation == self._generation:
                self.async_set_updated_data(data)
            else:
                _LOGGER.debug("App %s: discarding refresh result after shutdown", self.app_id)
        finally:
            self._set_refreshing(False)

    def _set_refreshing(self, value: bool) -> None:
        self._is_refreshing = value
        self._refreshing_listeners.async_notify(value)

    # ---------- Update flow ----------

    async def _async_update_data(self) -> MyElectricData:
        """Fetch current power, today's usage and both chart series."""
        use_feed_id, kwh_feed_id = self._app_config.feed_pair
        if use_feed_id is None or kwh_feed_id is None:
            raise NotConfiguredError(f"App {self.app_id} has no use and kWh feed selected")

        now = dt_util.now()
        (power_now, usage_today), line_chart_data, bar_chart_data = await asyncio.gather(
            self._async_fetch_power_now_and_usage_today(use_feed_id, kwh_feed_id, now),
            self._async_fetch_line_chart_history(use_feed_id, now),
            self._async_fetch_bar_chart_history(kwh_feed_id, now),
        )

        _LOGGER.debug(
            "App %s: power_now=%s usage_today=%s line=%d bar=%d",
            self.app_id,
            power_now,
            usage_today,
            len(line_chart_data),
            len(bar_chart_data),
        )

        return MyElectricData(
            power_now=power_now,
            usage_today=usage_today,
            line_chart_data=tuple(line_chart_data),
            bar_chart_data=tuple(bar_chart_data),
        )

    async def _async_fetch_power_now_and_usage_today(
        self, use_feed_id: str, kwh_feed_id: str, now: datetime
    ) -> tuple[float, float]:
        today = dt_util.as_local(now).date()
        start_of_day, feed_values = await asyncio.gather(
            self._start_of_day.async_get_baseline(
                kwh_feed_id, today, self.client.async_fetch_range
            ),
            self.client.async_fetch_latest([use_feed_id, kwh_feed_id]),
        )

        use = feed_values.get(use_feed_id)
        use_kwh = feed_values.get(kwh_feed_id)
        if use is None or use_kwh is None:
            _LOGGER.debug(
                "App %s: latest values missing for %s, reporting zero",
                self.app_id,
                [feed_id for feed_id in (use_feed_id, kwh_feed_id) if feed_id not in feed_values],
            )
            return 0.0, 0.0

        return use, use_kwh - start_of_day.value

    async def _async_fetch_line_chart_history(
        self, use_feed_id: str, now: datetime
    ) -> list[DataPoint]:
        start = now - LINE_CHART_WINDOW
        return await self.client.async_fetch_range(
            use_feed_id, start, now, line_chart_interval(start, now)
        )

    async def _async_fetch_bar_chart_history(
        self, kwh_feed_id: str, now: datetime
    ) -> list[DataPoint]:
        start = now - timedelta(days=BAR_CHART_DAYS)
        points = await self.client.async_fetch_daily_range(kwh_feed_id, start, now)
        return compute_daily_deltas(points)

    # ---------- Configuration ----------

    def config_fields(self) -> list[AppConfigField]:
        return [
            AppConfigField(id=CONF_NAME, name="Name", type=FIELD_TYPE_STRING),
            AppConfigField(id=CONF_USE_FEED_ID, name="Use Feed", type=FIELD_TYPE_FEED),
            AppConfigField(id=CONF_KWH_FEED_ID, name="kWh Feed", type=FIELD_TYPE_FEED),
        ]

    def config_data(self) -> dict[str, str]:
        """Current configuration values; unset feeds are left out."""
        data = {CONF_NAME: self._app_config.name}
        if self._app_config.use_feed_id is not None:
            data[CONF_USE_FEED_ID] = self._app_config.use_feed_id
        if self._app_config.kwh_feed_id is not None:
            data[CONF_KWH_FEED_ID] = self._app_config.kwh_feed_id
        return data

    async def async_update_with_config_data(self, data: Mapping[str, Any]) -> None:
        await self._config_store.async_update_fields(self.app_id, data)

    # ---------- Lifecycle ----------

    async def async_shutdown(self) -> None:
        """Stop the timer and detach every listener."""
        self._generation += 1
        self._triggers.cancel()
        if self._remove_config_listener:
            self._remove_config_listener()
            self._remove_config_listener = None

        for listeners in (
            self._title_listeners,
            self._refreshing_listeners,
            self._ready_listeners,
            self._error_listeners,
        ):
            listeners.async_clear()

        await super().async_shutdown()
        _LOGGER.debug("App %s: coordinator shut down", self.app_id)
