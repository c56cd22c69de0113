"""Merge the visibility timer and feed changes into refresh requests."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.core import CALLBACK_TYPE, callback
from homeassistant.helpers.event import async_track_time_interval

from .const import TRIGGER_CONFIG, TRIGGER_TIMER

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .models import AppConfig

_LOGGER = logging.getLogger(__name__)

_UNSET = object()


class RefreshTriggerAggregator:
    """
    Produce refresh requests from two sources.

    While active, a request is made immediately and then on every interval.
    Independently, a request is made whenever the (use feed, kWh feed) pair
    changes after it was first observed. Both sources call the same handler.

    """

    def __init__(
        self,
        hass: HomeAssistant,
        interval: timedelta,
        on_trigger: Callable[[str], None],
    ) -> None:
        self.hass = hass
        self._interval = interval
        self._on_trigger = on_trigger
        self._active = False
        self._timer_cancel: CALLBACK_TYPE | None = None
        self._last_feed_pair: object = _UNSET

    @property
    def active(self) -> bool:
        return self._active

    @property
    def timer_running(self) -> bool:
        return self._timer_cancel is not None

    @callback
    def async_set_active(self, active: bool) -> None:
        """Start or stop the periodic timer; repeated values are ignored."""
        if active == self._active:
            return
        self._active = active

        if active:
            self._start_timer()
        else:
            self._cancel_timer()

    @callback
    def async_observe_config(self, config: AppConfig) -> None:
        """Request a refresh when the feed pair differs from the last one seen."""
        pair = config.feed_pair
        if self._last_feed_pair is _UNSET:
            self._last_feed_pair = pair
            return
        if pair == self._last_feed_pair:
            return

        _LOGGER.debug("Feeds changed from %s to %s", self._last_feed_pair, pair)
        self._last_feed_pair = pair
        self._on_trigger(TRIGGER_CONFIG)

    @callback
    def cancel(self) -> None:
        self._active = False
        self._cancel_timer()

    def _start_timer(self) -> None:
        self._cancel_timer()
        self._timer_cancel = async_track_time_interval(
            self.hass, self._handle_tick, self._interval
        )
        _LOGGER.debug("Refresh timer started (every %s)", self._interval)
        self._on_trigger(TRIGGER_TIMER)

    def _cancel_timer(self) -> None:
        if self._timer_cancel:
            self._timer_cancel()
            self._timer_cancel = None
            _LOGGER.debug("Refresh timer stopped")

    @callback
    def _handle_tick(self, _now: datetime) -> None:
        if not self._active:
            return
        self._on_trigger(TRIGGER_TIMER)
