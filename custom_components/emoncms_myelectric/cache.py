"""Start-of-day baseline cache for the cumulative energy feed."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, timedelta

from homeassistant.util import dt as dt_util

from .exceptions import MyElectricError
from .models import DataPoint, StartOfDayEntry

_LOGGER = logging.getLogger(__name__)

RangeFetcher = Callable[..., Awaitable[list[DataPoint]]]


class StartOfDayCache:
    """
    Memoise the midnight reading of the kWh feed.

    Holds a single entry. The entry is reused only while both its feed and its
    day match the lookup; otherwise one fetch replaces it. There is no expiry timer,
    staleness is checked when a baseline is requested.

    The lock keeps lookup and store atomic so only one writer can touch the
    entry at a time.

    """

    def __init__(self) -> None:
        self._entry: StartOfDayEntry | None = None
        self._lock = asyncio.Lock()

    @property
    def entry(self) -> StartOfDayEntry | None:
        return self._entry

    def is_valid_for(self, kwh_feed_id: str, today: date) -> bool:
        return (
            self._entry is not None
            and self._entry.day == today
            and self._entry.feed_id == kwh_feed_id
        )

    async def async_get_baseline(
        self,
        kwh_feed_id: str,
        today: date,
        fetch_range: RangeFetcher,
    ) -> DataPoint:
        """
        Return the start-of-day reading of ``kwh_feed_id`` for ``today``.

        Args:
            kwh_feed_id: Cumulative energy feed
            today: Local calendar date the baseline is wanted for
            fetch_range: Coroutine function called as
                ``fetch_range(feed_id, start, end, interval)``

        """
        async with self._lock:
            if self.is_valid_for(kwh_feed_id, today):
                return self._entry.value

            midnight = dt_util.start_of_local_day(today)
            points = await fetch_range(kwh_feed_id, midnight, midnight + timedelta(days=1), 1)
            if not points:
                raise MyElectricError(f"No start-of-day reading for feed {kwh_feed_id}")

            baseline = points[0]
            if self._entry is not None:
                _LOGGER.debug(
                    "Replacing start-of-day baseline for %s on %s with %s on %s",
                    self._entry.feed_id,
                    self._entry.day,
                    kwh_feed_id,
                    today,
                )
            self._entry = StartOfDayEntry(feed_id=kwh_feed_id, day=today, value=baseline)
            _LOGGER.debug("Start-of-day baseline for %s: %s", today, baseline.value)
            return baseline
