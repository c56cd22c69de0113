"""Data validation utilities for EmonCMS feed payloads."""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any, Dict, List, Optional

from homeassistant.util import dt as dt_util

from .exceptions import EmonCMSError
from .models import DataPoint, FeedInfo

_LOGGER = logging.getLogger(__name__)


class DataValidationError(EmonCMSError):
    """Exception raised when data validation fails."""


def _coerce_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def validate_feed_data(data: Any) -> List[DataPoint]:
    """Validate a ``feed/data.json`` payload.

    The API answers with ``[[time_ms, value], ...]``. Entries with a missing
    or non-numeric value are skipped; the result is ordered by time.
    """
    if not isinstance(data, list):
        raise DataValidationError("Feed data must be a list")

    points: List[DataPoint] = []
    for i, entry in enumerate(data):
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            _LOGGER.debug("Skipping malformed feed sample %d: %s", i, entry)
            continue

        timestamp = _coerce_float(entry[0])
        value = _coerce_float(entry[1])
        if timestamp is None or value is None:
            continue

        points.append(
            DataPoint(time=dt_util.utc_from_timestamp(timestamp / 1000), value=value)
        )

    points.sort(key=lambda point: point.time)
    return points


def validate_feed_values(feed_ids: Iterable[str], data: Any) -> Dict[str, float]:
    """Validate a ``feed/fetch.json`` payload.

    Values come back positionally in the order the ids were requested. Ids
    whose value is null or not numeric are left out of the result.
    """
    ids = list(feed_ids)
    if not isinstance(data, list):
        raise DataValidationError("Feed values must be a list")

    if len(data) != len(ids):
        _LOGGER.warning(
            "Feed value count mismatch: requested=%d received=%d", len(ids), len(data)
        )

    values: Dict[str, float] = {}
    for feed_id, raw in zip(ids, data):
        value = _coerce_float(raw)
        if value is None:
            _LOGGER.debug("No latest value for feed %s: %s", feed_id, raw)
            continue
        values[feed_id] = value

    return values


def validate_feed_list(data: Any) -> List[FeedInfo]:
    """Validate a ``feed/list.json`` payload."""
    if not isinstance(data, list):
        raise DataValidationError("Feed list must be a list")

    feeds: List[FeedInfo] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        feed_id = entry.get("id")
        if feed_id is None or feed_id == "":
            _LOGGER.debug("Skipping feed without id: %s", entry)
            continue

        feeds.append(
            FeedInfo(
                id=str(feed_id),
                name=str(entry.get("name") or f"Feed {feed_id}").strip(),
                tag=str(entry.get("tag") or "").strip(),
                value=_coerce_float(entry.get("value")),
            )
        )

    return feeds
