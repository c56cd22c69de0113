"""Data models used by the EmonCMS MyElectric integration."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, slots=True)
class Account:
    """Credentials for one EmonCMS account."""

    uuid: str
    url: str
    apikey: str


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Persisted configuration of a MyElectric app."""

    name: str
    use_feed_id: str | None = None
    kwh_feed_id: str | None = None

    @property
    def feed_pair(self) -> tuple[str | None, str | None]:
        return (self.use_feed_id, self.kwh_feed_id)

    @property
    def is_ready(self) -> bool:
        return self.use_feed_id is not None and self.kwh_feed_id is not None


@dataclass(frozen=True, slots=True)
class AppConfigField:
    """Describe one editable field of an app configuration."""

    id: str
    name: str
    type: str


@dataclass(frozen=True, slots=True)
class DataPoint:
    """A single sample of a feed."""

    time: datetime
    value: float


@dataclass(frozen=True, slots=True)
class FeedInfo:
    """A feed listed on the account."""

    id: str
    name: str
    tag: str
    value: float | None


@dataclass(frozen=True, slots=True)
class MyElectricData:
    """Composite result of one refresh."""

    power_now: float
    usage_today: float
    line_chart_data: tuple[DataPoint, ...]
    bar_chart_data: tuple[DataPoint, ...]


@dataclass(frozen=True, slots=True)
class StartOfDayEntry:
    """Cached cumulative reading of ``feed_id`` at the start of ``day``."""

    feed_id: str
    day: date
    value: DataPoint
