"""Constants for the EmonCMS MyElectric integration."""
from __future__ import annotations

from datetime import timedelta
from typing import Final

from homeassistant.const import Platform

DOMAIN: Final = "emoncms_myelectric"
PLATFORMS: Final = [Platform.SENSOR]

CONF_API_KEY: Final = "api_key"
CONF_URL: Final = "url"

CONF_NAME: Final = "name"
CONF_USE_FEED_ID: Final = "use_feed_id"
CONF_KWH_FEED_ID: Final = "kwh_feed_id"

DATA_CLIENT: Final = "client"
DATA_CONFIG_STORE: Final = "config_store"
DATA_COORDINATOR: Final = "coordinator"

DEFAULT_APP_NAME: Final = "My Electric"

STORE_VERSION: Final = 1
STORE_KEY_FMT: Final = "emoncms_myelectric.{entry_id}"

API_TIMEOUT: Final = 30

REFRESH_INTERVAL: Final = timedelta(seconds=10)

LINE_CHART_WINDOW: Final = timedelta(hours=8)
LINE_CHART_TARGET_SAMPLES: Final = 1500

# One more day than is displayed so the first delta can be computed
BAR_CHART_DAYS: Final = 15

TRIGGER_TIMER: Final = "timer"
TRIGGER_CONFIG: Final = "config"

FIELD_TYPE_STRING: Final = "string"
FIELD_TYPE_FEED: Final = "feed"

SENSOR_KIND_POWER_NOW: Final = "power_now"
SENSOR_KIND_USAGE_TODAY: Final = "usage_today"
