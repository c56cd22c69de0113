"""Client for interacting with the EmonCMS feed API."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import aiohttp
import async_timeout

from .const import API_TIMEOUT
from .data_validation import validate_feed_data, validate_feed_list, validate_feed_values
from .exceptions import EmonCMSAuthError, EmonCMSError
from .models import Account, DataPoint, FeedInfo

_LOGGER = logging.getLogger(__name__)

_AUTH_MESSAGE_HINTS = ("apikey", "api key", "username or password", "unauthorized")


class EmonCMSClient:
    """Small wrapper around the EmonCMS HTTP API for one account."""

    def __init__(self, session: aiohttp.ClientSession, account: Account) -> None:
        """Initialise the client with the account it reads from."""
        self._session = session
        self._account = account

    @property
    def account(self) -> Account:
        return self._account

    async def async_test_credentials(self) -> bool:
        """Attempt to list feeds, returning True if the API key is accepted."""
        try:
            await self.async_get_feeds()
        except EmonCMSAuthError as err:
            _LOGGER.debug("Credential validation failed: %s", err)
            return False
        except EmonCMSError:
            _LOGGER.exception("Unexpected error while validating EmonCMS credentials")
            return False
        return True

    async def async_get_feeds(self) -> list[FeedInfo]:
        """Return the feeds available on the account."""
        payload = await self._async_get("feed/list.json", {})
        return validate_feed_list(payload)

    async def async_fetch_range(
        self,
        feed_id: str,
        start: datetime,
        end: datetime,
        interval: int,
    ) -> list[DataPoint]:
        """Fetch samples of ``feed_id`` between ``start`` and ``end``."""
        params = {
            "id": feed_id,
            "start": _to_millis(start),
            "end": _to_millis(end),
            "interval": interval,
            "skipmissing": 1,
            "limitinterval": 1,
        }
        _LOGGER.debug(
            "Fetch range | feed=%s period=%s..%s interval=%s", feed_id, start, end, interval
        )
        payload = await self._async_get("feed/data.json", params)
        return validate_feed_data(payload)

    async def async_fetch_daily_range(
        self,
        feed_id: str,
        start: datetime,
        end: datetime,
    ) -> list[DataPoint]:
        """Fetch one sample per calendar day of ``feed_id``."""
        params = {
            "id": feed_id,
            "start": _to_millis(start),
            "end": _to_millis(end),
            "mode": "daily",
        }
        _LOGGER.debug("Fetch daily | feed=%s period=%s..%s", feed_id, start, end)
        payload = await self._async_get("feed/data.json", params)
        return validate_feed_data(payload)

    async def async_fetch_latest(self, feed_ids: Iterable[str]) -> dict[str, float]:
        """Return the most recent value of each feed; missing feeds are absent."""
        ids = list(dict.fromkeys(feed_ids))
        if not ids:
            return {}
        payload = await self._async_get("feed/fetch.json", {"ids": ",".join(ids)})
        return validate_feed_values(ids, payload)

    async def _async_get(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self._account.url.rstrip('/')}/{path}"
        query = {**params, "apikey": self._account.apikey}

        try:
            async with async_timeout.timeout(API_TIMEOUT):
                async with self._session.get(url, params=query) as response:
                    if response.status in (401, 403):
                        raise EmonCMSAuthError(f"API key rejected by {self._account.url}")
                    response.raise_for_status()
                    payload = await response.json(content_type=None)
        except asyncio.TimeoutError as err:
            raise EmonCMSError(f"Timeout fetching {path}") from err
        except aiohttp.ClientError as err:
            raise EmonCMSError(f"Error fetching {path}: {err}") from err

        if isinstance(payload, dict) and payload.get("success") is False:
            message = str(payload.get("message") or "request failed")
            if any(hint in message.lower() for hint in _AUTH_MESSAGE_HINTS):
                raise EmonCMSAuthError(message)
            raise EmonCMSError(message)

        return payload


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)
