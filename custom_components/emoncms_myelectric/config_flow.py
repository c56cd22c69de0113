"""Config flow for the EmonCMS MyElectric integration."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import EmonCMSClient
from .const import (
    CONF_API_KEY,
    CONF_NAME,
    CONF_URL,
    DATA_CLIENT,
    DATA_COORDINATOR,
    DEFAULT_APP_NAME,
    DOMAIN,
)
from .exceptions import EmonCMSError
from .models import Account, FeedInfo

_LOGGER = logging.getLogger(__name__)


def _normalise_url(raw: str) -> str:
    url = raw.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    return url


def _feed_choices(feeds: list[FeedInfo]) -> dict[str, str]:
    choices: dict[str, str] = {}
    for feed in feeds:
        label = f"{feed.tag}: {feed.name}" if feed.tag else feed.name
        choices[feed.id] = f"{label} ({feed.id})"
    return choices


class EmonCMSMyElectricConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle configuration of the integration."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        errors: dict[str, str] = {}

        if user_input is not None:
            url = _normalise_url(user_input[CONF_URL])
            client = EmonCMSClient(
                async_get_clientsession(self.hass),
                Account(uuid="", url=url, apikey=user_input[CONF_API_KEY]),
            )

            if not await client.async_test_credentials():
                errors["base"] = "invalid_auth"
            else:
                await self.async_set_unique_id(url.lower())
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=user_input.get(CONF_NAME) or DEFAULT_APP_NAME,
                    data={CONF_URL: url, CONF_API_KEY: user_input[CONF_API_KEY]},
                )

        defaults = user_input or {}
        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_URL, default=defaults.get(CONF_URL, "https://emoncms.org")): str,
                    vol.Required(CONF_API_KEY, default=defaults.get(CONF_API_KEY, "")): str,
                    vol.Optional(CONF_NAME, default=defaults.get(CONF_NAME, DEFAULT_APP_NAME)): str,
                }
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry) -> config_entries.OptionsFlow:
        return EmonCMSMyElectricOptionsFlow(config_entry)


class EmonCMSMyElectricOptionsFlow(config_entries.OptionsFlow):
    """Edit the name and feeds of the MyElectric app."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self._entry = entry

    async def async_step_init(self, user_input: Mapping[str, Any] | None = None) -> FlowResult:
        runtime = self.hass.data.get(DOMAIN, {}).get(self._entry.entry_id)
        if runtime is None:
            return self.async_abort(reason="not_loaded")

        coordinator = runtime[DATA_COORDINATOR]

        if user_input is not None:
            await coordinator.async_update_with_config_data(user_input)
            return self.async_create_entry(title="", data={})

        client: EmonCMSClient = runtime[DATA_CLIENT]
        try:
            feeds = await client.async_get_feeds()
        except EmonCMSError as err:
            _LOGGER.error("Unable to list feeds: %s", err)
            return self.async_abort(reason="cannot_connect")

        choices = _feed_choices(feeds)
        if not choices:
            return self.async_abort(reason="no_feeds")

        current = coordinator.config_data()
        schema: dict[Any, Any] = {
            vol.Required(CONF_NAME, default=current.get(CONF_NAME, DEFAULT_APP_NAME)): str,
        }
        for field in coordinator.config_fields():
            if field.id == CONF_NAME:
                continue
            default = current.get(field.id)
            key = (
                vol.Required(field.id, default=default)
                if default in choices
                else vol.Required(field.id)
            )
            schema[key] = vol.In(choices)

        return self.async_show_form(step_id="init", data_schema=vol.Schema(schema))
