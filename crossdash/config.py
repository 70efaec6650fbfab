"""Runtime configuration for CrossDash routing sessions."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
    COUNTDOWN_INTERVAL,
    DEFAULT_LOCATION_URL,
    DEFAULT_RESOLVER_URL,
    DEFAULT_ROUTING_URL,
    REQUEST_TIMEOUT,
)
from .errors import ConfigError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "CROSSDASH_"

positive_float = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))
# URL validator that only checks for an http(s) scheme and a host part
url_validator = vol.All(str, vol.Length(min=1), vol.Match(r"^https?://[^/\s]+"))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required('resolver_url', default=DEFAULT_RESOLVER_URL): url_validator,
        vol.Required('routing_url', default=DEFAULT_ROUTING_URL): url_validator,
        vol.Required('location_url', default=DEFAULT_LOCATION_URL): url_validator,
        vol.Required('request_timeout', default=REQUEST_TIMEOUT): positive_float,
        vol.Required('countdown_interval', default=COUNTDOWN_INTERVAL): positive_float,
        vol.Optional('latitude'): vol.All(vol.Coerce(float), vol.Range(min=-90, max=90)),
        vol.Optional('longitude'): vol.All(vol.Coerce(float), vol.Range(min=-180, max=180)),
    }
)


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate config and fill in defaults; raises ConfigError."""
    try:
        data = CONFIG_SCHEMA(dict(config))
    except vol.Invalid as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    # A fixed location needs both halves of the coordinate
    if ('latitude' in data) != ('longitude' in data):
        raise ConfigError("latitude and longitude must be configured together")
    return data


def load_config(overrides: Optional[Dict[str, Any]] = None, dotenv_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the configuration from CROSSDASH_* environment variables.

    A .env file is loaded first (without overriding the real environment),
    then explicit overrides with a non-None value win over both.
    """
    load_dotenv(dotenv_path)

    config: Dict[str, Any] = {}
    for key in CONFIG_SCHEMA.schema:
        name = str(key)
        value = os.getenv(ENV_PREFIX + name.upper())
        if value:
            config[name] = value

    for name, value in (overrides or {}).items():
        if value is not None:
            config[name] = value

    data = validate_config(config)
    _LOGGER.debug("Loaded configuration: %s", data)
    return data
