"""
Location provider adapter.

Wraps a host location capability and normalises its outcome into a
Coordinate or a classified LocationError. One capability call per acquire().
"""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp
import voluptuous as vol

from .const import DEFAULT_LOCATION_URL, REQUEST_TIMEOUT
from .errors import LocationError, LocationFailure
from .models import Coordinate
from .requests import ApiResponseError, make_request

_LOGGER = logging.getLogger(__name__)

POSITION_SCHEMA = vol.Schema(
    {
        vol.Required("latitude"): vol.All(vol.Coerce(float), vol.Range(min=-90, max=90)),
        vol.Required("longitude"): vol.All(vol.Coerce(float), vol.Range(min=-180, max=180)),
    }
)


class LocationCapability(Protocol):
    """Host-provided, single-shot position source."""

    async def get_current_position(self) -> Coordinate:
        """Return the current position or raise LocationError."""


class StaticLocationCapability:
    """Position fixed by configuration (kiosk, test bench, CLI)."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._coordinate = Coordinate(float(latitude), float(longitude))

    async def get_current_position(self) -> Coordinate:
        return self._coordinate


class HttpLocationCapability:
    """
    Approximate position from an IP geolocation service.

    Expects a JSON body with latitude/longitude (or lat/lon) keys.
    """

    def __init__(self, url: str = DEFAULT_LOCATION_URL, timeout: float = REQUEST_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout

    async def get_current_position(self) -> Coordinate:
        try:
            raw = await make_request("GET", self.url, timeout=self.timeout)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise LocationError(LocationFailure.TIMEOUT, self.url) from exc
        except ApiResponseError as exc:
            if exc.status in (401, 403):
                raise LocationError(LocationFailure.PERMISSION_DENIED, str(exc)) from exc
            raise LocationError(LocationFailure.POSITION_UNAVAILABLE, str(exc)) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise LocationError(LocationFailure.POSITION_UNAVAILABLE, str(exc)) from exc

        if not isinstance(raw, dict):
            raise LocationError(LocationFailure.POSITION_UNAVAILABLE, f"unexpected body: {raw}")
        lat = raw.get("latitude", raw.get("lat"))
        lng = raw.get("longitude", raw.get("lon", raw.get("lng")))
        try:
            position = POSITION_SCHEMA({"latitude": lat, "longitude": lng})
        except vol.Invalid as exc:
            raise LocationError(
                LocationFailure.POSITION_UNAVAILABLE, f"no usable coordinate in {raw}: {exc}"
            ) from exc
        return Coordinate(position["latitude"], position["longitude"])


class LocationProvider:
    """Adapter around an optional location capability."""

    def __init__(self, capability: LocationCapability | None) -> None:
        self._capability = capability

    @property
    def supported(self) -> bool:
        return self._capability is not None

    async def acquire(self) -> Coordinate:
        """
        Ask the capability for the current position exactly once.

        Raises LocationError(UNSUPPORTED) without calling anything when the
        host has no capability, and classifies unexpected exceptions as UNKNOWN.
        """
        if self._capability is None:
            raise LocationError(LocationFailure.UNSUPPORTED)

        try:
            coordinate = await self._capability.get_current_position()
        except LocationError:
            raise
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise LocationError(LocationFailure.TIMEOUT) from exc
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Unexpected error from location capability: %s", exc)
            raise LocationError(LocationFailure.UNKNOWN, str(exc)) from exc

        if not isinstance(coordinate, Coordinate):
            raise LocationError(LocationFailure.UNKNOWN, f"unexpected position {coordinate!r}")

        _LOGGER.debug("Acquired position (%.5f, %.5f)", coordinate.latitude, coordinate.longitude)
        return coordinate
