"""
Resolution client: coordinate → address, ranked facilities and ETA sequence.

Corresponding CURL command:
curl 'http://127.0.0.1:5000/find-address?latitude=40.7128&longitude=-74.006'
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp
import voluptuous as vol

from .const import DEFAULT_RESOLVER_URL, REQUEST_TIMEOUT, RESOLVE_ENDPOINT
from .errors import ResolutionError, ResolutionFailure
from .models import Coordinate, Facility, ResolutionResult
from .requests import ApiResponseError, make_request

_LOGGER = logging.getLogger(__name__)

# Facility coordinates may arrive as text ("40.0") or numbers
latitude = vol.All(vol.Coerce(float), vol.Range(min=-90, max=90))
longitude = vol.All(vol.Coerce(float), vol.Range(min=-180, max=180))

FACILITY_SCHEMA = vol.Schema(
    {
        vol.Required("lat"): latitude,
        vol.Required("lng"): longitude,
        vol.Optional("name"): vol.Any(None, str),
        vol.Optional("address"): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

RESPONSE_SCHEMA = vol.Schema(
    {
        vol.Required("address"): str,
        vol.Required("eta"): vol.All([vol.Coerce(int)], vol.Length(min=1)),
        vol.Required("hospitals"): [FACILITY_SCHEMA],
    },
    extra=vol.ALLOW_EXTRA,
)


def parse_resolution(raw) -> ResolutionResult:
    """
    Validate a resolver response body and convert it into a ResolutionResult.

    Raises ResolutionError(MALFORMED_RESPONSE) on any shape or parse problem.
    """
    try:
        data = RESPONSE_SCHEMA(raw)
    except vol.Invalid as exc:
        raise ResolutionError(ResolutionFailure.MALFORMED_RESPONSE, str(exc)) from exc

    facilities = tuple(
        Facility(
            latitude=item["lat"],
            longitude=item["lng"],
            name=item.get("name"),
            address=item.get("address"),
            raw=dict(original),
        )
        for item, original in zip(data["hospitals"], raw["hospitals"])
    )
    return ResolutionResult(
        address=data["address"],
        facilities=facilities,
        eta_minutes=tuple(data["eta"]),
    )


class ResolutionClient:
    """Talks to the resolver backend; at most one request in flight."""

    def __init__(self, base_url: str = DEFAULT_RESOLVER_URL, timeout: float = REQUEST_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._in_flight = False

    @property
    def url(self) -> str:
        return self.base_url + RESOLVE_ENDPOINT

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def resolve(self, coordinate: Coordinate) -> ResolutionResult:
        """Resolve coordinate with a single request."""
        if self._in_flight:
            raise RuntimeError("A resolution request is already outstanding")

        params = {"latitude": coordinate.latitude, "longitude": coordinate.longitude}
        self._in_flight = True
        try:
            raw = await make_request("GET", self.url, params=params, timeout=self.timeout)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            _LOGGER.warning("Timeout while resolving (%s, %s)", coordinate.latitude, coordinate.longitude)
            raise ResolutionError(ResolutionFailure.NETWORK_FAILURE, "timeout") from exc
        except (ApiResponseError, aiohttp.ClientError) as exc:
            _LOGGER.warning("Resolver request to %s failed: %s", self.url, exc)
            raise ResolutionError(ResolutionFailure.NETWORK_FAILURE, str(exc)) from exc
        except ValueError as exc:
            _LOGGER.warning("Resolver returned a non-JSON body: %s", exc)
            raise ResolutionError(ResolutionFailure.MALFORMED_RESPONSE, str(exc)) from exc
        finally:
            self._in_flight = False

        result = parse_resolution(raw)
        _LOGGER.debug(
            "Resolved %s with %d facilities and %d ETA values",
            result.address, len(result.facilities), len(result.eta_minutes),
        )
        return result
