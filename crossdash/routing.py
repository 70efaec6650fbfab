"""
Route computation adapter and the OSRM routing capability.

The adapter delegates path finding to a routing capability and reduces every
segment start/end point into the bounding region used to frame the map.
"""
from __future__ import annotations

import asyncio
import logging
from functools import reduce
from typing import Protocol, Sequence

import aiohttp

from .const import DEFAULT_ROUTING_URL, REQUEST_TIMEOUT, TRAVEL_MODE
from .errors import RoutingError, RoutingFailure
from .models import BoundingRegion, Coordinate, RouteResult, RouteSegment
from .requests import ApiResponseError, make_request

_LOGGER = logging.getLogger(__name__)

# OSRM response codes meaning "the network has no path between these points"
NO_ROUTE_CODES = ("NoRoute", "NoSegment")


class RoutingCapability(Protocol):
    """External provider of driving paths."""

    async def route(self, origin: Coordinate, destination: Coordinate, mode: str) -> Sequence[RouteSegment]:
        """Return the path as ordered segments or raise RoutingError."""


def bounding_region(segments: Sequence[RouteSegment]) -> BoundingRegion:
    """Minimal region covering the start and end point of every segment."""
    points = [p for s in segments for p in (s.start, s.end)]
    if not points:
        raise ValueError("Cannot derive a region from an empty path")
    return reduce(BoundingRegion.extend, points[1:], BoundingRegion.from_point(points[0]))


class RouteComputationAdapter:
    """Computes a RouteResult per call; every call reaches the provider."""

    def __init__(self, capability: RoutingCapability, mode: str = TRAVEL_MODE) -> None:
        self._capability = capability
        self.mode = mode

    async def compute_route(self, origin: Coordinate, destination: Coordinate) -> RouteResult:
        try:
            segments = await self._capability.route(origin, destination, self.mode)
        except RoutingError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, f"{type(exc).__name__}: {exc}") from exc

        segments = tuple(segments or ())
        if not segments:
            raise RoutingError(RoutingFailure.NO_ROUTE_FOUND, "provider returned an empty path")

        return RouteResult(
            origin=origin,
            destination=destination,
            path=segments,
            bounding_region=bounding_region(segments),
        )


class OsrmRoutingCapability:
    """
    Routing capability backed by an OSRM /route service.

    Coordinates are sent as lon,lat pairs; each returned step becomes one
    RouteSegment spanning the first and last point of its geometry.
    """

    def __init__(self, base_url: str = DEFAULT_ROUTING_URL, timeout: float = REQUEST_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def build_url(self, origin: Coordinate, destination: Coordinate, mode: str) -> str:
        coordinates = ";".join(f"{c.longitude},{c.latitude}" for c in (origin, destination))
        return f"{self.base_url}/route/v1/{mode}/{coordinates}"

    async def route(self, origin: Coordinate, destination: Coordinate, mode: str) -> list[RouteSegment]:
        url = self.build_url(origin, destination, mode)
        params = {"steps": "true", "overview": "false", "geometries": "geojson"}
        try:
            data = await make_request("GET", url, params=params, timeout=self.timeout)
        except ApiResponseError as exc:
            code = (exc.error_json or {}).get("code")
            if code in NO_ROUTE_CODES:
                raise RoutingError(RoutingFailure.NO_ROUTE_FOUND, code) from exc
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, str(exc)) from exc
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, "timeout") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, str(exc)) from exc

        code = data.get("code") if isinstance(data, dict) else None
        if code in NO_ROUTE_CODES:
            raise RoutingError(RoutingFailure.NO_ROUTE_FOUND, data.get("message", code))
        if code != "Ok":
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, f"OSRM error: {data}")

        routes = data.get("routes") or []
        if not routes:
            raise RoutingError(RoutingFailure.NO_ROUTE_FOUND, "no routes in response")

        try:
            return [
                _segment_from_step(step)
                for leg in routes[0].get("legs", [])
                for step in leg.get("steps", [])
                if step.get("geometry", {}).get("coordinates")
            ]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise RoutingError(RoutingFailure.PROVIDER_ERROR, f"unexpected step format: {exc}") from exc


def _segment_from_step(step: dict) -> RouteSegment:
    coords = step["geometry"]["coordinates"]
    maneuver = step.get("maneuver", {})
    instruction = " ".join(
        part for part in (maneuver.get("type"), maneuver.get("modifier"), step.get("name")) if part
    )
    return RouteSegment(
        start=Coordinate(float(coords[0][1]), float(coords[0][0])),
        end=Coordinate(float(coords[-1][1]), float(coords[-1][0])),
        distance=step.get("distance"),
        duration=step.get("duration"),
        instruction=instruction or None,
    )
