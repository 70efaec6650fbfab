"""
Tests for LocationProvider classification and the shipped location capabilities.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

import aiohttp

from crossdash.errors import LocationError, LocationFailure
from crossdash.location import HttpLocationCapability, LocationProvider, StaticLocationCapability
from crossdash.models import Coordinate
from crossdash.requests import ApiResponseError

from .test_common import USER


def _capability(**kwargs):
    capability = AsyncMock()
    capability.get_current_position = AsyncMock(**kwargs)
    return capability


class TestLocationProvider(unittest.IsolatedAsyncioTestCase):

    async def test_success_returns_coordinate(self):
        capability = _capability(return_value=USER)
        coordinate = await LocationProvider(capability).acquire()
        self.assertEqual(coordinate, USER)
        capability.get_current_position.assert_awaited_once()

    async def test_missing_capability_is_unsupported(self):
        provider = LocationProvider(None)
        self.assertFalse(provider.supported)
        with self.assertRaises(LocationError) as ctx:
            await provider.acquire()
        self.assertEqual(ctx.exception.reason, LocationFailure.UNSUPPORTED)
        self.assertEqual(ctx.exception.user_message, "Geolocation is not supported on this host.")

    async def test_classified_errors_pass_through(self):
        for reason in (
            LocationFailure.PERMISSION_DENIED,
            LocationFailure.POSITION_UNAVAILABLE,
            LocationFailure.TIMEOUT,
            LocationFailure.UNKNOWN,
        ):
            capability = _capability(side_effect=LocationError(reason))
            with self.assertRaises(LocationError) as ctx:
                await LocationProvider(capability).acquire()
            self.assertEqual(ctx.exception.reason, reason)

    async def test_timeout_classified(self):
        capability = _capability(side_effect=asyncio.TimeoutError())
        with self.assertRaises(LocationError) as ctx:
            await LocationProvider(capability).acquire()
        self.assertEqual(ctx.exception.reason, LocationFailure.TIMEOUT)

    async def test_unexpected_exception_is_unknown(self):
        capability = _capability(side_effect=RuntimeError("sensor exploded"))
        with self.assertRaises(LocationError) as ctx:
            await LocationProvider(capability).acquire()
        self.assertEqual(ctx.exception.reason, LocationFailure.UNKNOWN)
        self.assertEqual(ctx.exception.user_message, "An unknown error occurred.")

    async def test_non_coordinate_result_is_unknown(self):
        capability = _capability(return_value={"lat": 1, "lng": 2})
        with self.assertRaises(LocationError) as ctx:
            await LocationProvider(capability).acquire()
        self.assertEqual(ctx.exception.reason, LocationFailure.UNKNOWN)

    async def test_single_attempt_on_failure(self):
        capability = _capability(side_effect=LocationError(LocationFailure.POSITION_UNAVAILABLE))
        with self.assertRaises(LocationError):
            await LocationProvider(capability).acquire()
        self.assertEqual(capability.get_current_position.await_count, 1)


class TestStaticLocationCapability(unittest.IsolatedAsyncioTestCase):

    async def test_returns_configured_coordinate(self):
        capability = StaticLocationCapability("52.52", 13.41)
        self.assertEqual(await capability.get_current_position(), Coordinate(52.52, 13.41))


class TestHttpLocationCapability(unittest.IsolatedAsyncioTestCase):

    async def _acquire(self, **mock_kwargs):
        with patch("crossdash.location.make_request", new=AsyncMock(**mock_kwargs)):
            return await HttpLocationCapability("https://geo.example/json").get_current_position()

    async def test_parses_latitude_longitude(self):
        coordinate = await self._acquire(return_value={"latitude": 52.52, "longitude": 13.41})
        self.assertEqual(coordinate, Coordinate(52.52, 13.41))

    async def test_parses_lat_lon(self):
        coordinate = await self._acquire(return_value={"lat": "48.85", "lon": "2.35"})
        self.assertEqual(coordinate, Coordinate(48.85, 2.35))

    async def test_forbidden_is_permission_denied(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(side_effect=ApiResponseError(403, {"error": "denied"}))
        self.assertEqual(ctx.exception.reason, LocationFailure.PERMISSION_DENIED)

    async def test_server_error_is_position_unavailable(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(side_effect=ApiResponseError(500))
        self.assertEqual(ctx.exception.reason, LocationFailure.POSITION_UNAVAILABLE)

    async def test_connection_error_is_position_unavailable(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(side_effect=aiohttp.ClientConnectionError("refused"))
        self.assertEqual(ctx.exception.reason, LocationFailure.POSITION_UNAVAILABLE)

    async def test_timeout(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(side_effect=asyncio.TimeoutError())
        self.assertEqual(ctx.exception.reason, LocationFailure.TIMEOUT)

    async def test_missing_fields_is_position_unavailable(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(return_value={"city": "Berlin"})
        self.assertEqual(ctx.exception.reason, LocationFailure.POSITION_UNAVAILABLE)

    async def test_nan_latitude_is_position_unavailable(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(return_value={"latitude": "NaN", "longitude": 13.41})
        self.assertEqual(ctx.exception.reason, LocationFailure.POSITION_UNAVAILABLE)

    async def test_out_of_range_longitude_is_position_unavailable(self):
        with self.assertRaises(LocationError) as ctx:
            await self._acquire(return_value={"latitude": 52.52, "longitude": 999})
        self.assertEqual(ctx.exception.reason, LocationFailure.POSITION_UNAVAILABLE)
