"""
Tests for ResolutionClient: request parameters, response parsing (string
coordinates included), error classification and the single in-flight rule.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

import aiohttp

from crossdash.errors import ResolutionError, ResolutionFailure
from crossdash.models import Coordinate
from crossdash.requests import ApiResponseError
from crossdash.resolver import ResolutionClient, parse_resolution

from .test_common import USER, make_hospital_json, make_response_json


class TestParseResolution(unittest.TestCase):

    def test_string_coordinates_parsed_to_float(self):
        result = parse_resolution(make_response_json())
        target = result.facilities[0]
        self.assertEqual((target.latitude, target.longitude), (40.0, -73.0))
        self.assertIsInstance(target.latitude, float)
        self.assertEqual(target.coordinate, Coordinate(40.0, -73.0))

    def test_numeric_coordinates_accepted(self):
        result = parse_resolution(make_response_json(hospitals=[make_hospital_json(40.5, -73.25)]))
        self.assertEqual(result.target.coordinate, Coordinate(40.5, -73.25))

    def test_order_and_metadata_preserved(self):
        result = parse_resolution(make_response_json())
        self.assertEqual([f.name for f in result.facilities], ["Mercy General", "St. Luke"])
        self.assertEqual(result.facilities[0].raw["lat"], "40.0")
        self.assertEqual(result.address, "1 Centre St, New York, NY")
        self.assertEqual(result.eta_minutes, (12, 11, 10))

    def test_empty_facility_list_allowed(self):
        result = parse_resolution(make_response_json(hospitals=[]))
        self.assertEqual(result.facilities, ())
        self.assertIsNone(result.target)

    def test_malformed_payloads(self):
        cases = [
            make_response_json(hospitals=[make_hospital_json(lat="north")]),
            make_response_json(hospitals=[make_hospital_json(lat="95.0")]),
            make_response_json(hospitals=[{"lat": "40.0"}]),
            make_response_json(eta=[]),
            make_response_json(eta=["soon"]),
            make_response_json(address=None),
            {"address": "x", "eta": [1]},
            ["not", "a", "mapping"],
            None,
        ]
        for raw in cases:
            with self.assertRaises(ResolutionError, msg=str(raw)) as ctx:
                parse_resolution(raw)
            self.assertEqual(ctx.exception.reason, ResolutionFailure.MALFORMED_RESPONSE)


class TestResolutionClient(unittest.IsolatedAsyncioTestCase):

    async def test_sends_coordinate_as_query_params(self):
        client = ResolutionClient("http://resolver.local:5000/")
        mock_request = AsyncMock(return_value=make_response_json())
        with patch("crossdash.resolver.make_request", new=mock_request):
            result = await client.resolve(USER)

        mock_request.assert_awaited_once()
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("GET", "http://resolver.local:5000/find-address"))
        self.assertEqual(kwargs["params"], {"latitude": USER.latitude, "longitude": USER.longitude})
        self.assertEqual(result.target.coordinate, Coordinate(40.0, -73.0))
        self.assertFalse(client.in_flight)

    async def test_network_failures(self):
        for error in (
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("refused"),
            ApiResponseError(502),
        ):
            with patch("crossdash.resolver.make_request", new=AsyncMock(side_effect=error)):
                with self.assertRaises(ResolutionError) as ctx:
                    await ResolutionClient().resolve(USER)
            self.assertEqual(ctx.exception.reason, ResolutionFailure.NETWORK_FAILURE)
            self.assertEqual(ctx.exception.user_message, "Failed to fetch address")

    async def test_non_json_body_is_malformed(self):
        with patch("crossdash.resolver.make_request", new=AsyncMock(side_effect=ValueError("Expected JSON"))):
            with self.assertRaises(ResolutionError) as ctx:
                await ResolutionClient().resolve(USER)
        self.assertEqual(ctx.exception.reason, ResolutionFailure.MALFORMED_RESPONSE)

    async def test_second_request_refused_while_outstanding(self):
        client = ResolutionClient()
        release = asyncio.Event()

        async def slow_request(*args, **kwargs):
            await release.wait()
            return make_response_json()

        mock_request = AsyncMock(side_effect=slow_request)
        with patch("crossdash.resolver.make_request", new=mock_request):
            first = asyncio.ensure_future(client.resolve(USER))
            await asyncio.sleep(0)
            self.assertTrue(client.in_flight)
            with self.assertRaises(RuntimeError):
                await client.resolve(USER)
            release.set()
            await first

        self.assertEqual(mock_request.await_count, 1)
        self.assertFalse(client.in_flight)

    async def test_in_flight_cleared_after_failure(self):
        client = ResolutionClient()
        with patch("crossdash.resolver.make_request", new=AsyncMock(side_effect=ApiResponseError(500))):
            with self.assertRaises(ResolutionError):
                await client.resolve(USER)
        self.assertFalse(client.in_flight)
