"""
Command-line runner for a single CrossDash routing session.

Usage:
    python -m crossdash [--latitude LAT --longitude LNG] [--advice TEXT] [--follow N]

Examples:
    python -m crossdash --latitude 40.7128 --longitude -74.006
    python -m crossdash --latitude 40.7128 --longitude -74.006 --advice "- Stay calm - Apply pressure"
    python -m crossdash -f 3 --countdown-interval 1      # watch three countdown steps quickly
"""
import argparse
import asyncio
import logging
import sys

from . import create_session, load_config
from .errors import ConfigError
from .models import BoundingRegion, Coordinate, OrchestratorState, Phase, RevealSignal, RouteResult


class ConsoleMapView:
    """Map view that prints render commands instead of drawing them."""

    def center(self, coordinate: Coordinate, zoom: int):
        print(f"  map centred on ({coordinate.latitude:.5f}, {coordinate.longitude:.5f}) zoom {zoom}")

    def show_marker(self, coordinate: Coordinate):
        print(f"  marker at ({coordinate.latitude:.5f}, {coordinate.longitude:.5f})")

    def show_route(self, route: RouteResult):
        print(f"  route: {len(route.path)} steps, {route.distance / 1000:.1f} km, {route.duration / 60:.0f} min")
        for segment in route.path:
            if segment.instruction:
                print(f"    • {segment.instruction}")

    def fit_bounds(self, region: BoundingRegion):
        print(
            f"  fit to S {region.south:.5f} W {region.west:.5f} "
            f"N {region.north:.5f} E {region.east:.5f}"
        )


def _print_state(state: OrchestratorState, last: dict):
    """Print only what changed since the previous snapshot."""
    if state.phase != last.get("phase"):
        print(f"[{state.phase.value}]")
        if state.phase == Phase.RESOLVED and last.get("phase") != Phase.ROUTE_COMPUTED:
            print(f"  address: {state.address}")
            for index, facility in enumerate(state.facilities):
                label = facility.name or f"facility {index + 1}"
                print(f"  {index + 1}. {label} ({facility.latitude:.5f}, {facility.longitude:.5f})")
        if state.phase == Phase.FAILED:
            print(f"  error: {state.error_message}")
    if state.eta_display is not None and state.eta_display != last.get("eta"):
        print(f"  {state.eta_text}")
    last["phase"] = state.phase
    last["eta"] = state.eta_display


async def run(args) -> int:
    config = load_config({
        "resolver_url": args.resolver_url,
        "routing_url": args.routing_url,
        "latitude": args.latitude,
        "longitude": args.longitude,
        "countdown_interval": args.countdown_interval,
    })

    last: dict = {}
    async with create_session(config, map_view=ConsoleMapView()) as session:
        session.async_add_listener(lambda state: _print_state(state, last))
        await session.async_start()
        if session.phase == Phase.FAILED:
            return 1

        if args.advice:
            await session.async_handle_reveal(RevealSignal(True, args.advice, args.audio))
            for step in session.data.advice_steps:
                print(f"  next step: {step}")

        if args.follow > 0:
            await asyncio.sleep(args.follow * session.countdown.interval + 0.1)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="crossdash",
        description="Run one CrossDash routing session from the command line",
    )
    parser.add_argument('--latitude', type=float, help='Fixed latitude (skips IP location lookup)')
    parser.add_argument('--longitude', type=float, help='Fixed longitude (skips IP location lookup)')
    parser.add_argument('--resolver-url', help='Base URL of the address/facility resolver')
    parser.add_argument('--routing-url', help='Base URL of the OSRM routing service')
    parser.add_argument('-a', '--advice', help='Fire the reveal signal with this advice text')
    parser.add_argument('--audio', help='Audio reference attached to the advice')
    parser.add_argument('-f', '--follow', type=int, default=0,
                        help='Number of countdown steps to follow before exiting (default: 0)')
    parser.add_argument('--countdown-interval', type=float,
                        help='Seconds per countdown step (default: 60)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(run(args))
    except ConfigError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
