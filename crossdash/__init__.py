"""CrossDash: location-to-route orchestration for an emergency routing screen."""
import logging

from .config import load_config, validate_config
from .const import DOMAIN, VERSION
from .countdown import CountdownScheduler
from .errors import (
    ConfigError,
    CrossDashError,
    LocationError,
    LocationFailure,
    ResolutionError,
    ResolutionFailure,
    RoutingError,
    RoutingFailure,
)
from .location import HttpLocationCapability, LocationProvider, StaticLocationCapability
from .models import (
    BoundingRegion,
    Coordinate,
    Facility,
    OrchestratorState,
    Phase,
    ResolutionResult,
    RevealSignal,
    RouteResult,
    RouteSegment,
)
from .orchestrator import MapView, RoutingOrchestrator
from .resolver import ResolutionClient
from .routing import OsrmRoutingCapability, RouteComputationAdapter

__version__ = VERSION

_LOGGER = logging.getLogger(__name__)


def create_session(config: dict, map_view: MapView = None, location_capability=None, routing_capability=None) -> RoutingOrchestrator:
    """
    Wire a RoutingOrchestrator from a validated configuration.

    A configured latitude/longitude pins the location; otherwise the IP based
    lookup is used. Explicit capabilities replace the configured ones.
    """
    config = validate_config(config)
    timeout = config["request_timeout"]

    if location_capability is None:
        if "latitude" in config:
            location_capability = StaticLocationCapability(config["latitude"], config["longitude"])
        else:
            location_capability = HttpLocationCapability(config["location_url"], timeout=timeout)
    if routing_capability is None:
        routing_capability = OsrmRoutingCapability(config["routing_url"], timeout=timeout)

    _LOGGER.debug("Creating %s session against %s", DOMAIN, config["resolver_url"])
    return RoutingOrchestrator(
        location=LocationProvider(location_capability),
        resolver=ResolutionClient(config["resolver_url"], timeout=timeout),
        router=RouteComputationAdapter(routing_capability),
        map_view=map_view,
        countdown=CountdownScheduler(config["countdown_interval"]),
    )


__all__ = [
    "BoundingRegion",
    "ConfigError",
    "Coordinate",
    "CountdownScheduler",
    "CrossDashError",
    "Facility",
    "HttpLocationCapability",
    "LocationError",
    "LocationFailure",
    "LocationProvider",
    "MapView",
    "OrchestratorState",
    "OsrmRoutingCapability",
    "Phase",
    "ResolutionClient",
    "ResolutionError",
    "ResolutionFailure",
    "ResolutionResult",
    "RevealSignal",
    "RouteComputationAdapter",
    "RouteResult",
    "RouteSegment",
    "RoutingError",
    "RoutingFailure",
    "RoutingOrchestrator",
    "StaticLocationCapability",
    "create_session",
    "load_config",
    "validate_config",
]
