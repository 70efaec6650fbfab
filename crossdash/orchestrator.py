"""
RoutingOrchestrator — the location-to-route state machine of a routing screen.

Responsibilities:
- Acquire the user's position once per session (location.py).
- Resolve it to address, facilities and ETA sequence (resolver.py).
- Run the ETA countdown while the session is resolved (countdown.py).
- Compute the driving route to the first facility once the advisory flow
  reveals next-step guidance (routing.py), and drive the map view.
- Publish an immutable OrchestratorState snapshot after every change.

Phases:
  Idle → LocatingUser → ResolvingLocation → Resolved ⇄ RouteComputed
              └──────────────┴──→ Failed (terminal)
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Protocol

from .const import MAP_ZOOM
from .countdown import CountdownScheduler
from .errors import CrossDashError, LocationError, ResolutionError, ResolutionFailure, RoutingError
from .location import LocationProvider
from .models import (
    BoundingRegion,
    Coordinate,
    OrchestratorState,
    Phase,
    RevealSignal,
    RouteResult,
)
from .resolver import ResolutionClient
from .routing import RouteComputationAdapter

_LOGGER = logging.getLogger(__name__)

# Phases from which a reveal may trigger route computation
ROUTABLE_PHASES = (Phase.RESOLVED, Phase.ROUTE_COMPUTED)
# Phases in which a reveal is remembered until resolution succeeds
PENDING_PHASES = (Phase.IDLE, Phase.LOCATING_USER, Phase.RESOLVING_LOCATION)


class MapView(Protocol):
    """Render boundary of the external map widget."""

    def center(self, coordinate: Coordinate, zoom: int) -> None: ...

    def show_marker(self, coordinate: Coordinate) -> None: ...

    def show_route(self, route: RouteResult) -> None: ...

    def fit_bounds(self, region: BoundingRegion) -> None: ...


class RoutingOrchestrator:
    """
    Owns one routing session from mount to teardown.

    Collaborators are injected so that hosts and tests can substitute them.
    """

    def __init__(
        self,
        location: LocationProvider,
        resolver: ResolutionClient,
        router: RouteComputationAdapter,
        map_view: MapView | None = None,
        countdown: CountdownScheduler | None = None,
    ) -> None:
        self._location = location
        self._resolver = resolver
        self._router = router
        self._map_view = map_view
        self._countdown = countdown or CountdownScheduler()
        self._remove_countdown_listener = self._countdown.add_listener(self._on_countdown)

        self._listeners: list[Callable[[OrchestratorState], None]] = []
        self._tasks: set[asyncio.Task] = set()

        self._started = False
        self._closed = False
        # Reveal received before resolution finished
        self._reveal_pending = False
        # Bumped per route request; only the newest result is applied
        self._route_generation = 0

        self.data = OrchestratorState()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.data.phase

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def countdown(self) -> CountdownScheduler:
        return self._countdown

    # ------------------------------------------------------------------
    # Snapshot publishing
    # ------------------------------------------------------------------

    def async_add_listener(self, listener: Callable[[OrchestratorState], None]) -> Callable[[], None]:
        """Register listener for every new snapshot; returns a remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _set_state(self, **changes) -> None:
        self.data = dataclasses.replace(self.data, **changes)
        for listener in list(self._listeners):
            try:
                listener(self.data)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.error("State listener failed in phase %s: %s", self.data.phase.value, exc)

    # ------------------------------------------------------------------
    # Session start: locate → resolve → countdown
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Schedule async_start() on the running loop and track the task."""
        return self._track(self.async_start())

    async def async_start(self) -> None:
        """Run the acquisition and resolution steps of the session once."""
        if self._started:
            raise RuntimeError("Routing session already started")
        if self._closed:
            raise RuntimeError("Routing session is shut down")
        self._started = True

        self._set_state(phase=Phase.LOCATING_USER)
        try:
            coordinate = await self._location.acquire()
        except LocationError as exc:
            self._fail(exc)
            return
        if self._closed:
            _LOGGER.debug("Discarding position acquired after teardown")
            return

        self._set_state(phase=Phase.RESOLVING_LOCATION, coordinate=coordinate)
        self._render("center", coordinate, MAP_ZOOM)
        self._render("show_marker", coordinate)

        try:
            resolution = await self._resolver.resolve(coordinate)
        except ResolutionError as exc:
            self._fail(exc)
            return
        except Exception as exc:  # noqa: BLE001
            _LOGGER.exception("Unexpected error from resolver")
            self._fail(ResolutionError(ResolutionFailure.NETWORK_FAILURE, str(exc)))
            return
        if self._closed:
            _LOGGER.debug("Discarding resolution received after teardown")
            return

        self._set_state(phase=Phase.RESOLVED, resolution=resolution)
        self._countdown.start(resolution.eta_minutes)
        _LOGGER.info(
            "Session resolved to %s with %d facilities", resolution.address, len(resolution.facilities)
        )

        if self._reveal_pending:
            self._reveal_pending = False
            await self._async_compute_route()

    def _fail(self, exc: CrossDashError) -> None:
        if self._closed:
            _LOGGER.debug("Ignoring %s after teardown", exc)
            return
        _LOGGER.error("Routing session failed in phase %s: %s", self.data.phase.value, exc)
        self._countdown.cancel()
        self._set_state(
            phase=Phase.FAILED,
            failure_reason=exc.reason,
            error_message=exc.user_message,
        )

    def _on_countdown(self, value: int) -> None:
        if self._closed:
            return
        self._set_state(eta_display=value)

    # ------------------------------------------------------------------
    # Reveal → route computation
    # ------------------------------------------------------------------

    def handle_reveal(self, signal: RevealSignal) -> asyncio.Task:
        """Schedule async_handle_reveal() on the running loop and track the task."""
        return self._track(self.async_handle_reveal(signal))

    async def async_handle_reveal(self, signal: RevealSignal) -> RouteResult | None:
        """
        Deliver an advisory reveal event.

        A visible signal stores the advice and, once the session is resolved,
        computes a fresh route to the first facility. Before that it is kept
        pending; after a failure it is ignored.
        """
        if self._closed:
            _LOGGER.debug("Ignoring reveal signal after teardown")
            return None

        if not signal.visible:
            # Hidden again before resolution: nothing left to route for
            self._reveal_pending = False
            self._set_state(revealed=False)
            return None

        self._set_state(revealed=True, advice=signal.advice, audio=signal.audio)

        phase = self.data.phase
        if phase in PENDING_PHASES:
            _LOGGER.debug("Reveal received in phase %s; routing deferred until resolved", phase.value)
            self._reveal_pending = True
            return None
        if phase not in ROUTABLE_PHASES:
            _LOGGER.warning("Reveal received in phase %s; no route will be computed", phase.value)
            return None

        return await self._async_compute_route()

    async def _async_compute_route(self) -> RouteResult | None:
        """Route from the captured coordinate to facilities[0]; non-fatal on failure."""
        origin = self.data.coordinate
        resolution = self.data.resolution
        target = resolution.target if resolution else None
        if origin is None or target is None:
            _LOGGER.warning("No facility to route to; keeping marker-only map")
            return None

        self._route_generation += 1
        generation = self._route_generation
        try:
            route = await self._router.compute_route(origin, target.coordinate)
        except RoutingError as exc:
            _LOGGER.warning("Error fetching directions to %s: %s", target.name or target.coordinate, exc)
            return None

        if self._closed:
            _LOGGER.debug("Discarding route computed after teardown")
            return None
        if generation != self._route_generation:
            _LOGGER.debug("Discarding superseded route result %d", generation)
            return None

        self._set_state(phase=Phase.ROUTE_COMPUTED, route=route)
        self._render("show_route", route)
        self._render("fit_bounds", route.bounding_region)
        return route

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _render(self, method: str, *args) -> None:
        if self._map_view is None:
            return
        try:
            getattr(self._map_view, method)(*args)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Map view %s failed: %s", method, exc)

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Tear the session down; late results are discarded from here on."""
        if self._closed:
            return
        self._closed = True
        self._remove_countdown_listener()
        await self._countdown.async_shutdown()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._listeners.clear()

    async def __aenter__(self) -> RoutingOrchestrator:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.async_shutdown()
