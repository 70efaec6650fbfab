"""
Domain models for a CrossDash routing session.

Pure frozen data classes with no network or event-loop dependencies.
Always derive changed copies via dataclasses.replace(); never mutate in place.
"""
from __future__ import annotations

import dataclasses
import enum
from typing import Any


@dataclasses.dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


@dataclasses.dataclass(frozen=True)
class Facility:
    """A candidate emergency-response destination."""

    latitude: float
    longitude: float
    name: str | None = None
    address: str | None = None
    # Untouched wire payload for anything the UI wants to show later
    raw: dict[str, Any] = dataclasses.field(default_factory=dict, compare=False)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclasses.dataclass(frozen=True)
class ResolutionResult:
    """Address, ranked facilities and ETA sequence for one coordinate."""

    address: str
    facilities: tuple[Facility, ...]
    eta_minutes: tuple[int, ...]

    @property
    def target(self) -> Facility | None:
        """The routing destination: the first facility, if any."""
        return self.facilities[0] if self.facilities else None


@dataclasses.dataclass(frozen=True)
class CountdownState:
    """ETA values still to be shown; the head is the current display value."""

    remaining: tuple[int, ...]

    @property
    def current(self) -> int | None:
        return self.remaining[0] if self.remaining else None

    @property
    def is_final(self) -> bool:
        return len(self.remaining) <= 1

    def advance(self) -> CountdownState:
        """Drop the head, unless only the last value is left."""
        if self.is_final:
            return self
        return CountdownState(self.remaining[1:])


@dataclasses.dataclass(frozen=True)
class BoundingRegion:
    """Minimal rectangle covering a set of points."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_point(cls, point: Coordinate) -> BoundingRegion:
        return cls(point.latitude, point.longitude, point.latitude, point.longitude)

    def extend(self, point: Coordinate) -> BoundingRegion:
        """Return a region that also covers point."""
        return BoundingRegion(
            south=min(self.south, point.latitude),
            west=min(self.west, point.longitude),
            north=max(self.north, point.latitude),
            east=max(self.east, point.longitude),
        )

    def contains(self, point: Coordinate) -> bool:
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )


@dataclasses.dataclass(frozen=True)
class RouteSegment:
    """One step of a driving path."""

    start: Coordinate
    end: Coordinate
    distance: float | None = None   # metres
    duration: float | None = None   # seconds
    instruction: str | None = None


@dataclasses.dataclass(frozen=True)
class RouteResult:
    """A computed path and the region that frames all of it."""

    origin: Coordinate
    destination: Coordinate
    path: tuple[RouteSegment, ...]
    bounding_region: BoundingRegion

    @property
    def distance(self) -> float:
        return sum(s.distance or 0.0 for s in self.path)

    @property
    def duration(self) -> float:
        return sum(s.duration or 0.0 for s in self.path)


@dataclasses.dataclass(frozen=True)
class RevealSignal:
    """Edge event from the advisory flow carrying the advice payload."""

    visible: bool
    advice: str = ""
    audio: str | None = None


class Phase(enum.Enum):
    IDLE = "idle"
    LOCATING_USER = "locating_user"
    RESOLVING_LOCATION = "resolving_location"
    RESOLVED = "resolved"
    ROUTE_COMPUTED = "route_computed"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class OrchestratorState:
    """
    Copy-on-write snapshot of everything the routing screen renders.

    Only the orchestrator produces new snapshots.
    """

    phase: Phase = Phase.IDLE

    # Captured once at acquisition time
    coordinate: Coordinate | None = None

    # Set atomically on successful resolution
    resolution: ResolutionResult | None = None

    # Head of the running countdown (None until resolved)
    eta_display: int | None = None

    # Last successfully computed route
    route: RouteResult | None = None

    # Terminal failure details
    failure_reason: enum.Enum | None = None
    error_message: str = ""

    # Advisory payload, present once the reveal has fired
    revealed: bool = False
    advice: str = ""
    audio: str | None = None

    @property
    def address(self) -> str:
        return self.resolution.address if self.resolution else ""

    @property
    def facilities(self) -> tuple[Facility, ...]:
        return self.resolution.facilities if self.resolution else ()

    @property
    def eta_text(self) -> str:
        if self.eta_display is None:
            return ""
        return f"ETA: {self.eta_display} Minutes"

    @property
    def advice_steps(self) -> list[str]:
        """Advice split on '-' into trimmed, non-empty steps."""
        return [step.strip() for step in self.advice.split("-") if step.strip()]
