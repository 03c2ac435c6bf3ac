"""
Train class for the train management core
Represents a train bound to one route, with its lifecycle and dwell timer
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional
import logging

from .enums import Action, HoldReason, ObjectType, TrainStatus
from .events import CFOSEvent, Event, MoveEvent

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class Train:
    """
    Represents a train moving along a route, one station per tick at most.

    Core Attributes:
        trainID (int): Engine-assigned identifier (monotonic)
        name (str): Display and lookup name
        startTime (int): Start delay in ticks after registration

    Registration:
        registeredAt (Optional[int]): Tick of registration, None when unregistered
        routeID (Optional[int]): Handle of the bound route
        stationIndex (int): Position of the current station in the route
        designatedStops (List[str]): Stations where the train must dwell

    Timing:
        currentTick (int): Logical clock as last propagated by the engine
        waitTimeRemaining (int): Dwell/hold counter, waiting while > 0
        holdReason (Optional[HoldReason]): Why the timer was last re-armed this tick

    Lifecycle:
        status (TrainStatus): INITIALISED -> STARTED -> COMPLETED
    """

    trainID: int
    name: str = ""
    startTime: int = 0
    status: TrainStatus = TrainStatus.INITIALISED

    registeredAt: Optional[int] = None
    routeID: Optional[int] = None
    stationIndex: int = 0
    designatedStops: List[str] = field(default_factory=list)

    currentTick: int = 0
    waitTimeRemaining: int = 0
    holdReason: Optional[HoldReason] = None

    network: Any = field(default=None, repr=False, compare=False)
    _history: List[Event] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        self.name = self.name.strip() if self.name else ""
        if not self.name:
            self.name = f"Train {self.trainID}"
        if self.startTime < 0:
            self.startTime = 0

    kind = ObjectType.TRAIN

    # Route and location

    def get_current_route(self):
        return self.network.route(self.routeID) if self.network else None

    def get_current_station(self):
        route = self.get_current_route()
        return route.station_at(self.stationIndex) if route else None

    def get_next_station(self):
        route = self.get_current_route()
        return route.station_at(self.stationIndex + 1) if route else None

    def get_current_segment(self):
        """Segment leaving the current station, None at the terminal or when unregistered"""
        route = self.get_current_route()
        return route.segment_at(self.stationIndex) if route else None

    def current_station(self) -> Optional[str]:
        station = self.get_current_station()
        return station.name if station else None

    def next_station(self) -> Optional[str]:
        station = self.get_next_station()
        return station.name if station else None

    def is_at_start(self) -> bool:
        return self.routeID is not None and self.stationIndex == 0

    def is_at_end(self) -> bool:
        route = self.get_current_route()
        return route is not None and self.stationIndex == len(route.stationIDs) - 1

    # Registration

    def is_registered(self) -> bool:
        return self.registeredAt is not None

    def when_registered(self) -> Optional[int]:
        return self.registeredAt

    def register(self, route, tick: int, stops: Optional[List[str]] = None) -> None:
        """
        Bind the train to a route at its start station

        Args:
            route: Route to travel
            tick: Registration tick
            stops: Designated stop names (empty means no dwell)
        """
        self.routeID = route.routeID
        self.stationIndex = 0
        self.designatedStops = [stop.strip() for stop in (stops or []) if stop and stop.strip()]
        self.registeredAt = tick
        self.status = TrainStatus.INITIALISED
        self.update_wait_time_remaining()
        logger.info(f"Train {self.name} registered to route {route.name} at tick {tick}")

    def deregister(self) -> None:
        """Clear route binding, location and stops"""
        self.routeID = None
        self.stationIndex = 0
        self.designatedStops = []
        self.registeredAt = None
        self.holdReason = None
        self.waitTimeRemaining = 0
        logger.info(f"Train {self.name} deregistered")

    # Wait timer

    def update_wait_time_remaining(self) -> None:
        """Recompute the timer from the start delay and clear any hold from the previous tick"""
        registered = self.registeredAt if self.registeredAt is not None else 0
        self.waitTimeRemaining = (self.startTime + registered) - self.currentTick
        self.holdReason = None

    def reset_wait_time_remaining(self, reason: HoldReason = HoldReason.CLOSURE) -> None:
        """Re-arm the timer to currentTick + 1 for a dwell or a closure back-off"""
        self.waitTimeRemaining = self.currentTick + 1
        self.holdReason = reason

    def is_waiting(self) -> bool:
        return self.waitTimeRemaining > 0

    def is_on_timer(self) -> bool:
        """Waiting out a start delay or a scheduled dwell, as opposed to being blocked"""
        return self.is_waiting() and self.holdReason is not HoldReason.CLOSURE

    # Lifecycle transitions

    def start(self) -> CFOSEvent:
        """
        Move INITIALISED -> STARTED when validation passes

        Returns:
            Start event (emitted whether or not the transition happened)
        """
        if self.validate():
            self.status = TrainStatus.STARTED
            logger.info(f"Train {self.name} started at tick {self.currentTick}")
        else:
            logger.warning(f"Train {self.name} failed validation and did not start")
        return self.record(CFOSEvent(self.name, self.currentTick, Action.START))

    def finish(self) -> CFOSEvent:
        """
        Move to COMPLETED when at the route's terminal station

        Returns:
            Finish event (emitted whether or not the transition happened)
        """
        if self.is_at_end():
            self.status = TrainStatus.COMPLETED
            logger.info(f"Train {self.name} completed at tick {self.currentTick}")
        else:
            logger.warning(f"Train {self.name} asked to finish away from its terminal")
        return self.record(CFOSEvent(self.name, self.currentTick, Action.FINISH))

    def advance(self, tick: int) -> MoveEvent:
        """
        Move to the next station when the route is valid and the station reachable

        The Move event is emitted even when the move does not happen; the
        discrepancy is logged.

        Args:
            tick: Tick to stamp the event with

        Returns:
            MoveEvent from the station before the call to the intended next station
        """
        route = self.get_current_route()
        from_name = self.current_station() or ""
        to_name = self.next_station() or from_name

        if (route is not None and route.verify() and self.status is TrainStatus.STARTED
                and self.next_station() is not None and route.can_get_to(to_name)):
            self.stationIndex += 1
            logger.debug(f"Train {self.name} moved {from_name} -> {to_name}")
        else:
            logger.warning(f"Train {self.name} could not move {from_name} -> {to_name}: "
                           f"route or train status does not allow it")
        return self.record(MoveEvent(self.name, tick, from_name, to_name))

    def add_stop(self, stop: str) -> None:
        self.designatedStops.append(stop.strip())

    def is_designated_stop(self, station_name: Optional[str]) -> bool:
        return station_name is not None and station_name in self.designatedStops

    # Verification

    def verify(self) -> bool:
        """Registered to a route that verifies"""
        route = self.get_current_route()
        return self.is_registered() and route is not None and route.verify()

    def validate(self) -> bool:
        """Ready to start: still INITIALISED, identified and verified"""
        return (self.status is TrainStatus.INITIALISED and self.trainID != 0
                and bool(self.name) and self.verify())

    # History

    def record(self, event: Event) -> Event:
        self._history.append(event)
        return event

    def history(self) -> List[Event]:
        return list(self._history)

    def __str__(self) -> str:
        route = self.get_current_route()
        stops = str(self.designatedStops) if self.designatedStops else "All"
        return (f"Train [id={self.trainID}, name={self.name}, "
                f"timeRegistered={self.registeredAt if self.is_registered() else 'unregistered'}, "
                f"startTime={self.startTime}, currentStation={self.current_station() or 'none'}, "
                f"route={route.name if route else 'none'}, stopsAt={stops}, status={self.status.value}, "
                f"verified={'Yes' if self.verify() else 'No'}]")
