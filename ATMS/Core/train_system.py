"""
Train System Module
==================
Central coordination engine for the single-track network.

This module handles:
- Ownership of every station, segment, route and train (through the Network arena)
- The logical clock and the system status machine
- Topology builders, valid only while the system is Initialised
- Train registration and entity open/close by name
- The per-tick advance() algorithm negotiating segment occupancy
- Deadlock and termination detection
"""

from typing import Dict, List, Optional
import logging

from .enums import Action, ErrorKind, HoldReason, Light, ObjectType, SystemStatus, TrainStatus
from .events import CFOSEvent, Event
from .network import Network
from .results import InvalidStateError, MalformedRouteError, OperationResult
from .route import Route
from .segment import Segment
from .station import Station
from .traffic_light import TrafficLight
from .train import Train

# Set up logging
logger = logging.getLogger(__name__)


class TrainSystem:
    """
    Discrete-time engine for a single-track rail network.

    Status machine:
        INITIALISED: topology builders accepted
        OPERATIONAL: only tick advancement, open/close and (de)registration
        FINISHED / DEADLOCKED: terminal, advance() raises InvalidStateError

    Primary Attributes:
        network (Network): Arenas for stations, segments, routes and trains
        status (SystemStatus): Current status
        currentTime (int): Logical clock, advanced one tick at a time
        last_events (List[Event]): Events produced by the most recent advance()
        last_failures (List[OperationResult]): Per-train failures of the most recent advance()

    Methods Overview:
        Topology (INITIALISED only):
            - add_station / remove_station
            - add_segment / remove_segment
            - add_route / remove_route
            - add_train / remove_train

        Lifecycle:
            - register_train / de_register_train
            - set_to_working / set_stopped
            - increment_time / advance

        Entity control:
            - open_station / close_station, open_segment / close_segment,
              open_route / close_route, open_entity / close_entity

        Lookups (None on a miss):
            - get_station_by_name / get_segment_by_name / get_route_by_name / get_train_by_name

        Termination:
            - closure_hindering_movement(): true deadlock
            - is_finished(): nothing left to run
    """

    def __init__(self):
        self.network = Network()
        self.status = SystemStatus.INITIALISED
        self.currentTime = 0
        self.last_events: List[Event] = []
        self.last_failures: List[OperationResult] = []

    # Clock and status

    def get_current_time(self) -> int:
        return self.currentTime

    def increment_time(self) -> int:
        """Advance the logical clock by one tick and propagate it to every entity"""
        self._set_time(self.currentTime + 1)
        return self.currentTime

    def _set_time(self, tick: int) -> None:
        if tick < self.currentTime:
            raise InvalidStateError(f"Clock cannot move back from {self.currentTime} to {tick}")
        self.currentTime = tick
        self.network.set_tick(tick)

    def current_status(self) -> SystemStatus:
        return self.status

    def is_operational(self) -> bool:
        return self.status is SystemStatus.OPERATIONAL

    def set_to_working(self) -> OperationResult:
        """INITIALISED -> OPERATIONAL"""
        if self.status is not SystemStatus.INITIALISED:
            return self._refuse(ErrorKind.INVALID_STATE,
                                f"Cannot start a system that is {self.status.name}")
        self.status = SystemStatus.OPERATIONAL
        logger.info(f"Train system operational at tick {self.currentTime}")
        return OperationResult.ok()

    def set_stopped(self, deadlocked: bool = False) -> None:
        """Move to a terminal status"""
        self.status = SystemStatus.DEADLOCKED if deadlocked else SystemStatus.FINISHED
        logger.info(f"Train system stopped at tick {self.currentTime}: {self.status.description}")

    def _require_initialised(self, operation: str) -> Optional[OperationResult]:
        if self.status is not SystemStatus.INITIALISED:
            return self._refuse(ErrorKind.INVALID_STATE,
                                f"Cannot {operation}: system is {self.status.name}, not INITIALISED")
        return None

    @staticmethod
    def _refuse(kind: ErrorKind, message: str) -> OperationResult:
        logger.warning(message)
        return OperationResult.failure(kind, message)

    # Collections and lookups

    def get_stations(self) -> List[Station]:
        return self.network.all(ObjectType.STATION)

    def get_segments(self) -> List[Segment]:
        return self.network.all(ObjectType.SEGMENT)

    def get_routes(self) -> List[Route]:
        return self.network.all(ObjectType.ROUTE)

    def get_trains(self) -> List[Train]:
        return self.network.all(ObjectType.TRAIN)

    def get_station_by_name(self, name: str) -> Optional[Station]:
        return self.network.find(ObjectType.STATION, name)

    def get_segment_by_name(self, name: str) -> Optional[Segment]:
        return self.network.find(ObjectType.SEGMENT, name)

    def get_route_by_name(self, name: str) -> Optional[Route]:
        return self.network.find(ObjectType.ROUTE, name)

    def get_train_by_name(self, name: str) -> Optional[Train]:
        return self.network.find(ObjectType.TRAIN, name)

    def contains_station(self, name: str) -> bool:
        return self.network.contains(ObjectType.STATION, name)

    def contains_segment(self, name: str) -> bool:
        return self.network.contains(ObjectType.SEGMENT, name)

    def contains_route(self, name: str) -> bool:
        return self.network.contains(ObjectType.ROUTE, name)

    def contains_train(self, name: str) -> bool:
        return self.network.contains(ObjectType.TRAIN, name)

    def _check_new_name(self, kind: ObjectType, name: str) -> Optional[OperationResult]:
        if not name or not name.strip():
            return self._refuse(ErrorKind.INVALID_NAME, f"{kind.value} name must not be empty")
        if self.network.contains(kind, name):
            return self._refuse(ErrorKind.INVALID_NAME, f"{kind.value} {name.strip()} already exists")
        return None

    # Stations

    def add_station(self, name: str) -> OperationResult:
        refused = self._require_initialised("add station") or self._check_new_name(ObjectType.STATION, name)
        if refused:
            return refused
        station = Station(self.network.next_id(ObjectType.STATION), name)
        station.currentTick = self.currentTime
        self.network.add(ObjectType.STATION, station.stationID, station.name, station)
        logger.info(f"Station {station.name} added")
        return OperationResult.ok()

    def remove_station(self, name: str) -> OperationResult:
        refused = self._require_initialised("remove station")
        if refused:
            return refused
        station = self.get_station_by_name(name)
        if station is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Station {name} not found")
        for segment in self.get_segments():
            if station.stationID in (segment.startID, segment.endID):
                return self._refuse(ErrorKind.INVALID_STATE,
                                    f"Station {name} is used by segment {segment.name}")
        self.network.remove(ObjectType.STATION, name)
        logger.info(f"Station {name} removed")
        return OperationResult.ok()

    def open_station(self, name: str) -> Optional[Event]:
        station = self.get_station_by_name(name)
        if station is None or not station.entity.verify():
            logger.warning(f"Cannot open station {name}")
            return None
        return station.open()

    def close_station(self, name: str) -> Optional[Event]:
        station = self.get_station_by_name(name)
        if station is None:
            logger.warning(f"Cannot close station {name}: not found")
            return None
        return station.close()

    # Segments

    def add_segment(self, name: str, start: str, end: str, light: Light = Light.GREEN) -> OperationResult:
        refused = self._require_initialised("add segment") or self._check_new_name(ObjectType.SEGMENT, name)
        if refused:
            return refused
        start_station = self.get_station_by_name(start)
        end_station = self.get_station_by_name(end)
        if start_station is None or end_station is None:
            missing = start if start_station is None else end
            return self._refuse(ErrorKind.NOT_FOUND, f"Segment {name}: station {missing} not found")
        if start_station is end_station:
            return self._refuse(ErrorKind.INVALID_NAME, f"Segment {name} starts and ends at {start}")

        light_obj = TrafficLight(self.network.next_id(ObjectType.TRAFFIC_LIGHT), light)
        segment = Segment(self.network.next_id(ObjectType.SEGMENT), name,
                          start_station.stationID, end_station.stationID, light_obj, self.network)
        segment.currentTick = self.currentTime
        self.network.add(ObjectType.SEGMENT, segment.segmentID, segment.name, segment)
        logger.info(f"Segment {segment.name} added: {start_station.name} -> {end_station.name}")
        return OperationResult.ok()

    def remove_segment(self, name: str) -> OperationResult:
        refused = self._require_initialised("remove segment")
        if refused:
            return refused
        segment = self.get_segment_by_name(name)
        if segment is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Segment {name} not found")
        for route in self.get_routes():
            if segment.segmentID in route.segmentIDs:
                return self._refuse(ErrorKind.INVALID_STATE, f"Segment {name} is used by route {route.name}")
        self.network.remove(ObjectType.SEGMENT, name)
        logger.info(f"Segment {name} removed")
        return OperationResult.ok()

    def open_segment(self, name: str) -> Optional[Event]:
        """Open a segment whose stations are open and whose light is green"""
        segment = self.get_segment_by_name(name)
        if segment is None:
            logger.warning(f"Cannot open segment {name}: not found")
            return None
        start, end = segment.segment_start, segment.segment_end
        if not (segment.entity.verify() and start.is_open() and end.is_open()
                and segment.trafficLight.is_green()):
            logger.warning(f"Cannot open segment {name}: stations closed or light red")
            return None
        return segment.open()

    def close_segment(self, name: str) -> Optional[Event]:
        segment = self.get_segment_by_name(name)
        if segment is None:
            logger.warning(f"Cannot close segment {name}: not found")
            return None
        return segment.close()

    # Routes

    def add_route(self, name: str, is_round_trip: bool, segment_names: List[str]) -> OperationResult:
        refused = self._require_initialised("add route") or self._check_new_name(ObjectType.ROUTE, name)
        if refused:
            return refused
        segments = []
        for segment_name in segment_names:
            segment = self.get_segment_by_name(segment_name)
            if segment is None:
                return self._refuse(ErrorKind.NOT_FOUND, f"Route {name}: segment {segment_name} not found")
            segments.append(segment)
        try:
            route = Route(self.network.next_id(ObjectType.ROUTE), name, is_round_trip, segments, self.network)
        except MalformedRouteError as e:
            return self._refuse(ErrorKind.MALFORMED_ROUTE, str(e))
        route.currentTick = self.currentTime
        self.network.add(ObjectType.ROUTE, route.routeID, route.name, route)
        logger.info(f"Route {route.name} added over {len(segments)} segments")
        return OperationResult.ok()

    def remove_route(self, name: str) -> OperationResult:
        refused = self._require_initialised("remove route")
        if refused:
            return refused
        route = self.get_route_by_name(name)
        if route is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Route {name} not found")
        for train in self.get_trains():
            if train.routeID == route.routeID:
                return self._refuse(ErrorKind.INVALID_STATE, f"Route {name} has registered train {train.name}")
        self.network.remove(ObjectType.ROUTE, name)
        logger.info(f"Route {name} removed")
        return OperationResult.ok()

    def open_route(self, name: str) -> Optional[Event]:
        """Open a route that passes verification"""
        route = self.get_route_by_name(name)
        if route is None or not route.verify():
            logger.warning(f"Cannot open route {name}")
            return None
        return route.open()

    def close_route(self, name: str) -> Optional[Event]:
        """Close a route that passes verification"""
        route = self.get_route_by_name(name)
        if route is None or not route.verify():
            logger.warning(f"Cannot close route {name}")
            return None
        return route.close()

    # Generic dispatch over the entity variants

    def open_entity(self, kind: ObjectType, name: str) -> Optional[Event]:
        if kind is ObjectType.STATION:
            return self.open_station(name)
        elif kind is ObjectType.SEGMENT:
            return self.open_segment(name)
        elif kind is ObjectType.ROUTE:
            return self.open_route(name)
        raise ValueError(f"{kind.value} cannot be opened")

    def close_entity(self, kind: ObjectType, name: str) -> Optional[Event]:
        if kind is ObjectType.STATION:
            return self.close_station(name)
        elif kind is ObjectType.SEGMENT:
            return self.close_segment(name)
        elif kind is ObjectType.ROUTE:
            return self.close_route(name)
        raise ValueError(f"{kind.value} cannot be closed")

    # Trains

    def add_train(self, name: str, start_delay: int = 0) -> OperationResult:
        refused = self._require_initialised("add train")
        if refused:
            return refused
        if name and self.network.contains(ObjectType.TRAIN, name):
            return self._refuse(ErrorKind.INVALID_NAME, f"Train {name.strip()} already exists")
        train = Train(trainID=self.network.next_id(ObjectType.TRAIN), name=name,
                      startTime=start_delay, currentTick=self.currentTime, network=self.network)
        self.network.add(ObjectType.TRAIN, train.trainID, train.name, train)
        logger.info(f"Train {train.name} added with start delay {train.startTime}")
        return OperationResult.ok()

    def remove_train(self, name: str) -> OperationResult:
        refused = self._require_initialised("remove train")
        if refused:
            return refused
        train = self.get_train_by_name(name)
        if train is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Train {name} not found")
        if train.is_registered():
            return self._refuse(ErrorKind.INVALID_STATE, f"Train {name} is registered to a route")
        self.network.remove(ObjectType.TRAIN, name)
        logger.info(f"Train {name} removed")
        return OperationResult.ok()

    def register_train(self, train_name: str, route_name: str, stops: Optional[List[str]] = None) -> OperationResult:
        """
        Register an unregistered train to a verified, open route at the current tick

        Args:
            train_name: Train to register
            route_name: Route to bind it to
            stops: Designated stop names

        Returns:
            OperationResult describing the outcome
        """
        train = self.get_train_by_name(train_name)
        route = self.get_route_by_name(route_name)
        if train is None or route is None:
            missing = f"train {train_name}" if train is None else f"route {route_name}"
            return self._refuse(ErrorKind.NOT_FOUND, f"Cannot register: {missing} not found")
        if train.is_registered():
            return self._refuse(ErrorKind.INVALID_STATE, f"Train {train_name} is already registered")
        if not route.verify() or not route.is_open():
            return self._refuse(ErrorKind.INVALID_STATE, f"Route {route_name} is not verified and open")

        on_route = {station.name for station in route.get_station_list()}
        for stop in stops or []:
            if stop.strip() and stop.strip() not in on_route:
                logger.warning(f"Stop {stop.strip()} for train {train_name} is not on route {route_name}")
        train.register(route, self.currentTime, stops)
        return OperationResult.ok()

    def de_register_train(self, train_name: str) -> OperationResult:
        train = self.get_train_by_name(train_name)
        if train is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Train {train_name} not found")
        if not train.is_registered():
            return OperationResult.failure(ErrorKind.INVALID_STATE, f"Train {train_name} is not registered")
        for segment in self.get_segments():
            if segment.is_occupied_by(train):
                return self._refuse(ErrorKind.INVALID_STATE,
                                    f"Train {train_name} still occupies segment {segment.name}")
        train.deregister()
        return OperationResult.ok()

    def _registered_trains(self) -> List[Train]:
        return [train for train in self.get_trains() if train.is_registered()]

    # Simulation step

    def advance(self, tick: Optional[int] = None) -> List[Event]:
        """
        Run one logical tick for every registered train

        Args:
            tick: Optional tick to run at; the clock is moved forward to it first

        Returns:
            All events produced this tick, in generation order

        Raises:
            InvalidStateError: If the system is not OPERATIONAL
        """
        if self.status is not SystemStatus.OPERATIONAL:
            raise InvalidStateError(f"The system is not operational ({self.status.name})")
        if tick is not None and tick != self.currentTime:
            self._set_time(tick)

        events: List[Event] = []
        self.last_failures = []
        logger.debug(f"Advance tick {self.currentTime}")

        for train in self._registered_trains():
            failure = self._advance_train(train, events)
            if failure is not None:
                logger.error(f"Train {train.name} tick {self.currentTime} aborted: {failure.message}")
                self.last_failures.append(failure)

        self.last_events = events
        return events

    def _advance_train(self, train: Train, events: List[Event]) -> Optional[OperationResult]:
        train.update_wait_time_remaining()
        route = train.get_current_route()

        if train.is_at_start() and not train.is_waiting() and train.status is not TrainStatus.STARTED:
            events.append(train.start())
            # Trains starting together on one route share a single Open event
            if CFOSEvent(route.name, self.currentTime, Action.OPEN) not in events:
                route_event = self.open_route(route.name)
                if route_event is not None:
                    events.append(route_event)
        elif train.is_at_end():
            events.append(train.finish())
            self.de_register_train(train.name)

        return self._check_train_status(train, events)

    @staticmethod
    def _can_leave_station(train: Train) -> bool:
        """The current station is open and the next one verifies"""
        next_station = train.get_next_station()
        return (next_station is not None and next_station.verify()
                and train.get_current_station().is_open())

    def _check_train_status(self, train: Train, events: List[Event]) -> Optional[OperationResult]:
        if train.status is not TrainStatus.STARTED:
            return None
        if not self._can_leave_station(train):
            train.reset_wait_time_remaining(HoldReason.CLOSURE)
            return None
        return self._process_segment_transition(train, events)

    def _process_segment_transition(self, train: Train, events: List[Event]) -> Optional[OperationResult]:
        segment = train.get_current_segment()
        moved = False

        if segment.is_occupied_by(train) and not segment.is_open():
            failure = self._open_segment_and_release_train(segment, train, events)
            if failure is not None:
                return failure
            # Continue with the segment leaving the station just reached
            segment = train.get_current_segment()
            moved = True
        elif not segment.has_train() and not segment.is_open():
            train.reset_wait_time_remaining(HoldReason.CLOSURE)

        if train.is_designated_stop(train.current_station()):
            train.designatedStops.remove(train.current_station())
            train.reset_wait_time_remaining(HoldReason.DWELL)
            logger.debug(f"Train {train.name} dwelling at {train.current_station()}")

        # The station just reached must pass the same checks before departing
        if moved and segment is not None and not train.is_waiting() and not self._can_leave_station(train):
            train.reset_wait_time_remaining(HoldReason.CLOSURE)
            logger.debug(f"Train {train.name} held at {train.current_station()} by a closure")

        if segment is not None and not segment.has_train() and segment.is_open() and not train.is_waiting():
            return self._accept_train_into_segment(segment, train, events)
        return None

    def _open_segment_and_release_train(self, segment: Segment, train: Train,
                                        events: List[Event]) -> Optional[OperationResult]:
        if not segment.can_release_train():
            return OperationResult.failure(
                ErrorKind.NOT_OCCUPIED, f"Segment {segment.name} cannot release train {train.name}")
        events.append(segment.open())
        if segment.trafficLight.is_red():
            events.append(segment.change_light(self.currentTime))
        released = segment.release_train(self.currentTime)
        if not released:
            return released
        events.append(released.event)
        events.append(train.advance(self.currentTime))
        return None

    def _accept_train_into_segment(self, segment: Segment, train: Train,
                                   events: List[Event]) -> Optional[OperationResult]:
        accepted = segment.accept_train(train, self.currentTime)
        if not accepted:
            return accepted
        events.append(accepted.event)
        events.append(segment.close())
        if segment.trafficLight.is_green():
            events.append(segment.change_light(self.currentTime))
        return None

    # Termination

    def closure_hindering_movement(self) -> bool:
        """
        Detect a true deadlock after an advance()

        Returns:
            True when registered trains have started, none is waiting out a
            start delay or a dwell, and the last tick produced no events
        """
        if not self.is_operational():
            return False
        active = self._registered_trains()
        if not any(train.status is TrainStatus.STARTED for train in active):
            return False
        if any(train.is_on_timer() for train in active):
            return False
        return not self.last_events

    def is_finished(self) -> bool:
        """True when no train is registered and every train has completed"""
        if self.status is SystemStatus.FINISHED:
            return True
        trains = self.get_trains()
        if any(train.is_registered() for train in trains):
            return False
        return all(train.status is TrainStatus.COMPLETED for train in trains)

    def verify(self) -> bool:
        """Every entity verifies; names are unique by construction of the arena"""
        return (all(station.verify() for station in self.get_stations())
                and all(segment.verify() for segment in self.get_segments())
                and all(route.verify() for route in self.get_routes())
                and all(train.verify() for train in self._registered_trains()))

    def get_system_stats(self) -> Dict:
        trains = self.get_trains()
        return {
            'tick': self.currentTime,
            'status': self.status.name,
            'stations': len(self.get_stations()),
            'segments': len(self.get_segments()),
            'occupied_segments': sum(1 for segment in self.get_segments() if segment.has_train()),
            'routes': len(self.get_routes()),
            'trains': len(trains),
            'registered_trains': sum(1 for train in trains if train.is_registered()),
            'completed_trains': sum(1 for train in trains if train.status is TrainStatus.COMPLETED),
        }

    def __str__(self) -> str:
        def block(items):
            if not items:
                return "[none]"
            return "[\n" + "\n".join(f"\t{item}" for item in items) + "\n\t]"

        trains = block(self.get_trains())
        return (f"TrainSystem [\n\nstatus={self.status.description}\n"
                f"verified={'Yes' if self.verify() else 'No'}\n\ntrains={trains}\n\n"
                f"routes={block(sorted(self.get_routes()))}\n\nsegments={block(sorted(self.get_segments()))}\n\n"
                f"stations={block(sorted(self.get_stations()))}\n]")
