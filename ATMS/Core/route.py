"""
Route Module
===========
Ordered sequence of contiguous segments and the station list derived from it.

This module handles:
- Route construction with contiguity validation
- Ordered station lookups (next / previous station)
- Reachability checks against station closures
- Segment lookups and light changes by start station
"""

from typing import List, Optional
import logging

from .entity import LoggableEntity
from .enums import ObjectType, RSStatus
from .events import CFOSEvent, Event, LightEvent
from .results import MalformedRouteError

# Set up logging
logger = logging.getLogger(__name__)


class Route:
    """
    A named route over contiguous segments.

    Attributes:
        isRoundTrip (bool): Travel is meant to be retraced end-to-start (flag only)
        segmentIDs (List[int]): Segment handles in travel order
        stationIDs (List[int]): Station handles in travel order, derived from the segments
        network (Network): Arena used to resolve handles (not owned)

    Raises:
        MalformedRouteError: On an empty segment list or when
            segment[i].end != segment[i + 1].start
    """

    def __init__(self, routeID: int, name: str, isRoundTrip: bool, segments: List, network):
        self.entity = LoggableEntity(routeID, name, ObjectType.ROUTE)
        self.isRoundTrip = isRoundTrip
        self.network = network

        if not segments:
            raise MalformedRouteError(f"Route {name} requires at least one segment")
        if not self.are_properly_sequenced(segments):
            names = [segment.name for segment in segments]
            raise MalformedRouteError(f"Route {name} segments are not contiguous: {names}")

        self.segmentIDs = [segment.segmentID for segment in segments]
        self.stationIDs = [segments[0].startID] + [segment.endID for segment in segments]
        logger.debug(f"Route {name} created over {len(self.segmentIDs)} segments")

    @staticmethod
    def are_properly_sequenced(segments: List) -> bool:
        """True if each segment ends where the next one starts"""
        return all(segments[i].endID == segments[i + 1].startID for i in range(len(segments) - 1))

    # Identity and status

    @property
    def routeID(self) -> int:
        return self.entity.handle

    @property
    def name(self) -> str:
        return self.entity.name

    @property
    def status(self) -> RSStatus:
        return self.entity.status

    @property
    def currentTick(self) -> int:
        return self.entity.currentTick

    @currentTick.setter
    def currentTick(self, tick: int) -> None:
        self.entity.currentTick = tick

    def open(self) -> CFOSEvent:
        return self.entity.open()

    def close(self) -> CFOSEvent:
        return self.entity.close()

    def is_open(self) -> bool:
        return self.entity.is_open()

    def is_round_trip(self) -> bool:
        return self.isRoundTrip

    def history(self) -> List[Event]:
        return self.entity.history()

    # Stations

    def get_station_list(self) -> List:
        return [self.network.station(handle) for handle in self.stationIDs]

    def get_segment_list(self) -> List:
        return [self.network.segment(handle) for handle in self.segmentIDs]

    def get_start(self):
        return self.network.station(self.stationIDs[0])

    def get_end(self):
        return self.network.station(self.stationIDs[-1])

    def station_at(self, index: int):
        """Station at a position in the route, or None past either end"""
        if 0 <= index < len(self.stationIDs):
            return self.network.station(self.stationIDs[index])
        return None

    def segment_at(self, index: int):
        """Segment leaving the station at a position, or None at the terminal"""
        if 0 <= index < len(self.segmentIDs):
            return self.network.segment(self.segmentIDs[index])
        return None

    def get_next_station(self, station_name: str):
        """
        Station after the first occurrence of a name

        Returns:
            Next Station, or None if the name is absent or last
        """
        stations = self.get_station_list()
        for index, station in enumerate(stations[:-1]):
            if station.name == station_name:
                return stations[index + 1]
        return None

    def get_previous_station(self, station_name: str, is_at_start: bool):
        """
        Station before the last occurrence of a name

        Args:
            station_name: Station to look behind
            is_at_start: When True the route start is returned directly

        Returns:
            Previous Station, or None if the name is absent or first
        """
        if is_at_start:
            return self.get_start()
        stations = self.get_station_list()
        for index in range(len(stations) - 1, 0, -1):
            if stations[index].name == station_name:
                return stations[index - 1]
        return None

    def can_get_to(self, station_name: str) -> bool:
        """True only if every station with that name on the route is open"""
        return all(station.is_open() for station in self.get_station_list() if station.name == station_name)

    # Segments

    def contains_segment(self, segment_name: str) -> bool:
        return any(segment.name == segment_name for segment in self.get_segment_list())

    def get_next_segment(self, station_name: str):
        """First segment starting at the named station, or None"""
        for segment in self.get_segment_list():
            start = segment.segment_start
            if start is not None and start.name == station_name:
                return segment
        return None

    def change_light(self, segment_start_name: str) -> Optional[LightEvent]:
        """Toggle the light of the segment starting at the named station"""
        segment = self.get_next_segment(segment_start_name)
        if segment is None:
            return None
        return segment.change_light(self.currentTick)

    def are_segments_properly_sequenced(self) -> bool:
        segments = self.get_segment_list()
        if any(segment is None for segment in segments):
            return False
        return self.are_properly_sequenced(segments)

    # Verification

    def verify(self) -> bool:
        """Named, every segment still present and contiguous"""
        return self.entity.verify() and self.are_segments_properly_sequenced()

    def __lt__(self, other: "Route") -> bool:
        return self.name < other.name

    def __str__(self) -> str:
        names = [segment.name for segment in self.get_segment_list() if segment is not None]
        segments = f"[{', '.join(names)}]" if names else "none"
        return (f"Route [name={self.name}, isRoundTrip={self.isRoundTrip}, status={self.status.description}, "
                f"segments={segments}, verified={'Yes' if self.verify() else 'No'}]")
