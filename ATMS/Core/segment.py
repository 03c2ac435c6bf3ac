"""
Segment Module
=============
Directed single-track edge between two stations.

This module handles:
- Segment open/closed status (the reservation lock)
- The segment's traffic light (the directional permission)
- Occupation by at most one train (accept/release)

The two signals are independent: the engine keeps them in step by
convention. Entering closes the segment and turns the light red; leaving
reopens it and turns the light green.
"""

from typing import List, Optional
import logging

from .entity import LoggableEntity
from .enums import ErrorKind, Light, ObjectType, RSStatus
from .events import CFOSEvent, Event, LightEvent, OccupiedEvent
from .results import OperationResult
from .traffic_light import TrafficLight

# Set up logging
logger = logging.getLogger(__name__)


class Segment:
    """
    A directed segment with its own status, traffic light and occupant.

    Attributes:
        startID (int): Handle of the start station
        endID (int): Handle of the end station
        trafficLight (TrafficLight): Signal owned by this segment
        occupyingTrainID (Optional[int]): Handle of the train inside, if any
        network (Network): Arena used to resolve handles (not owned)
    """

    def __init__(self, segmentID: int, name: str, startID: int, endID: int,
                 trafficLight: TrafficLight, network):
        self.entity = LoggableEntity(segmentID, name, ObjectType.SEGMENT)
        self.startID = startID
        self.endID = endID
        self.trafficLight = trafficLight
        self.occupyingTrainID: Optional[int] = None
        self.network = network

    # Identity and status

    @property
    def segmentID(self) -> int:
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

    @property
    def segment_start(self):
        """Start Station (resolved from its handle)"""
        return self.network.station(self.startID)

    @property
    def segment_end(self):
        """End Station (resolved from its handle)"""
        return self.network.station(self.endID)

    def open(self) -> CFOSEvent:
        return self.entity.open()

    def close(self) -> CFOSEvent:
        return self.entity.close()

    def is_open(self) -> bool:
        return self.entity.is_open()

    def history(self) -> List[Event]:
        return self.entity.history()

    # Traffic light

    def light_colour(self) -> Light:
        return self.trafficLight.colour

    def change_light(self, tick: int) -> LightEvent:
        """
        Toggle the traffic light

        Args:
            tick: Tick to stamp the event with

        Returns:
            LightEvent recording the from/to colours
        """
        from_colour = self.trafficLight.colour
        self.trafficLight.change()
        logger.debug(f"Segment {self.name} light {from_colour.name} -> {self.trafficLight.colour.name}")
        return self.entity.record(LightEvent(self.name, tick, from_colour, self.trafficLight.colour))

    # Occupation

    def has_train(self) -> bool:
        return self.occupyingTrainID is not None

    def get_occupying_train(self):
        """Train currently in the segment, or None if empty"""
        return self.network.train(self.occupyingTrainID)

    def is_occupied_by(self, train) -> bool:
        return self.occupyingTrainID is not None and self.occupyingTrainID == train.trainID

    def accept_train(self, train, tick: int) -> OperationResult:
        """
        Let a train into the segment

        The segment must be unoccupied, open and showing green.

        Args:
            train: Train entering the segment
            tick: Tick to stamp the event with

        Returns:
            OperationResult with the entry OccupiedEvent, or ALREADY_OCCUPIED
        """
        if self.has_train():
            occupant = self.get_occupying_train()
            occupant_name = occupant.name if occupant else self.occupyingTrainID
            return OperationResult.failure(
                ErrorKind.ALREADY_OCCUPIED,
                f"Segment {self.name} already occupied by {occupant_name}")
        if not self.is_open():
            return OperationResult.failure(
                ErrorKind.ALREADY_OCCUPIED, f"Segment {self.name} is closed")
        if not self.trafficLight.is_green():
            return OperationResult.failure(
                ErrorKind.ALREADY_OCCUPIED, f"Segment {self.name} light is red")

        self.occupyingTrainID = train.trainID
        logger.info(f"Train {train.name} entered segment {self.name}")
        return OperationResult.ok(self.entity.record(OccupiedEvent(self.name, tick, train.name, True)))

    def can_release_train(self) -> bool:
        """The segment holds a train and its end station is open"""
        end = self.segment_end
        return self.has_train() and end is not None and end.is_open()

    def release_train(self, tick: int) -> OperationResult:
        """
        Let the occupying train out of the segment

        The segment must be occupied and its end station open.

        Args:
            tick: Tick to stamp the event with

        Returns:
            OperationResult with the exit OccupiedEvent, or NOT_OCCUPIED
        """
        if not self.has_train():
            return OperationResult.failure(ErrorKind.NOT_OCCUPIED, f"No train in segment {self.name}")
        if not self.can_release_train():
            return OperationResult.failure(
                ErrorKind.NOT_OCCUPIED, f"Segment {self.name} end station is not open")

        train = self.get_occupying_train()
        train_name = train.name if train else str(self.occupyingTrainID)
        self.occupyingTrainID = None
        logger.info(f"Train {train_name} left segment {self.name}")
        return OperationResult.ok(self.entity.record(OccupiedEvent(self.name, tick, train_name, False)))

    # Verification

    def verify(self) -> bool:
        """
        Check the segment can carry traffic

        Returns:
            True if named, both stations exist, differ and are open, the light
            is defined and the segment itself is open
        """
        start, end = self.segment_start, self.segment_end
        return (self.entity.verify() and self.trafficLight.verify()
                and start is not None and end is not None
                and self.startID != self.endID
                and start.verify() and end.verify()
                and self.is_open())

    def __lt__(self, other: "Segment") -> bool:
        return self._sort_key() < other._sort_key()

    def _sort_key(self) -> str:
        start, end = self.segment_start, self.segment_end
        return (start.name if start else "") + (end.name if end else "")

    def __str__(self) -> str:
        start, end = self.segment_start, self.segment_end
        train = self.get_occupying_train()
        return (f"Segment [name={self.name}, segmentStart={start.name if start else 'none'}, "
                f"segmentEnd={end.name if end else 'none'}, status={self.status.description}, "
                f"trafficLight={self.trafficLight}, train={train.name if train else 'none'}, "
                f"verified={'Yes' if self.verify() else 'No'}]")
