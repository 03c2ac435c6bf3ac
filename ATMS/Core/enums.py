"""
Enumerations Module
==================
Shared enumerations for the train management core.

Every enum carries a human readable description as its value so that
log lines and event strings can be rendered without lookup tables.
"""

from enum import Enum


class Action(Enum):
    """Actions recorded by CFOS (Close/Finish/Open/Start) events"""
    CLOSE = "Close"
    FINISH = "Finish"
    OPEN = "Open"
    START = "Start"

    def __str__(self):
        return self.value


class Light(Enum):
    """Traffic light colours"""
    RED = "Light is Red"
    GREEN = "Light is Green"

    @property
    def description(self) -> str:
        return self.value


class RSStatus(Enum):
    """Open/closed status shared by stations, segments and routes"""
    OPEN = "Open"
    CLOSED_FOR_MAINTENANCE = "Closed for Maintenance"

    @property
    def description(self) -> str:
        return self.value


class TrainStatus(Enum):
    """Train lifecycle: INITIALISED -> STARTED -> COMPLETED"""
    INITIALISED = "Initialised"
    STARTED = "Started"
    COMPLETED = "Completed"


class SystemStatus(Enum):
    """Engine status machine"""
    INITIALISED = "System is Initialised"
    OPERATIONAL = "System is Operational"
    DEADLOCKED = "System is Deadlocked"
    FINISHED = "No More trains!"

    @property
    def description(self) -> str:
        return self.value


class SimulatorStatus(Enum):
    """Driver loop status machine"""
    UNINITIALISED = "Simulator is Uninitialised"
    INITIALISED = "Simulator is Initialised"
    WORKING = "Simulator is Working"
    FINISHED = "Simulator is Finished"

    @property
    def description(self) -> str:
        return self.value


class ObjectType(Enum):
    """Closed set of entity kinds owned by the engine"""
    STATION = "Station"
    SEGMENT = "Segment"
    ROUTE = "Route"
    TRAIN = "Train"
    TRAFFIC_LIGHT = "TrafficLight"


class ErrorKind(Enum):
    """Failure kinds carried by OperationResult and TrainSystemError"""
    INVALID_STATE = "InvalidState"
    ALREADY_OCCUPIED = "AlreadyOccupied"
    NOT_OCCUPIED = "NotOccupied"
    NOT_FOUND = "NotFound"
    MALFORMED_ROUTE = "MalformedRoute"
    INVALID_NAME = "InvalidName"


class HoldReason(Enum):
    """Why a train's wait timer was re-armed during a tick"""
    DWELL = "Dwell"      # scheduled stop at a designated station
    CLOSURE = "Closure"  # blocked by a closed station or segment
