"""
ATMS Core Package
=================
Entities, events and the tick engine of the train management system.
"""

from .enums import (Action, ErrorKind, HoldReason, Light, ObjectType, RSStatus,
                    SimulatorStatus, SystemStatus, TrainStatus)
from .events import CFOSEvent, Event, LightEvent, MoveEvent, OccupiedEvent
from .event_log import EventLog
from .results import InvalidStateError, MalformedRouteError, OperationResult, TrainSystemError
from .traffic_light import TrafficLight
from .station import Station
from .segment import Segment
from .route import Route
from .train import Train
from .network import Network
from .train_system import TrainSystem

__all__ = [
    'Action', 'ErrorKind', 'HoldReason', 'Light', 'ObjectType', 'RSStatus',
    'SimulatorStatus', 'SystemStatus', 'TrainStatus',
    'Event', 'CFOSEvent', 'LightEvent', 'MoveEvent', 'OccupiedEvent',
    'EventLog',
    'OperationResult', 'TrainSystemError', 'InvalidStateError', 'MalformedRouteError',
    'TrafficLight',
    'Station',
    'Segment',
    'Route',
    'Train',
    'Network',
    'TrainSystem',
]
