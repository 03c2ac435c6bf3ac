"""
Events Module
============
Immutable event records produced by entity transitions.

Events compare structurally: two events are equal when they are of the same
kind and every field matches. They are never mutated after creation.
"""

from dataclasses import dataclass

from .enums import Action, Light


@dataclass(frozen=True)
class Event:
    """Base event keyed by (objectName, tick)"""
    objectName: str
    tick: int

    def __str__(self) -> str:
        return f"Object={self.objectName}, Time()={self.tick}"


@dataclass(frozen=True)
class CFOSEvent(Event):
    """Close / Finish / Open / Start action on a named object"""
    action: Action = Action.OPEN

    def __str__(self) -> str:
        return f"{self.action} Event [{super().__str__()}]"


@dataclass(frozen=True)
class LightEvent(Event):
    """Traffic light transition on a segment"""
    fromColour: Light = Light.GREEN
    toColour: Light = Light.RED

    def __str__(self) -> str:
        return (f"LightEvent [{super().__str__()}, From colour={self.fromColour.description}, "
                f"To colour={self.toColour.description}]")


@dataclass(frozen=True)
class MoveEvent(Event):
    """Train movement between two stations"""
    fromStation: str = ""
    toStation: str = ""

    def __str__(self) -> str:
        return (f"MoveEvent [{super().__str__()}, From Station={self.fromStation}, "
                f"To Station={self.toStation}]")


@dataclass(frozen=True)
class OccupiedEvent(Event):
    """Train entering (isEntry=True) or leaving a segment"""
    train: str = ""
    isEntry: bool = True

    def __str__(self) -> str:
        label = "Enter Station Event" if self.isEntry else "Left Station Event"
        return f"{label}[{super().__str__()}, Train={self.train}]"
