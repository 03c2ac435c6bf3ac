"""
Loggable Entity Module
=====================
The capability shared by stations, segments and routes: a handle, a name,
an open/closed status, the current tick and a private history of the
events the entity produced.

Concrete entities hold a LoggableEntity and delegate to it rather than
inheriting from a common base.
"""

from typing import List
import logging

from .enums import Action, ObjectType, RSStatus
from .events import CFOSEvent, Event

# Set up logging
logger = logging.getLogger(__name__)


class LoggableEntity:
    """
    Name, status and event history for one entity.

    Attributes:
        handle (int): Engine-assigned identifier, stable for the entity's life
        name (str): Display and lookup name
        kind (ObjectType): Which entity variant owns this capability
        status (RSStatus): Open or closed for maintenance
        currentTick (int): Logical tick used to stamp open/close events
    """

    def __init__(self, handle: int, name: str, kind: ObjectType):
        self.handle = handle
        self.name = name.strip() if name else ""
        self.kind = kind
        self.status = RSStatus.OPEN
        self.currentTick = 0
        self._history: List[Event] = []

    def record(self, event: Event) -> Event:
        """Append an event to this entity's history and hand it back"""
        self._history.append(event)
        return event

    def history(self) -> List[Event]:
        return list(self._history)

    def is_open(self) -> bool:
        return self.status is RSStatus.OPEN

    def verify(self) -> bool:
        """A loggable entity is valid when it has a non-empty name"""
        return bool(self.name)

    def open(self) -> CFOSEvent:
        """Set status to Open and return the Open event for the current tick"""
        if self.status is not RSStatus.OPEN:
            logger.info(f"{self.kind.value} {self.name} opened at tick {self.currentTick}")
        self.status = RSStatus.OPEN
        return self.record(CFOSEvent(self.name, self.currentTick, Action.OPEN))

    def close(self) -> CFOSEvent:
        """Set status to ClosedForMaintenance and return the Close event for the current tick"""
        if self.status is not RSStatus.CLOSED_FOR_MAINTENANCE:
            logger.info(f"{self.kind.value} {self.name} closed at tick {self.currentTick}")
        self.status = RSStatus.CLOSED_FOR_MAINTENANCE
        return self.record(CFOSEvent(self.name, self.currentTick, Action.CLOSE))
