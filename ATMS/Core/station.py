"""
Station Module
=============
Named location with an open / closed-for-maintenance status.
"""

from typing import List

from .entity import LoggableEntity
from .enums import ObjectType, RSStatus
from .events import CFOSEvent, Event


class Station:
    """Railway station; opened and closed only through open()/close()"""

    def __init__(self, stationID: int, name: str):
        self.entity = LoggableEntity(stationID, name, ObjectType.STATION)

    @property
    def stationID(self) -> int:
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

    def verify(self) -> bool:
        """A station can be travelled to when it is named and open"""
        return self.entity.verify() and self.is_open()

    def history(self) -> List[Event]:
        return self.entity.history()

    def __lt__(self, other: "Station") -> bool:
        return self.name < other.name

    def __str__(self) -> str:
        return f"Station [name={self.name}, status={self.status.description}]"
