"""
Network Module
=============
Engine-owned arenas for stations, segments, routes and trains.

Entities refer to each other through integer handles into these arenas.
Names are kept only as a lookup index. Identifier counters live here
instead of in class-level globals, so two engines never share a sequence.
"""

from typing import Any, Dict, List, Optional
import logging

from .enums import ObjectType

# Set up logging
logger = logging.getLogger(__name__)

ARENA_KINDS = (ObjectType.STATION, ObjectType.SEGMENT, ObjectType.ROUTE, ObjectType.TRAIN)


class Network:
    """
    Handle-indexed storage for every entity in one train system.

    Attributes:
        _arenas: ObjectType -> {handle: entity}
        _names: ObjectType -> {name: handle}
        _counters: ObjectType -> last issued identifier (traffic lights included)
    """

    def __init__(self):
        self._arenas: Dict[ObjectType, Dict[int, Any]] = {kind: {} for kind in ARENA_KINDS}
        self._names: Dict[ObjectType, Dict[str, int]] = {kind: {} for kind in ARENA_KINDS}
        self._counters: Dict[ObjectType, int] = {kind: 0 for kind in ObjectType}

    def next_id(self, kind: ObjectType) -> int:
        """Issue the next identifier for an entity kind (starting at 1)"""
        self._counters[kind] += 1
        return self._counters[kind]

    def add(self, kind: ObjectType, handle: int, name: str, entity: Any) -> None:
        self._arenas[kind][handle] = entity
        self._names[kind][name] = handle
        logger.debug(f"{kind.value} {name} stored with handle {handle}")

    def remove(self, kind: ObjectType, name: str) -> Optional[Any]:
        """Remove an entity by name, returning it (or None if absent)"""
        handle = self._names[kind].pop(name.strip(), None)
        if handle is None:
            return None
        return self._arenas[kind].pop(handle, None)

    def get(self, kind: ObjectType, handle: Optional[int]) -> Optional[Any]:
        if handle is None:
            return None
        return self._arenas[kind].get(handle)

    def find(self, kind: ObjectType, name: Optional[str]) -> Optional[Any]:
        """Look an entity up by name; a miss is a normal None result"""
        if name is None:
            return None
        handle = self._names[kind].get(name.strip())
        return self.get(kind, handle)

    def contains(self, kind: ObjectType, name: str) -> bool:
        return name is not None and name.strip() in self._names[kind]

    def all(self, kind: ObjectType) -> List[Any]:
        """Entities of one kind in ascending handle order"""
        arena = self._arenas[kind]
        return [arena[handle] for handle in sorted(arena)]

    # Typed conveniences

    def station(self, handle: Optional[int]):
        return self.get(ObjectType.STATION, handle)

    def segment(self, handle: Optional[int]):
        return self.get(ObjectType.SEGMENT, handle)

    def route(self, handle: Optional[int]):
        return self.get(ObjectType.ROUTE, handle)

    def train(self, handle: Optional[int]):
        return self.get(ObjectType.TRAIN, handle)

    def set_tick(self, tick: int) -> None:
        """Propagate the logical clock to every entity"""
        for kind in ARENA_KINDS:
            for entity in self._arenas[kind].values():
                entity.currentTick = tick
