"""
Event Log Module
===============
Append-only log of simulation events.

This module handles:
- Appending events in generation order (never removed or changed)
- Lazy, restartable read views filtered by tick or object name
- Containment and sequence queries over the descriptive event strings
- Log validation (no duplicates, ticks never decrease)
- One-way observer subscriptions backed by non-blocking queues
"""

from typing import Iterable, Iterator, List, Optional
from queue import Queue
import logging

from .events import Event

# Set up logging
logger = logging.getLogger(__name__)


class EventLog:
    """
    Append-only sequence of immutable Event records.

    Observers call subscribe() to receive their own Queue; every appended event
    is put on each queue without blocking, so an observer that stops draining
    can never stall tick processing.
    """

    def __init__(self, events: Optional[Iterable[Event]] = None):
        self._events: List[Event] = []
        self._subscribers: List[Queue] = []
        if events:
            self.extend(events)

    # Appending

    def add_to_log(self, event: Event) -> None:
        """
        Append a single event

        Args:
            event: Event produced by an entity transition
        """
        if not isinstance(event, Event):
            raise TypeError(f"Only Event records can be logged, got {type(event).__name__}")
        self._events.append(event)
        for subscriber in self._subscribers:
            subscriber.put_nowait(event)

    def extend(self, events: Iterable[Event]) -> None:
        """Append events in the given order"""
        for event in events:
            self.add_to_log(event)

    # Observers

    def subscribe(self) -> Queue:
        """Register an observer and return the queue it should drain"""
        subscriber = Queue()
        self._subscribers.append(subscriber)
        logger.debug(f"Event log subscriber added ({len(self._subscribers)} total)")
        return subscriber

    def unsubscribe(self, subscriber: Queue) -> bool:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            return True
        return False

    # Read views

    def __len__(self) -> int:
        return len(self._events)

    def log_size(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return self.events()

    def events(self, tick: Optional[int] = None, object_name: Optional[str] = None) -> Iterator[Event]:
        """
        Lazily iterate over logged events, optionally filtered

        The view covers the events present when iteration starts; calling again
        restarts from the first event.

        Args:
            tick: Only events stamped with this tick
            object_name: Only events for this object

        Yields:
            Matching events in log order
        """
        end = len(self._events)
        for index in range(end):
            event = self._events[index]
            if tick is not None and event.tick != tick:
                continue
            if object_name is not None and event.objectName != object_name:
                continue
            yield event

    def get_events(self, tick: Optional[int] = None, object_name: Optional[str] = None) -> List[str]:
        """Descriptive strings of matching events, in log order"""
        return [str(event) for event in self.events(tick=tick, object_name=object_name)]

    def get_objects(self) -> List[str]:
        """Distinct object names in order of first appearance"""
        objects = []
        for event in self._events:
            if event.objectName not in objects:
                objects.append(event.objectName)
        return objects

    def distinct_objects(self) -> int:
        return len(self.get_objects())

    def contains(self, descriptions: List[str]) -> bool:
        """True if every description appears somewhere in the log"""
        logged = set(self.get_events())
        return all(description in logged for description in descriptions)

    def contains_in_sequence(self, descriptions: List[str]) -> bool:
        """True if the descriptions appear as a contiguous run in the log"""
        if not descriptions:
            return True
        logged = self.get_events()
        width = len(descriptions)
        for start in range(len(logged) - width + 1):
            if logged[start:start + width] == descriptions:
                return True
        return False

    def validate(self) -> bool:
        """
        Validate the log

        Returns:
            True when no event is logged twice and ticks never decrease
        """
        seen = set()
        last_tick = None
        for index, event in enumerate(self._events):
            if event in seen:
                logger.warning(f"Duplicate event at position {index}: {event}")
                return False
            seen.add(event)
            if last_tick is not None and event.tick < last_tick:
                logger.warning(f"Event at position {index} goes back in time: {event}")
                return False
            last_tick = event.tick
        return True

    def __str__(self) -> str:
        if not self._events:
            return "Events Log[no events]"
        lines = "\n".join(f"\t{event}" for event in self._events)
        return f"Events Log[\n{lines}\n\t]"
