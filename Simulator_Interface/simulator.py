"""
Simulator Interface for the Train Management System
===================================================
Drives a TrainSystem tick by tick and keeps the event log.

This module handles:
- Loading an initialisation file or a tabular layout
- The driver loop: increment time, apply scripted instructions, advance
- Appending events to the log and flagging events stamped with the wrong tick
- Stopping on deadlock (when nothing scripted is pending) or when finished
"""

from typing import List, Optional
import logging

from ATMS.Core.enums import SimulatorStatus, SystemStatus, TrainStatus
from ATMS.Core.event_log import EventLog
from ATMS.Core.events import Event
from ATMS.Core.results import InvalidStateError
from ATMS.Core.train_system import TrainSystem
from Layout_Reader.init_file_reader import InitFileReader
from Simulator_Interface.config import SimulationConfig

# Set up logging
logger = logging.getLogger(__name__)


class Simulator:
    """
    Driver loop around one TrainSystem.

    Attributes:
        trainSystem (TrainSystem): Engine being driven
        config (SimulationConfig): Loop settings
        status (SimulatorStatus): UNINITIALISED -> INITIALISED -> WORKING -> FINISHED
        eventLog (EventLog): Every event produced, in order
        flaggedEvents (List[str]): Events whose tick differed from the clock
        reader (Optional[InitFileReader]): Scripted instructions still to apply
    """

    def __init__(self, train_system: Optional[TrainSystem] = None,
                 config: Optional[SimulationConfig] = None):
        self.trainSystem = train_system if train_system is not None else TrainSystem()
        self.config = config if config is not None else SimulationConfig()
        self.eventLog = EventLog()
        self.flaggedEvents: List[str] = []
        self.reader: Optional[InitFileReader] = None
        # A system handed in ready-built needs no initialisation file
        self.status = SimulatorStatus.INITIALISED if train_system is not None else SimulatorStatus.UNINITIALISED

    def _can_initialise(self) -> bool:
        return self.status in (SimulatorStatus.UNINITIALISED, SimulatorStatus.INITIALISED)

    def initialise(self, init_file: str) -> None:
        """Load an initialisation file and apply its tick-0 block"""
        self.initialise_from_reader(InitFileReader.from_file(init_file))

    def initialise_from_reader(self, reader: InitFileReader) -> None:
        if not self._can_initialise():
            raise InvalidStateError(f"Cannot initialise a simulator that is {self.status.name}")
        self.reader = reader
        self._append(reader.apply(self.trainSystem, self.trainSystem.get_current_time()))
        self.status = SimulatorStatus.INITIALISED
        logger.info(f"Simulator initialised from {reader.source}")

    def initialise_from_layout(self, layout_reader) -> None:
        """Build the network from a NetworkLayoutReader"""
        if not self._can_initialise():
            raise InvalidStateError(f"Cannot initialise a simulator that is {self.status.name}")
        layout_reader.build(self.trainSystem)
        self.status = SimulatorStatus.INITIALISED
        logger.info("Simulator initialised from network layout")

    # Driver loop

    def is_finished(self) -> bool:
        return self.status is SimulatorStatus.FINISHED

    def _has_pending_instructions(self) -> bool:
        return self.reader is not None and self.reader.has_pending(self.trainSystem.get_current_time())

    def simulate(self) -> EventLog:
        """
        Run ticks until the system finishes, deadlocks or max_ticks is reached

        Returns:
            The event log

        Raises:
            InvalidStateError: If the simulator is not INITIALISED
        """
        if self.status is not SimulatorStatus.INITIALISED:
            raise InvalidStateError(f"Simulation is either finished or not initialised ({self.status.name})")

        started = self.trainSystem.set_to_working()
        if not started:
            raise InvalidStateError(started.message)
        self.status = SimulatorStatus.WORKING
        logger.info("Simulation started")

        while self.status is SimulatorStatus.WORKING:
            if self.trainSystem.get_current_time() >= self.config.max_ticks:
                logger.warning(f"Stopping after max_ticks={self.config.max_ticks}")
                self.trainSystem.set_stopped()
                self.status = SimulatorStatus.FINISHED
                break
            self.step()

        stats = self.trainSystem.get_system_stats()
        logger.info(f"Simulation ended at tick {stats['tick']} ({stats['status']}), "
                    f"{self.eventLog.log_size()} events, {len(self.flaggedEvents)} flagged")
        return self.eventLog

    def step(self) -> List[Event]:
        """Run a single tick of the driver loop and return its events"""
        tick = self.trainSystem.increment_time()
        events: List[Event] = []
        if self.reader is not None:
            events.extend(self.reader.apply(self.trainSystem, tick))
        events.extend(self.trainSystem.advance())
        self._append(events)

        pending = self._has_pending_instructions()
        if self.config.stop_on_deadlock and not pending and self.trainSystem.closure_hindering_movement():
            logger.warning(f"Deadlock detected at tick {tick}")
            self.trainSystem.set_stopped(deadlocked=True)
            self.status = SimulatorStatus.FINISHED
        elif not pending and self._nothing_left_to_run():
            self.trainSystem.set_stopped()
            self.status = SimulatorStatus.FINISHED
        return events

    def _nothing_left_to_run(self) -> bool:
        """No train is registered and no scripted registration remains"""
        trains = self.trainSystem.get_trains()
        if any(train.is_registered() for train in trains):
            return False
        idle = [train.name for train in trains if train.status is not TrainStatus.COMPLETED]
        if idle:
            logger.info(f"Trains never run to completion: {', '.join(idle)}")
        return True

    def _append(self, events: List[Event]) -> None:
        now = self.trainSystem.get_current_time()
        for event in events:
            if event.tick != now:
                self.flaggedEvents.append(str(event))
                logger.warning(f"Event stamped {event.tick} at tick {now}: {event}")
            self.eventLog.add_to_log(event)
            if self.config.echo_events:
                logger.info(str(event))

    # Reporting

    def validate(self) -> bool:
        return self.trainSystem.get_current_time() >= 0 and self.eventLog.validate()

    def is_deadlocked(self) -> bool:
        return self.trainSystem.current_status() is SystemStatus.DEADLOCKED

    def _header(self) -> str:
        return (f"The current time instant is: {self.trainSystem.get_current_time()}\n"
                f"The current status is: {self.status.description}\n")

    def _footer(self) -> str:
        if self.trainSystem.get_current_time() <= 0:
            return "\nNothing to validate as yet."
        return f"\n\nValidation has {'passed' if self.validate() else 'failed'}"

    def to_short_string(self) -> str:
        return (self._header()
                + f"There are {self.eventLog.log_size()} events with "
                  f"{self.eventLog.distinct_objects()} distinct objects.\n"
                + self._footer())

    def __str__(self) -> str:
        lines = [self._header(), "--- Events --\n"]
        if self.eventLog.log_size() == 0:
            lines.append(" \tno events")
        for name in self.eventLog.get_objects():
            events = self.eventLog.get_events(object_name=name)
            lines.append(f"Object=[{name}, events={len(events)}]\n")
            lines.extend(f"\t{event}\n" for event in events)
        return "".join(lines) + self._footer()
