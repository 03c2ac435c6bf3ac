"""
Initialisation File Reader
==========================
Reads the line-oriented initialisation file that builds a network and
scripts it over time.

File layout:

    Stations: 2
    A
    B
    Segments: 1
    S1:A:B            (optional 4th field: Red or Green)
    Routes: 1
    R1:false:S1       (segments separated by ';')
    Trains: 1
    T1:0:R1:all       (stops separated by ';', 'all' or empty for none)
    3                 (a bare integer starts the block for that tick)
    Events: 1
    Close:Station:B

Lines before the first tick number belong to tick 0. At tick 0 a train line
adds the train (and registers it when a route is named); at later ticks it
registers the existing train to the named route.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import re

from ATMS.Core.enums import Light, ObjectType
from ATMS.Core.events import Event

# Set up logging
logger = logging.getLogger(__name__)

SECTIONS = ("Stations", "Segments", "Routes", "Trains", "Events")
TICK_LINE = re.compile(r"^\d+$")


class InitFileError(ValueError):
    """Malformed initialisation input, tagged with the offending line number"""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


@dataclass
class Instruction:
    """One record of a section, scheduled for a tick"""
    section: str
    fields: Tuple[str, ...]
    line_number: int


@dataclass
class InitFileReader:
    """
    Parsed initialisation script, applied one tick block at a time.

    Attributes:
        source (str): File path or "<string>"
        schedule (Dict[int, List[Instruction]]): Tick -> instructions in file order
        applied (set): Ticks whose block has already been applied
    """
    source: str = "<string>"
    schedule: Dict[int, List[Instruction]] = field(default_factory=dict)
    applied: set = field(default_factory=set)

    @classmethod
    def from_file(cls, path: str) -> "InitFileReader":
        with open(path, "r", encoding="utf-8") as handle:
            reader = cls.from_string(handle.read(), source=path)
        logger.info(f"Loaded initialisation file {path}: ticks {reader.ticks()}")
        return reader

    @classmethod
    def from_string(cls, text: str, source: str = "<string>") -> "InitFileReader":
        reader = cls(source=source)
        reader._parse(text.splitlines())
        return reader

    def _parse(self, lines: List[str]) -> None:
        tick = 0
        index = 0
        while index < len(lines):
            line = lines[index].strip()
            line_number = index + 1
            index += 1
            if not line:
                continue

            if TICK_LINE.match(line):
                next_tick = int(line)
                if next_tick < tick:
                    raise InitFileError(f"tick {next_tick} comes after tick {tick}", line_number)
                tick = next_tick
                continue

            key, _, value = (part.strip() for part in line.partition(":"))
            if key not in SECTIONS:
                logger.warning(f"{self.source} line {line_number}: unknown entry '{line}' ignored")
                continue
            try:
                count = int(value)
            except ValueError:
                raise InitFileError(f"{key} needs a record count, got '{value}'", line_number)

            records = []
            while len(records) < count:
                if index >= len(lines):
                    raise InitFileError(f"{key} expects {count} records, found {len(records)}", line_number)
                record = lines[index].strip()
                index += 1
                if record:
                    records.append(self._parse_record(key, record, index))
            self.schedule.setdefault(tick, []).extend(records)

    @staticmethod
    def _parse_record(section: str, record: str, line_number: int) -> Instruction:
        if section == "Stations":
            return Instruction(section, (record,), line_number)

        fields = tuple(part.strip() for part in record.split(":"))
        expected = {"Segments": (3, 4), "Routes": (3, 3), "Trains": (3, 4), "Events": (3, 3)}[section]
        if not expected[0] <= len(fields) <= expected[1]:
            raise InitFileError(f"malformed {section} record '{record}'", line_number)

        if section == "Segments" and len(fields) == 4 and fields[3].lower() not in ("red", "green"):
            raise InitFileError(f"unknown light colour '{fields[3]}'", line_number)
        if section == "Trains":
            try:
                int(fields[1])
            except ValueError:
                raise InitFileError(f"train start delay must be an integer, got '{fields[1]}'", line_number)
        if section == "Events":
            if fields[0] not in ("Open", "Close"):
                raise InitFileError(f"unknown event action '{fields[0]}'", line_number)
            if fields[1] not in ("Station", "Segment", "Route"):
                raise InitFileError(f"unknown event target '{fields[1]}'", line_number)
        return Instruction(section, fields, line_number)

    # Schedule queries

    def ticks(self) -> List[int]:
        return sorted(self.schedule)

    def instructions_for(self, tick: int) -> List[Instruction]:
        return list(self.schedule.get(tick, []))

    def has_pending(self, after_tick: Optional[int] = None) -> bool:
        """True while a scheduled block has not been applied yet"""
        return any(tick not in self.applied and (after_tick is None or tick > after_tick)
                   for tick in self.schedule)

    # Application

    def apply(self, system, tick: int) -> List[Event]:
        """
        Apply the block scheduled for a tick to a TrainSystem

        Args:
            system: TrainSystem to build or script
            tick: Tick whose block should be applied (each block applies once)

        Returns:
            Events produced by Open/Close instructions, in file order
        """
        if tick in self.applied:
            return []
        self.applied.add(tick)

        events: List[Event] = []
        for instruction in self.schedule.get(tick, []):
            event = self._apply_instruction(system, tick, instruction)
            if event is not None:
                events.append(event)
        return events

    def _apply_instruction(self, system, tick: int, instruction: Instruction) -> Optional[Event]:
        fields = instruction.fields
        section = instruction.section
        result = None

        if section == "Stations":
            result = system.add_station(fields[0])
        elif section == "Segments":
            light = Light.RED if len(fields) == 4 and fields[3].lower() == "red" else Light.GREEN
            result = system.add_segment(fields[0], fields[1], fields[2], light)
        elif section == "Routes":
            segments = [name.strip() for name in fields[2].split(";") if name.strip()]
            result = system.add_route(fields[0], fields[1].lower() == "true", segments)
        elif section == "Trains":
            result = self._apply_train(system, tick, fields)
        elif section == "Events":
            kind = ObjectType(fields[1])
            if fields[0] == "Open":
                event = system.open_entity(kind, fields[2])
            else:
                event = system.close_entity(kind, fields[2])
            if event is None:
                logger.warning(f"{self.source} line {instruction.line_number}: "
                               f"{fields[0]} {fields[1]} {fields[2]} produced no event")
            return event

        if result is not None and not result:
            logger.warning(f"{self.source} line {instruction.line_number}: {result.message}")
        return None

    @staticmethod
    def _apply_train(system, tick: int, fields: Tuple[str, ...]):
        name, delay = fields[0], int(fields[1])
        route = fields[2]
        stops = parse_stops(fields[3] if len(fields) == 4 else "")

        if tick == 0:
            result = system.add_train(name, delay)
            if result and route:
                result = system.register_train(name, route, stops)
            return result
        return system.register_train(name, route, stops)


def parse_stops(value: str) -> List[str]:
    """'all' or empty means no designated stops"""
    stops = [stop.strip() for stop in value.split(";") if stop.strip()]
    if not stops or stops[0].lower() == "all":
        return []
    return stops
