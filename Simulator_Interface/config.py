"""
Simulation configuration
Settings for the driver loop, loaded from a dict or a JSON file
"""

from dataclasses import dataclass, fields
import json
import logging

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """
    Driver loop settings.

    Attributes:
        max_ticks (int): Safety bound on the number of ticks simulated
        stop_on_deadlock (bool): Stop when a true deadlock is detected
        log_level (str): Level name handed to logging.basicConfig by the launcher
        echo_events (bool): Log every event at info level as it is appended
    """
    max_ticks: int = 1000           # ticks
    stop_on_deadlock: bool = True
    log_level: str = "INFO"
    echo_events: bool = False

    def __post_init__(self):
        if self.max_ticks < 1:
            raise ValueError(f"max_ticks must be positive, got {self.max_ticks}")
        self.log_level = str(self.log_level).upper()

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Build a config, ignoring keys it does not know"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {unknown}")
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_json(cls, path: str) -> "SimulationConfig":
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))
