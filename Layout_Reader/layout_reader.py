"""
Network Layout Reader for the Train Management System
=====================================================
This module reads a network layout from an Excel workbook (or from
DataFrames already in memory) and builds it into a TrainSystem.

Expected sheets and columns:
- Stations: Name
- Segments: Name, Start, End, Light (optional, Red/Green)
- Routes: Name, Round Trip, Segments (';' separated, in travel order)
- Trains: Name, Start Delay, Route (optional), Stops (optional, ';' separated or 'all')
"""

from typing import Dict, List, Optional, Union
import logging

import pandas as pd

from ATMS.Core.enums import Light
from ATMS.Core.results import OperationResult
from Layout_Reader.init_file_reader import parse_stops

# Set up logging
logger = logging.getLogger(__name__)

SHEETS = ("Stations", "Segments", "Routes", "Trains")
REQUIRED_COLUMNS = {
    "Stations": ["Name"],
    "Segments": ["Name", "Start", "End"],
    "Routes": ["Name", "Round Trip", "Segments"],
    "Trains": ["Name"],
}


class NetworkLayoutReader:
    """
    Main class for reading network layout data.
    Sheets may be missing; a missing sheet contributes nothing.
    """

    def __init__(self, source: Union[str, Dict[str, pd.DataFrame]]):
        """
        Args:
            source: Path to an Excel workbook, or a mapping of sheet name -> DataFrame
        """
        self.source = source
        self.sheets: Dict[str, pd.DataFrame] = {}
        self._load_layout_data()

    def _load_layout_data(self):
        if isinstance(self.source, dict):
            sheets = self.source
        else:
            logger.info(f"Loading network layout from: {self.source}")
            try:
                sheets = pd.read_excel(self.source, sheet_name=None)
            except Exception as e:
                logger.error(f"Error loading network layout: {e}")
                raise

        for sheet_name in SHEETS:
            if sheet_name not in sheets:
                logger.warning(f"{sheet_name} not found in layout")
                continue
            df = sheets[sheet_name].copy()
            df.columns = [str(column).strip() for column in df.columns]
            missing = [column for column in REQUIRED_COLUMNS[sheet_name] if column not in df.columns]
            if missing:
                raise ValueError(f"{sheet_name} sheet is missing columns {missing}")
            # Rows without a name are spacing rows
            self.sheets[sheet_name] = df.dropna(subset=["Name"]).reset_index(drop=True)

        logger.info("Loaded network layout: " + ", ".join(
            f"{len(df)} {name.lower()}" for name, df in self.sheets.items()))

    @staticmethod
    def _cell(row: pd.Series, column: str, default: str = "") -> str:
        if column not in row or pd.isna(row[column]):
            return default
        return str(row[column]).strip()

    @staticmethod
    def _is_true(value) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "yes", "1")

    def _rows(self, sheet_name: str) -> List[pd.Series]:
        df = self.sheets.get(sheet_name)
        if df is None:
            return []
        return [row for _, row in df.iterrows()]

    # Typed views

    def get_station_names(self) -> List[str]:
        return [self._cell(row, "Name") for row in self._rows("Stations")]

    def get_segments(self) -> List[Dict]:
        segments = []
        for row in self._rows("Segments"):
            light = self._cell(row, "Light", "Green").lower()
            segments.append({
                'name': self._cell(row, "Name"),
                'start': self._cell(row, "Start"),
                'end': self._cell(row, "End"),
                'light': Light.RED if light == "red" else Light.GREEN,
            })
        return segments

    def get_routes(self) -> List[Dict]:
        routes = []
        for row in self._rows("Routes"):
            segment_names = [name.strip() for name in self._cell(row, "Segments").split(";") if name.strip()]
            routes.append({
                'name': self._cell(row, "Name"),
                'round_trip': self._is_true(row["Round Trip"]) if not pd.isna(row["Round Trip"]) else False,
                'segments': segment_names,
            })
        return routes

    def get_trains(self) -> List[Dict]:
        trains = []
        for row in self._rows("Trains"):
            delay = row["Start Delay"] if "Start Delay" in row and not pd.isna(row["Start Delay"]) else 0
            trains.append({
                'name': self._cell(row, "Name"),
                'start_delay': int(delay),
                'route': self._cell(row, "Route") or None,
                'stops': parse_stops(self._cell(row, "Stops")),
            })
        return trains

    def build(self, system) -> List[OperationResult]:
        """
        Add the layout to an Initialised TrainSystem in dependency order

        Args:
            system: TrainSystem to populate

        Returns:
            The failed results (empty when everything was added)
        """
        failures: List[OperationResult] = []

        def keep(result: Optional[OperationResult]):
            if result is not None and not result:
                logger.warning(f"Layout entry refused: {result.message}")
                failures.append(result)
            return result

        for name in self.get_station_names():
            keep(system.add_station(name))
        for segment in self.get_segments():
            keep(system.add_segment(segment['name'], segment['start'], segment['end'], segment['light']))
        for route in self.get_routes():
            keep(system.add_route(route['name'], route['round_trip'], route['segments']))
        for train in self.get_trains():
            if keep(system.add_train(train['name'], train['start_delay'])) and train['route']:
                keep(system.register_train(train['name'], train['route'], train['stops']))

        logger.info(f"Network layout built with {len(failures)} refused entries")
        return failures
