#!/usr/bin/env python3
"""
Launcher script for the Train Management System simulator
"""
import argparse
import logging
import sys
import os

# Add the project root to the Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from ATMS.Core.train_system import TrainSystem
from Layout_Reader.layout_reader import NetworkLayoutReader
from Simulator_Interface.config import SimulationConfig
from Simulator_Interface.simulator import Simulator

DEFAULT_INIT_FILE = os.path.join(current_dir, 'Layout_Reader', 'sample_network.txt')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a single-track train network simulation")
    parser.add_argument('init_file', nargs='?', default=DEFAULT_INIT_FILE,
                        help="Initialisation file (default: bundled sample network)")
    parser.add_argument('--layout', help="Excel workbook with Stations/Segments/Routes/Trains sheets")
    parser.add_argument('--config', help="JSON file with simulation settings")
    parser.add_argument('--max-ticks', type=int, help="Override max_ticks")
    parser.add_argument('--log-level', help="Override log_level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument('--stream', action='store_true',
                        help="Forward events through the Qt event stream worker")
    parser.add_argument('--full', action='store_true', help="Print every event grouped by object")
    return parser.parse_args(argv)


def build_config(args) -> SimulationConfig:
    config = SimulationConfig.from_json(args.config) if args.config else SimulationConfig()
    if args.max_ticks is not None:
        config.max_ticks = args.max_ticks
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def run(simulator, stream=False):
    """Run the simulation, optionally mirroring events through a Qt worker"""
    if not stream:
        simulator.simulate()
        return

    from PyQt5.QtCore import QCoreApplication
    from ATMS.Utils.event_stream_worker import EventStreamWorker

    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    worker = EventStreamWorker(simulator.eventLog)
    worker.eventReceived.connect(lambda event: print(event))
    worker.start()
    try:
        simulator.simulate()
    finally:
        worker.stop()
        # Deliver signals queued to the main thread
        app.processEvents()


def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    simulator = Simulator(TrainSystem(), config)
    if args.layout:
        simulator.initialise_from_layout(NetworkLayoutReader(args.layout))
    else:
        simulator.initialise(args.init_file)

    run(simulator, stream=args.stream)
    print(simulator if args.full else simulator.to_short_string())
    return 1 if simulator.is_deadlocked() else 0


if __name__ == "__main__":
    sys.exit(main())
