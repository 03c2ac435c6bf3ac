import unittest
from unittest.mock import patch
import sys
import os

# Add the parent directory to sys.path to import ATMS modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from ATMS.Core.enums import (Action, ErrorKind, HoldReason, Light, ObjectType, SystemStatus,
                             TrainStatus)
from ATMS.Core.events import CFOSEvent, LightEvent, MoveEvent, OccupiedEvent
from ATMS.Core.results import InvalidStateError
from ATMS.Core.train_system import TrainSystem


class TrainSystemTestCase(unittest.TestCase):
    """Shared network builder for the engine tests"""

    def build(self, stations, segments, routes):
        system = TrainSystem()
        for name in stations:
            self.assertTrue(system.add_station(name))
        for segment in segments:
            self.assertTrue(system.add_segment(*segment))
        for name, segment_names in routes.items():
            self.assertTrue(system.add_route(name, False, segment_names))
        return system

    def add_registered_train(self, system, name, route, delay=0, stops=None):
        self.assertTrue(system.add_train(name, delay))
        self.assertTrue(system.register_train(name, route, stops or []))

    def tick(self, system):
        system.increment_time()
        return system.advance()


class TestTrainSystemBuilders(TrainSystemTestCase):
    """Test cases for topology builders, lookups and the status machine"""

    def setUp(self):
        """Set up test fixtures before each test method"""
        self.system = self.build(["A", "B", "C"], [("S1", "A", "B"), ("S2", "B", "C")],
                                 {"R1": ["S1", "S2"]})

    def tearDown(self):
        """Clean up after each test"""
        self.system = None

    def test_initial_state(self):
        self.assertIs(self.system.current_status(), SystemStatus.INITIALISED)
        self.assertEqual(self.system.get_current_time(), 0)
        self.assertEqual([s.name for s in self.system.get_stations()], ["A", "B", "C"])
        self.assertEqual([s.name for s in self.system.get_segments()], ["S1", "S2"])
        self.assertTrue(self.system.contains_route("R1"))
        self.assertTrue(self.system.verify())

    def test_lookups_return_none_on_miss(self):
        self.assertIsNone(self.system.get_station_by_name("Z"))
        self.assertIsNone(self.system.get_segment_by_name("Z"))
        self.assertIsNone(self.system.get_route_by_name("Z"))
        self.assertIsNone(self.system.get_train_by_name("Z"))
        self.assertIsNone(self.system.open_station("Z"))
        self.assertIsNone(self.system.close_segment("Z"))
        self.assertEqual(self.system.get_station_by_name(" B ").name, "B")

    def test_invalid_names_are_refused(self):
        cases = [
            (self.system.add_station(""), ErrorKind.INVALID_NAME),
            (self.system.add_station("A"), ErrorKind.INVALID_NAME),
            (self.system.add_segment("S3", "A", "A"), ErrorKind.INVALID_NAME),
            (self.system.add_segment("S3", "A", "Z"), ErrorKind.NOT_FOUND),
            (self.system.add_route("R2", False, ["S1", "S9"]), ErrorKind.NOT_FOUND),
        ]
        for result, kind in cases:
            with self.subTest(message=result.message):
                self.assertFalse(result)
                self.assertIs(result.error, kind)

    def test_malformed_route_is_refused(self):
        self.assertTrue(self.system.add_segment("S3", "C", "A"))
        result = self.system.add_route("Bad", False, ["S1", "S3"])
        self.assertIs(result.error, ErrorKind.MALFORMED_ROUTE)
        self.assertFalse(self.system.contains_route("Bad"))
        result = self.system.add_route("Empty", False, [])
        self.assertIs(result.error, ErrorKind.MALFORMED_ROUTE)

    def test_ids_come_from_engine_counters(self):
        """Two engines never share an identifier sequence"""
        other = self.build(["X"], [], {})
        self.assertEqual(other.get_station_by_name("X").stationID, 1)
        self.assertEqual(self.system.get_station_by_name("C").stationID, 3)
        self.assertTrue(self.system.add_train("T1"))
        self.assertTrue(other.add_train("T1"))
        self.assertEqual(self.system.get_train_by_name("T1").trainID, 1)
        self.assertEqual(other.get_train_by_name("T1").trainID, 1)

    def test_removal_respects_references(self):
        self.assertIs(self.system.remove_station("A").error, ErrorKind.INVALID_STATE)
        self.assertIs(self.system.remove_segment("S1").error, ErrorKind.INVALID_STATE)
        self.add_registered_train(self.system, "T1", "R1")
        self.assertIs(self.system.remove_route("R1").error, ErrorKind.INVALID_STATE)
        self.assertIs(self.system.remove_train("T1").error, ErrorKind.INVALID_STATE)

        self.assertTrue(self.system.de_register_train("T1"))
        self.assertTrue(self.system.remove_train("T1"))
        self.assertTrue(self.system.remove_route("R1"))
        self.assertTrue(self.system.remove_segment("S1"))
        self.assertTrue(self.system.remove_station("A"))
        self.assertFalse(self.system.contains_station("A"))
        self.assertIs(self.system.remove_station("A").error, ErrorKind.NOT_FOUND)

    def test_builders_refused_once_operational(self):
        """Topology is frozen outside INITIALISED"""
        self.assertTrue(self.system.set_to_working())
        results = [
            self.system.add_station("D"),
            self.system.add_segment("S3", "C", "A"),
            self.system.add_route("R2", False, ["S1"]),
            self.system.add_train("T9"),
            self.system.remove_station("C"),
            self.system.set_to_working(),
        ]
        for result in results:
            with self.subTest(message=result.message):
                self.assertIs(result.error, ErrorKind.INVALID_STATE)
        self.assertFalse(self.system.contains_station("D"))

    def test_advance_requires_operational(self):
        with self.assertRaises(InvalidStateError):
            self.system.advance()
        self.system.set_to_working()
        self.system.advance()
        self.system.set_stopped()
        self.assertIs(self.system.current_status(), SystemStatus.FINISHED)
        with self.assertRaises(InvalidStateError):
            self.system.advance()

    def test_clock_propagates_and_never_goes_back(self):
        self.system.set_to_working()
        self.system.advance(4)
        self.assertEqual(self.system.get_current_time(), 4)
        self.assertEqual(self.system.get_segment_by_name("S2").currentTick, 4)
        with self.assertRaises(InvalidStateError):
            self.system.advance(2)

    def test_registration_rules(self):
        self.assertTrue(self.system.add_train("T1"))
        self.assertIs(self.system.register_train("T1", "R9").error, ErrorKind.NOT_FOUND)
        self.system.close_route("R1")
        self.assertIs(self.system.register_train("T1", "R1").error, ErrorKind.INVALID_STATE)
        self.system.open_route("R1")
        self.assertTrue(self.system.register_train("T1", "R1", ["B"]))
        self.assertIs(self.system.register_train("T1", "R1").error, ErrorKind.INVALID_STATE)
        self.assertEqual(self.system.get_train_by_name("T1").current_station(), "A")

    def test_registration_warns_about_stops_off_route(self):
        self.assertTrue(self.system.add_train("T1"))
        with self.assertLogs('ATMS.Core.train_system', level='WARNING') as logs:
            self.assertTrue(self.system.register_train("T1", "R1", ["Z"]))
        self.assertTrue(any("Z" in line for line in logs.output))

    def test_open_segment_needs_green_light_and_open_stations(self):
        self.system.close_segment("S1")
        self.system.close_station("A")
        self.assertIsNone(self.system.open_segment("S1"))
        self.system.open_station("A")
        self.system.get_segment_by_name("S1").change_light(0)
        self.assertIsNone(self.system.open_segment("S1"))
        self.system.get_segment_by_name("S1").change_light(0)
        self.assertEqual(self.system.open_segment("S1"), CFOSEvent("S1", 0, Action.OPEN))

    def test_entity_dispatch(self):
        self.assertEqual(self.system.close_entity(ObjectType.STATION, "B"),
                         CFOSEvent("B", 0, Action.CLOSE))
        self.assertFalse(self.system.get_station_by_name("B").is_open())
        self.assertEqual(self.system.open_entity(ObjectType.ROUTE, "R1").action, Action.OPEN)
        with self.assertRaises(ValueError):
            self.system.open_entity(ObjectType.TRAIN, "T1")

    def test_system_stats(self):
        self.add_registered_train(self.system, "T1", "R1")
        stats = self.system.get_system_stats()
        self.assertEqual(stats['stations'], 3)
        self.assertEqual(stats['registered_trains'], 1)
        self.assertEqual(stats['occupied_segments'], 0)
        self.assertEqual(stats['status'], 'INITIALISED')
        self.assertIn("status=System is Initialised", str(self.system))


class TestTrainSystemAdvance(TrainSystemTestCase):
    """Test cases for the per-tick algorithm"""

    def test_end_to_end_single_segment(self):
        """Start, enter, leave, finish on a one-segment route"""
        system = self.build(["A", "B"], [("S1", "A", "B", Light.GREEN)], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()

        self.assertEqual(self.tick(system), [
            CFOSEvent("T1", 1, Action.START),
            CFOSEvent("R1", 1, Action.OPEN),
            OccupiedEvent("S1", 1, "T1", True),
            CFOSEvent("S1", 1, Action.CLOSE),
            LightEvent("S1", 1, Light.GREEN, Light.RED),
        ])
        train = system.get_train_by_name("T1")
        segment = system.get_segment_by_name("S1")
        self.assertIs(train.status, TrainStatus.STARTED)
        self.assertTrue(segment.is_occupied_by(train))

        self.assertEqual(self.tick(system), [
            CFOSEvent("S1", 2, Action.OPEN),
            LightEvent("S1", 2, Light.RED, Light.GREEN),
            OccupiedEvent("S1", 2, "T1", False),
            MoveEvent("T1", 2, "A", "B"),
        ])
        self.assertEqual(train.current_station(), "B")
        self.assertFalse(segment.has_train())

        self.assertEqual(self.tick(system), [CFOSEvent("T1", 3, Action.FINISH)])
        self.assertIs(train.status, TrainStatus.COMPLETED)
        self.assertFalse(train.is_registered())
        self.assertTrue(system.is_finished())
        self.assertFalse(system.closure_hindering_movement())

    def test_start_delay_holds_train(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1", delay=2)
        system.set_to_working()
        self.assertEqual(self.tick(system), [])
        self.assertFalse(system.closure_hindering_movement())
        self.assertEqual(self.tick(system)[0], CFOSEvent("T1", 2, Action.START))

    def test_one_station_per_tick(self):
        system = self.build(["A", "B", "C", "D"],
                            [("AB", "A", "B"), ("BC", "B", "C"), ("CD", "C", "D")],
                            {"R1": ["AB", "BC", "CD"]})
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()
        train = system.get_train_by_name("T1")

        visited = [train.current_station()]
        for _ in range(4):
            events = self.tick(system)
            moves = [e for e in events if isinstance(e, MoveEvent)]
            self.assertLessEqual(len(moves), 1)
            # The segment out of a new station is taken in the same tick
            if moves and not train.is_at_end():
                self.assertTrue(train.get_current_segment().is_occupied_by(train))
            visited.append(train.current_station())
        self.assertEqual(visited, ["A", "A", "B", "C", "D"])
        self.tick(system)
        self.assertIs(train.status, TrainStatus.COMPLETED)

    def test_mutual_exclusion_on_shared_segment(self):
        """A second train waits until the first has left, then enters on a later train's turn"""
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        self.add_registered_train(system, "T2", "R1")
        system.set_to_working()
        segment = system.get_segment_by_name("S1")

        events = self.tick(system)
        entries = [e for e in events if isinstance(e, OccupiedEvent) and e.isEntry]
        self.assertEqual(entries, [OccupiedEvent("S1", 1, "T1", True)])
        # One shared Open event for the route
        self.assertEqual(events.count(CFOSEvent("R1", 1, Action.OPEN)), 1)
        self.assertEqual(system.get_route_by_name("R1").history().count(CFOSEvent("R1", 1, Action.OPEN)), 1)
        self.assertEqual(system.last_failures, [])

        events = self.tick(system)
        occupied = [e for e in events if isinstance(e, OccupiedEvent)]
        self.assertEqual(occupied, [OccupiedEvent("S1", 2, "T1", False), OccupiedEvent("S1", 2, "T2", True)])
        self.assertTrue(segment.is_occupied_by(system.get_train_by_name("T2")))

        for _ in range(3):
            self.tick(system)
        self.assertTrue(system.is_finished())

    def test_lights_toggle_in_pairs(self):
        """Every entry turns the light red and every exit turns it green again"""
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        for name in ("T1", "T2", "T3"):
            self.add_registered_train(system, name, "R1")
        system.set_to_working()

        log = []
        while not system.is_finished():
            log.extend(self.tick(system))
            self.assertLess(system.get_current_time(), 20)

        lights = [e for e in log if isinstance(e, LightEvent)]
        entries = [e for e in log if isinstance(e, OccupiedEvent) and e.isEntry]
        exits = [e for e in log if isinstance(e, OccupiedEvent) and not e.isEntry]
        self.assertEqual(len(entries), 3)
        self.assertEqual(len(exits), 3)
        self.assertEqual(len(lights), 6)
        self.assertEqual([e.toColour for e in lights], [Light.RED, Light.GREEN] * 3)
        segment = system.get_segment_by_name("S1")
        self.assertTrue(segment.is_open())
        self.assertTrue(segment.trafficLight.is_green())

    def test_designated_stop_dwells_one_tick(self):
        system = self.build(["A", "B", "C"], [("AB", "A", "B"), ("BC", "B", "C")], {"R1": ["AB", "BC"]})
        self.add_registered_train(system, "T1", "R1", stops=["B"])
        system.set_to_working()
        train = system.get_train_by_name("T1")

        self.tick(system)
        events = self.tick(system)
        self.assertIn(MoveEvent("T1", 2, "A", "B"), events)
        self.assertFalse(any(isinstance(e, OccupiedEvent) and e.isEntry for e in events))
        self.assertIs(train.holdReason, HoldReason.DWELL)
        self.assertEqual(train.designatedStops, [])

        events = self.tick(system)
        self.assertIn(OccupiedEvent("BC", 3, "T1", True), events)

    def test_closed_station_holds_train(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()
        system.increment_time()
        system.close_station("B")
        events = system.advance()
        self.assertEqual(events, [CFOSEvent("T1", 1, Action.START), CFOSEvent("R1", 1, Action.OPEN)])
        train = system.get_train_by_name("T1")
        self.assertIs(train.holdReason, HoldReason.CLOSURE)
        self.assertFalse(system.get_segment_by_name("S1").has_train())

        system.increment_time()
        system.open_station("B")
        self.assertIn(OccupiedEvent("S1", 2, "T1", True), system.advance())

    def test_closed_segment_holds_train(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        system.close_segment("S1")
        system.set_to_working()
        self.tick(system)
        train = system.get_train_by_name("T1")
        self.assertIs(train.holdReason, HoldReason.CLOSURE)
        self.assertFalse(system.get_segment_by_name("S1").has_train())

    def test_closure_ahead_holds_train_at_station_reached(self):
        """A train arriving at B does not enter B->C while C is closed"""
        system = self.build(["A", "B", "C"], [("AB", "A", "B"), ("BC", "B", "C")], {"R1": ["AB", "BC"]})
        self.add_registered_train(system, "T1", "R1")
        system.close_station("C")
        system.set_to_working()
        train = system.get_train_by_name("T1")
        self.tick(system)

        events = self.tick(system)
        self.assertIn(MoveEvent("T1", 2, "A", "B"), events)
        self.assertNotIn(OccupiedEvent("BC", 2, "T1", True), events)
        self.assertFalse(system.get_segment_by_name("BC").has_train())
        self.assertIs(train.holdReason, HoldReason.CLOSURE)

        system.increment_time()
        system.open_station("C")
        self.assertIn(OccupiedEvent("BC", 3, "T1", True), system.advance())

    def test_segment_stays_closed_when_train_cannot_leave(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()
        self.tick(system)
        segment = system.get_segment_by_name("S1")
        train = system.get_train_by_name("T1")
        system.get_station_by_name("B").close()

        events = []
        failure = system._open_segment_and_release_train(segment, train, events)
        self.assertIs(failure.error, ErrorKind.NOT_OCCUPIED)
        self.assertEqual(events, [])
        self.assertFalse(segment.is_open())
        self.assertTrue(segment.trafficLight.is_red())
        self.assertTrue(segment.is_occupied_by(train))

    def test_true_deadlock_is_detected(self):
        """A started train blocked by a closure with nothing else happening"""
        system = self.build(["A", "B", "C"], [("AB", "A", "B"), ("BC", "B", "C")], {"R1": ["AB", "BC"]})
        self.add_registered_train(system, "T1", "R1")
        system.close_station("C")
        system.set_to_working()
        self.tick(system)
        self.tick(system)
        self.assertFalse(system.closure_hindering_movement())
        self.assertFalse(system.get_segment_by_name("BC").has_train())
        self.assertEqual(self.tick(system), [])
        self.assertTrue(system.closure_hindering_movement())
        self.assertFalse(system.is_finished())

        system.set_stopped(deadlocked=True)
        self.assertIs(system.current_status(), SystemStatus.DEADLOCKED)
        self.assertFalse(system.closure_hindering_movement())

    def test_dwelling_train_is_not_a_deadlock(self):
        """A quiet tick while a train dwells or waits to start is not a deadlock"""
        system = self.build(["A", "B", "C"], [("AB", "A", "B"), ("BC", "B", "C")], {"R1": ["AB", "BC"]})
        self.add_registered_train(system, "T1", "R1")
        self.add_registered_train(system, "T2", "R1", delay=10)
        system.close_station("C")
        system.set_to_working()
        for _ in range(3):
            self.tick(system)

        # T1 is blocked, T2 is still counting down its start delay
        self.assertEqual(system.last_events, [])
        self.assertFalse(system.closure_hindering_movement())

        t1 = system.get_train_by_name("T1")
        system.de_register_train("T2")
        self.assertTrue(system.closure_hindering_movement())
        t1.reset_wait_time_remaining(HoldReason.DWELL)
        self.assertGreater(t1.waitTimeRemaining, 0)
        self.assertFalse(system.closure_hindering_movement())

    def test_failure_for_one_train_does_not_stop_others(self):
        system = self.build(["A", "B", "C", "D"],
                            [("AB", "A", "B", Light.RED), ("CD", "C", "D")],
                            {"R1": ["AB"], "R2": ["CD"]})
        self.add_registered_train(system, "T1", "R1")
        self.add_registered_train(system, "T2", "R2")
        system.set_to_working()

        with self.assertLogs('ATMS.Core.train_system', level='ERROR'):
            events = self.tick(system)
        self.assertEqual(len(system.last_failures), 1)
        self.assertIs(system.last_failures[0].error, ErrorKind.ALREADY_OCCUPIED)
        self.assertIn(OccupiedEvent("CD", 1, "T2", True), events)
        self.assertFalse(system.get_segment_by_name("AB").has_train())

    def test_de_register_refused_while_in_segment(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()
        self.tick(system)
        result = system.de_register_train("T1")
        self.assertIs(result.error, ErrorKind.INVALID_STATE)
        self.assertTrue(system.get_train_by_name("T1").is_registered())

    def test_trains_processed_in_id_order(self):
        system = self.build(["A", "B"], [("S1", "A", "B")], {"R1": ["S1"]})
        self.add_registered_train(system, "T2", "R1")
        self.add_registered_train(system, "T1", "R1")
        system.set_to_working()
        with patch.object(TrainSystem, '_advance_train', autospec=True, return_value=None) as mock_advance:
            system.advance()
        self.assertEqual([call.args[1].name for call in mock_advance.call_args_list], ["T2", "T1"])

    def test_no_trains_is_finished(self):
        system = self.build(["A"], [], {})
        self.assertTrue(system.is_finished())


if __name__ == '__main__':
    unittest.main()
