import unittest
from unittest.mock import Mock
import sys
import os

from PyQt5.QtCore import QCoreApplication

# Add the parent directory to sys.path to import ATMS modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from ATMS.Core.enums import Action
from ATMS.Core.event_log import EventLog
from ATMS.Core.events import CFOSEvent
from ATMS.Utils.event_stream_worker import EventStreamWorker


class TestEventStreamWorker(unittest.TestCase):
    """Test cases for forwarding event-log entries as Qt signals"""

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication(sys.argv)

    def setUp(self):
        """Set up test fixtures before each test method"""
        self.log = EventLog()
        self.worker = EventStreamWorker(self.log, poll_interval_ms=10)
        self.received = []
        self.batches = []
        self.worker.eventReceived.connect(self.received.append)
        self.worker.batchReceived.connect(self.batches.append)

    def tearDown(self):
        """Clean up after each test"""
        self.worker.running = False
        self.worker = None

    def test_drain_forwards_in_log_order(self):
        events = [CFOSEvent("T1", 1, Action.START), CFOSEvent("R1", 1, Action.OPEN)]
        self.log.extend(events)
        self.assertEqual(self.worker.drain(), events)
        self.assertEqual(self.received, events)
        self.assertEqual(self.batches, [events])
        self.assertEqual(self.worker.forwardedCount, 2)

    def test_drain_without_events_emits_nothing(self):
        self.assertEqual(self.worker.drain(), [])
        self.assertEqual(self.received, [])
        self.assertEqual(self.batches, [])

    def test_events_before_subscription_are_not_replayed(self):
        log = EventLog([CFOSEvent("T1", 1, Action.START)])
        worker = EventStreamWorker(log)
        self.assertEqual(worker.drain(), [])

    def test_stop_detaches_from_log(self):
        self.log.unsubscribe = Mock(wraps=self.log.unsubscribe)
        self.worker.start()
        self.worker.stop()
        self.assertFalse(self.worker.isRunning())
        self.log.unsubscribe.assert_called_once_with(self.worker.queue)
        self.log.add_to_log(CFOSEvent("T1", 2, Action.FINISH))
        self.assertTrue(self.worker.queue.empty())


if __name__ == '__main__':
    unittest.main()
