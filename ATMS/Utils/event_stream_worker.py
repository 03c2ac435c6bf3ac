"""
ATMS Utils - Event Stream Worker
================================
Threading utility that forwards event-log entries to Qt observers.
The worker only reads from its own subscription queue, so a slow display
can never hold up the tick engine.
"""

from queue import Empty, Queue
import logging

from PyQt5.QtCore import QThread, pyqtSignal

# Set up logging
logger = logging.getLogger(__name__)


class EventStreamWorker(QThread):
    """Worker thread draining an event-log subscription into Qt signals"""
    eventReceived = pyqtSignal(object)  # One signal per event, in log order
    batchReceived = pyqtSignal(list)  # Everything drained in one poll

    def __init__(self, event_log, poll_interval_ms=100, parent=None):
        super().__init__(parent)
        self.eventLog = event_log
        self.queue: Queue = event_log.subscribe()
        self.pollInterval = poll_interval_ms
        self.running = True
        self.forwardedCount = 0

    def drain(self):
        """Forward every event currently queued; returns the drained list"""
        batch = []
        while True:
            try:
                event = self.queue.get_nowait()
            except Empty:
                break
            batch.append(event)
            self.eventReceived.emit(event)

        if batch:
            self.forwardedCount += len(batch)
            self.batchReceived.emit(batch)
        return batch

    def run(self):
        """Poll the subscription until stopped"""
        while self.running:
            self.drain()
            self.msleep(self.pollInterval)
        # Flush whatever arrived between the last poll and stop()
        self.drain()

    def stop(self):
        """Stop the worker thread and detach from the event log"""
        self.running = False
        self.wait()
        self.eventLog.unsubscribe(self.queue)
        logger.info(f"Event stream worker stopped after {self.forwardedCount} events")
