# --- ticker.py ---

import logging
import threading

from events import EventChannel, FolderProgress, Tick

logger = logging.getLogger(__name__)


class ProgressTicker(threading.Thread):
    """
    "Still scanning" heartbeat. Sends the label right away, then the
    label with one more dot every 'period' seconds until stopped.
    """

    def __init__(self, label: str, channel: EventChannel, period: float = 3.0, scan_id: int = 0):
        super().__init__(name=f"progress-ticker-{scan_id}")
        self.daemon = True

        self.label = label
        self.channel = channel
        self.period = period
        self.scan_id = scan_id

        self._stop_event = threading.Event()

    def run(self):
        dots = 0
        self.channel.send(FolderProgress(scan_id=self.scan_id, folder=self.label))
        # wait() returns True as soon as stop() is called
        while not self._stop_event.wait(self.period):
            dots += 1
            if not self.channel.send(FolderProgress(scan_id=self.scan_id, folder=self.label + "." * dots)):
                return

    def stop(self):
        """Signals the ticker to stop. Does not wait for the thread."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()


class UiTicker(threading.Thread):
    """Sends a Tick event every 'period' seconds so the UI keeps redrawing."""

    def __init__(self, channel: EventChannel, period: float = 0.25):
        super().__init__(name="ui-ticker")
        self.daemon = True
        self.channel = channel
        self.period = period
        self._stop_event = threading.Event()

    def run(self):
        while not self._stop_event.wait(self.period):
            if not self.channel.send(Tick()):
                logger.debug("UI ticker exiting, channel closed")
                return

    def stop(self):
        self._stop_event.set()


def start_ticker(label: str, channel: EventChannel, period: float = 3.0, scan_id: int = 0) -> ProgressTicker:
    ticker = ProgressTicker(label, channel, period=period, scan_id=scan_id)
    ticker.start()
    return ticker
