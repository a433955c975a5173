# --- tests/events_test.py ---

import os
import sys
import threading
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from events import Action, CONFIG_ACTIONS, EventChannel, FolderProgress, Input, Tick
from ticker import ProgressTicker, UiTicker, start_ticker


class TestEventChannel(unittest.TestCase):

    def test_fifo_order(self):
        channel = EventChannel()
        for i in range(5):
            self.assertTrue(channel.send(Input(Action.SET_DEPTH, i)))
        self.assertEqual([channel.recv().value for _ in range(5)], [0, 1, 2, 3, 4])

    def test_recv_timeout_returns_none(self):
        channel = EventChannel()
        self.assertIsNone(channel.recv(timeout=0.01))
        self.assertIsNone(channel.recv(timeout=0))

    def test_send_after_close_is_dropped(self):
        channel = EventChannel()
        channel.close()
        self.assertTrue(channel.closed)
        self.assertFalse(channel.send(Tick()))
        self.assertEqual(channel.drain(), [])

    def test_per_producer_order_is_preserved(self):
        print("\nTesting: per-producer ordering with several threads...")
        channel = EventChannel()

        def produce(name):
            for i in range(200):
                channel.send(FolderProgress(scan_id=0, folder=f"{name}:{i}"))

        threads = [threading.Thread(target=produce, args=(f"p{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        seen = {}
        for event in channel.drain():
            name, index = event.folder.split(":")
            seen.setdefault(name, []).append(int(index))
        self.assertEqual(len(seen), 4)
        for indexes in seen.values():
            self.assertEqual(indexes, list(range(200)))
        print("PASS: no events lost, each producer in order")

    def test_config_actions(self):
        self.assertIn(Action.SET_DEPTH, CONFIG_ACTIONS)
        self.assertIn(Action.TOGGLE_FILTERS, CONFIG_ACTIONS)
        self.assertNotIn(Action.SORT_SIZE, CONFIG_ACTIONS)
        self.assertNotIn(Action.TOGGLE_HELP, CONFIG_ACTIONS)


class TestTickers(unittest.TestCase):

    def test_progress_ticker_adds_dots(self):
        channel = EventChannel()
        ticker = start_ticker("/data", channel, period=0.02, scan_id=3)
        try:
            labels = [channel.recv(timeout=2).folder for _ in range(3)]
        finally:
            ticker.stop()
            ticker.join(timeout=2)
        self.assertEqual(labels, ["/data", "/data.", "/data.."])
        self.assertFalse(ticker.is_alive())
        self.assertTrue(ticker.stopped)

    def test_progress_ticker_first_event_is_immediate(self):
        channel = EventChannel()
        ticker = start_ticker("/data", channel, period=60, scan_id=1)
        try:
            event = channel.recv(timeout=2)
        finally:
            ticker.stop()
        self.assertEqual(event, FolderProgress(scan_id=1, folder="/data"))
        ticker.join(timeout=2)
        self.assertFalse(ticker.is_alive())

    def test_progress_ticker_exits_when_channel_closes(self):
        channel = EventChannel()
        ticker = ProgressTicker("/data", channel, period=0.01)
        channel.close()
        ticker.start()
        ticker.join(timeout=2)
        self.assertFalse(ticker.is_alive())

    def test_ui_ticker(self):
        channel = EventChannel()
        ticker = UiTicker(channel, period=0.01)
        ticker.start()
        try:
            self.assertIsInstance(channel.recv(timeout=2), Tick)
        finally:
            ticker.stop()
            ticker.join(timeout=2)
        self.assertFalse(ticker.is_alive())


if __name__ == "__main__":
    unittest.main()
