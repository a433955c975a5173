# --- app_state.py ---

import logging
from typing import Callable, List, Optional, Tuple

from models import (
    AggregateMap, FolderStat, ScanConfig, ScanConfigError, SortKey,
    ViewSnapshot, merge_fragment,
)
from events import (
    Action, CONFIG_ACTIONS, EventChannel, FolderProgress, Input,
    PartialResults, Resize, SCAN_EVENTS, ScanComplete, Tick,
)
from scanner import Scanner, start_scan
from ticker import ProgressTicker, start_ticker

logger = logging.getLogger(__name__)

# Height of one rendered folder row, in text lines
ITEM_HEIGHT = 4

Row = Tuple[str, FolderStat]


def sort_rows(rows: List[Row], sort_key: SortKey) -> List[Row]:
    """
    Sorts in place, largest first. Ties are ordered by path so the
    result does not depend on which worker reported first.
    """
    rows.sort(key=lambda row: (-sort_key.value_of(row[1]), row[0]))
    return rows


class AppState:
    """
    Owns all mutable application state and applies one event at a time.

    Only the thread that calls handle_event() (or run()/pump()) touches
    this object. Scanner and ticker threads talk to it through the channel.
    """

    def __init__(self,
                 config: ScanConfig,
                 channel: Optional[EventChannel] = None,
                 workers: Optional[int] = None,
                 ticker_period: float = 3.0):

        self.channel = channel or EventChannel()
        self.workers = workers
        self.ticker_period = ticker_period

        # Filters from the command line; TOGGLE_FILTERS switches them on/off
        self.base_filters = config.filters
        self.filters_enabled = True

        self.config = config
        self.scanning = False
        self.should_quit = False
        self.show_help = False
        self.error: Optional[str] = None

        self.folder_name = ""
        self.folder_events: AggregateMap = {}
        self.rows: List[Row] = []
        self.sort_key = SortKey.SIZE
        self.scan_time = 0.0

        self.scroll_offset = 0
        self.max_scroll = 0
        self.viewport_height = 0

        self.scan_id = 0
        self.scanner: Optional[Scanner] = None
        self.ticker: Optional[ProgressTicker] = None

        self.start_scan(config)

    # --- Scan Lifecycle ---

    def start_scan(self, config: ScanConfig) -> bool:
        """
        Starts a fresh scan with 'config'. On a configuration error the
        previous config and results are kept and the error is recorded.
        """
        scan_id = self.scan_id + 1
        try:
            scanner = start_scan(config, self.channel, scan_id=scan_id, workers=self.workers)
        except ScanConfigError as e:
            logger.error("Scan not started: %s", e)
            self.error = str(e)
            return False

        self._stop_ticker()
        self.scan_id = scan_id
        self.scanner = scanner
        self.config = config
        self.scanning = True
        self.error = None

        self.folder_name = config.root_path
        self.folder_events = {}
        self.rows = []
        self.scan_time = 0.0
        self.scroll_offset = 0
        self.compute_max_scroll()

        self.ticker = start_ticker(config.root_path, self.channel,
                                   period=self.ticker_period, scan_id=scan_id)
        return True

    def _stop_ticker(self):
        if self.ticker is not None:
            self.ticker.stop()
            self.ticker = None

    def _on_scan_complete(self, elapsed: float):
        self.scanning = False
        self.scan_time = elapsed
        self._stop_ticker()
        self.rows = sort_rows(list(self.folder_events.items()), self.sort_key)
        self.compute_max_scroll()
        logger.info("Scan %d complete: %d folders in %.2fs", self.scan_id, len(self.rows), elapsed)

    # --- Event Dispatch ---

    def handle_event(self, event):
        if isinstance(event, SCAN_EVENTS) and event.scan_id != self.scan_id:
            logger.debug("Dropping %s from stale scan %d", type(event).__name__, event.scan_id)
            return

        if isinstance(event, Input):
            self._handle_input(event)
        elif isinstance(event, FolderProgress):
            if self.scanning:
                self.folder_name = event.folder
        elif isinstance(event, PartialResults):
            if self.scanning:
                merge_fragment(self.folder_events, event.fragment)
        elif isinstance(event, ScanComplete):
            if self.scanning:
                self._on_scan_complete(event.elapsed)
        elif isinstance(event, Resize):
            self.viewport_height = max(0, int(event.height))
            self.compute_max_scroll()
        elif isinstance(event, Tick):
            pass
        else:
            logger.warning("Unknown event: %r", event)

    def _handle_input(self, event: Input):
        action = event.action
        amount = event.value if isinstance(event.value, int) and event.value > 0 else 1

        if action is Action.QUIT:
            self.quit()
        elif action is Action.BACK:
            if self.show_help:
                self.show_help = False
            else:
                self.quit()
        elif action is Action.TOGGLE_HELP:
            self.show_help = not self.show_help
        elif action is Action.SORT_SIZE:
            self.set_sort(SortKey.SIZE)
        elif action is Action.SORT_FILES:
            self.set_sort(SortKey.FILES)
        elif action is Action.SCROLL_UP:
            self.scroll_up(amount)
        elif action is Action.SCROLL_DOWN:
            self.scroll_down(amount)
        elif action is Action.PAGE_UP:
            self.scroll_up(self.page_size())
        elif action is Action.PAGE_DOWN:
            self.scroll_down(self.page_size())
        elif action is Action.HOME:
            self.scroll_to(0)
        elif action is Action.END:
            self.scroll_to(self.max_scroll)
        elif action in CONFIG_ACTIONS:
            self._handle_config_input(action, event.value)

    def _handle_config_input(self, action: Action, value):
        if self.scanning:
            # No concurrent rescans; the input is dropped, not queued
            logger.debug("Ignoring %s while scanning", action.name)
            return

        filters_enabled = self.filters_enabled
        try:
            if action is Action.SET_DEPTH:
                new_config = self.config.with_changes(depth=value)
            elif action is Action.TOGGLE_IGNORE:
                new_config = self.config.with_changes(
                    respect_ignore_files=not self.config.respect_ignore_files)
            elif action is Action.TOGGLE_HIDDEN:
                new_config = self.config.with_changes(include_hidden=not self.config.include_hidden)
            else:
                filters_enabled = not self.filters_enabled
                new_config = self.config.with_changes(
                    filters=self.base_filters if filters_enabled else ())
        except ScanConfigError as e:
            logger.error("Rejected %s: %s", action.name, e)
            self.error = str(e)
            return

        if new_config == self.config:
            return
        if self.start_scan(new_config):
            self.filters_enabled = filters_enabled

    # --- Sorting and Scrolling ---

    def set_sort(self, sort_key: SortKey):
        self.sort_key = sort_key
        if self.scanning:
            # Applied when the scan completes
            return
        sort_rows(self.rows, sort_key)
        self.scroll_offset = 0

    def page_size(self) -> int:
        return self.viewport_height // ITEM_HEIGHT

    def compute_max_scroll(self):
        """
        Number of rows that do not fit in the viewport. A viewport too
        small for a single row can scroll through every row.
        """
        self.max_scroll = max(0, len(self.rows) - self.page_size())
        self.scroll_to(self.scroll_offset)

    def scroll_to(self, offset: int):
        self.scroll_offset = min(max(0, offset), self.max_scroll)

    def scroll_up(self, amount: int = 1):
        self.scroll_to(self.scroll_offset - amount)

    def scroll_down(self, amount: int = 1):
        self.scroll_to(self.scroll_offset + amount)

    # --- Loop ---

    def quit(self):
        self.should_quit = True

    @property
    def totals(self) -> FolderStat:
        return self.folder_events.get("", FolderStat.EMPTY)

    def view(self) -> ViewSnapshot:
        return ViewSnapshot(
            scanning=self.scanning,
            folder_name=self.folder_name,
            rows=tuple(self.rows),
            scroll_offset=self.scroll_offset,
            max_scroll=self.max_scroll,
            viewport_height=self.viewport_height,
            sort_key=self.sort_key,
            show_help=self.show_help,
            scan_time=self.scan_time,
            config=self.config,
            totals=self.totals,
            error=self.error,
            filters_enabled=self.filters_enabled,
        )

    def pump(self, timeout: Optional[float] = None) -> bool:
        """Handles at most one event. Returns False if none arrived in time."""
        event = self.channel.recv(timeout=timeout)
        if event is None:
            return False
        self.handle_event(event)
        return True

    def run(self, render: Callable[[ViewSnapshot], None]):
        """
        Blocking event loop: render, wait for an event, apply it, repeat
        until a quit transition. Background threads are released on exit.
        """
        try:
            render(self.view())
            while not self.should_quit:
                if self.pump():
                    render(self.view())
        finally:
            self.shutdown()

    def shutdown(self):
        """Stops the ticker and closes the channel. Scan workers are abandoned."""
        self._stop_ticker()
        self.channel.close()
        if self.scanner is not None and self.scanner.is_alive():
            logger.info("Abandoning running scan %d", self.scan_id)
