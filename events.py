# --- events.py ---

import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from models import AggregateMap

logger = logging.getLogger(__name__)


class Action(Enum):
    """Input vocabulary produced by the input adapter."""
    QUIT = "quit"
    BACK = "back"  # close help, or quit when no overlay is open
    SORT_SIZE = "sort_size"
    SORT_FILES = "sort_files"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    SET_DEPTH = "set_depth"
    TOGGLE_IGNORE = "toggle_ignore"
    TOGGLE_HIDDEN = "toggle_hidden"
    TOGGLE_FILTERS = "toggle_filters"
    TOGGLE_HELP = "toggle_help"


CONFIG_ACTIONS = frozenset({
    Action.SET_DEPTH, Action.TOGGLE_IGNORE,
    Action.TOGGLE_HIDDEN, Action.TOGGLE_FILTERS,
})


# --- Event Types ---

@dataclass(frozen=True)
class Tick:
    """Periodic UI tick; only triggers a redraw."""


@dataclass(frozen=True)
class Resize:
    height: int  # content height in text lines


@dataclass(frozen=True)
class Input:
    action: Action
    value: Any = None  # e.g. the depth for SET_DEPTH


@dataclass(frozen=True)
class FolderProgress:
    scan_id: int
    folder: str


@dataclass(frozen=True)
class PartialResults:
    scan_id: int
    fragment: AggregateMap = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class ScanComplete:
    scan_id: int
    elapsed: float  # seconds


SCAN_EVENTS = (FolderProgress, PartialResults, ScanComplete)


# --- Channel ---

class EventChannel:
    """
    Unbounded multi-producer / single-consumer FIFO.

    Any thread may send(); only the state machine thread calls recv().
    Sends after close() are logged and dropped.
    """

    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, event) -> bool:
        if self._closed.is_set():
            logger.debug("Channel closed, dropping %s", type(event).__name__)
            return False
        self._queue.put(event)
        return True

    def recv(self, timeout: Optional[float] = None):
        """Blocks for the next event. Returns None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Any]:
        """Returns every pending event without blocking."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self):
        self._closed.set()
