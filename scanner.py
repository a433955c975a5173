# --- scanner.py ---

import logging
import os
import queue
import threading
import time
from typing import List, NamedTuple, Optional, Tuple

from models import AggregateMap, FolderStat, ScanConfig, ScanConfigError
from filters import FilterSet, IgnoreRules
from events import EventChannel, FolderProgress, PartialResults, ScanComplete
from utils import is_hidden, relative_key

logger = logging.getLogger(__name__)

# Minimum seconds between two folder-progress events from one worker
PROGRESS_INTERVAL = 0.1


class WorkItem(NamedTuple):
    """A directory waiting to be listed."""
    path: str
    level: int  # 0 for the scan root
    keys: Tuple[str, ...]  # aggregate keys credited by files in this directory
    rules: IgnoreRules  # rules inherited from the parent directory


def validate_root(config: ScanConfig):
    """
    Checks the root before any thread is started.
    Raises ScanConfigError when the root cannot be scanned.
    """
    root = config.root_path
    if not os.path.isabs(root):
        raise ScanConfigError(f"Root path must be absolute: {root}")
    if not os.path.isdir(root):
        raise ScanConfigError(f"Path is not a valid directory: {root}")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise ScanConfigError(f"Cannot access root path: {e}") from e


def root_item(config: ScanConfig) -> WorkItem:
    return WorkItem(path=config.root_path, level=0, keys=("",), rules=IgnoreRules())


def credit(fragment: AggregateMap, keys: Tuple[str, ...], stat: FolderStat):
    for key in keys:
        existing = fragment.get(key)
        fragment[key] = stat if existing is None else existing.merge(stat)


def scan_directory(item: WorkItem, config: ScanConfig, filter_set: FilterSet,
                   fragment: AggregateMap) -> List[WorkItem]:
    """
    Lists one directory, credits its files into 'fragment' and returns the
    subdirectories still to visit. Entries that cannot be read are skipped.
    """
    rules = item.rules
    if config.respect_ignore_files:
        rules = rules.descend(item.path)

    children: List[WorkItem] = []
    try:
        with os.scandir(item.path) as it:
            for entry in it:
                try:
                    if entry.is_symlink():
                        continue
                    if not config.include_hidden and is_hidden(entry.name):
                        continue

                    is_dir = entry.is_dir(follow_symlinks=False)
                    if config.respect_ignore_files and rules.is_ignored(entry.path, is_dir):
                        continue

                    if is_dir:
                        level = item.level + 1
                        keys = item.keys
                        if level <= config.depth:
                            keys = keys + (relative_key(entry.path, config.root_path),)
                        children.append(WorkItem(entry.path, level, keys, rules))
                    elif entry.is_file(follow_symlinks=False):
                        if not filter_set.passes(entry.name):
                            continue
                        size = entry.stat(follow_symlinks=False).st_size
                        credit(fragment, item.keys, FolderStat(size=size, files=1))
                except OSError as e:
                    logger.warning("Cannot access: %s (%s)", entry.path, e)
    except PermissionError:
        logger.warning("Cannot scan directory: %s (Permission Denied)", item.path)
    except OSError as e:
        logger.warning("Error scanning directory: %s (%s)", item.path, e)

    return children


def scan_tree(config: ScanConfig) -> AggregateMap:
    """
    Single-threaded walk producing the same aggregate as the parallel scanner.
    """
    validate_root(config)
    filter_set = FilterSet(config.filters)
    results: AggregateMap = {}
    pending = [root_item(config)]
    while pending:
        item = pending.pop()
        pending.extend(scan_directory(item, config, filter_set, results))
    return results


class Scanner(threading.Thread):
    """
    Runs the parallel directory walk in the background.

    Worker threads share a queue of directories. Each keeps its own
    fragment and sends it as one PartialResults event when the queue is
    exhausted. ScanComplete is sent once every worker has finished.
    """

    def __init__(self,
                 config: ScanConfig,
                 channel: EventChannel,
                 scan_id: int = 0,
                 workers: Optional[int] = None):

        super().__init__(name=f"scanner-{scan_id}")
        self.daemon = True

        self.config = config
        self.channel = channel
        self.scan_id = scan_id
        self.workers = max(1, workers or os.cpu_count() or 1)
        self.filter_set = FilterSet(config.filters)

        self._work: "queue.Queue[Optional[WorkItem]]" = queue.Queue()

    def run(self):
        """The main entry point for the thread."""
        started = time.perf_counter()
        try:
            self._work.put(root_item(self.config))
            threads = [
                threading.Thread(target=self._worker, name=f"scanner-{self.scan_id}-w{i}", daemon=True)
                for i in range(self.workers)
            ]
            for thread in threads:
                thread.start()

            # Every directory has been listed once join() returns
            self._work.join()
            for _ in threads:
                self._work.put(None)
            for thread in threads:
                thread.join()
        except Exception:
            logger.exception("Scan of %s failed", self.config.root_path)
        finally:
            elapsed = time.perf_counter() - started
            logger.info("Scan of %s finished in %.2fs", self.config.root_path, elapsed)
            self.channel.send(ScanComplete(scan_id=self.scan_id, elapsed=elapsed))

    def _worker(self):
        fragment: AggregateMap = {}
        last_progress = 0.0
        try:
            while True:
                item = self._work.get()
                if item is None:
                    self._work.task_done()
                    return
                try:
                    now = time.perf_counter()
                    if now - last_progress >= PROGRESS_INTERVAL:
                        self.channel.send(FolderProgress(scan_id=self.scan_id, folder=item.path))
                        last_progress = now

                    for child in scan_directory(item, self.config, self.filter_set, fragment):
                        self._work.put(child)
                except Exception:
                    logger.exception("Unexpected error scanning %s", item.path)
                finally:
                    self._work.task_done()
        finally:
            self.channel.send(PartialResults(scan_id=self.scan_id, fragment=fragment))


def start_scan(config: ScanConfig,
               channel: EventChannel,
               scan_id: int = 0,
               workers: Optional[int] = None) -> Scanner:
    """
    Validates the root and starts a Scanner thread.
    Raises ScanConfigError without sending any event if the root is unusable.
    """
    validate_root(config)
    logger.info("Starting scan %d of %s (depth=%d, ignores=%s, hidden=%s, filters=%s)",
                scan_id, config.root_path, config.depth, config.respect_ignore_files,
                config.include_hidden, ", ".join(str(f) for f in config.filters) or "none")
    scanner = Scanner(config, channel, scan_id=scan_id, workers=workers)
    scanner.start()
    return scanner
