# --- models.py ---

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from utils import calculate_percentage

# Depth keys 1..8 are the only depths the UI can select.
MAX_DEPTH = 8


class ScanConfigError(ValueError):
    """Raised when a scan cannot start (bad or inaccessible root path)."""


@dataclass(frozen=True)
class FolderStat:
    """
    Recursive totals for one folder: bytes and number of files.
    This is a pure value class; combine with merge() or '+'.
    """
    size: int = 0
    files: int = 0

    def merge(self, other: 'FolderStat') -> 'FolderStat':
        return FolderStat(size=self.size + other.size,
                          files=self.files + other.files)

    def __add__(self, other: 'FolderStat') -> 'FolderStat':
        if not isinstance(other, FolderStat):
            return NotImplemented
        return self.merge(other)


FolderStat.EMPTY = FolderStat()

# Relative folder path -> stats
AggregateMap = Dict[str, FolderStat]


def merge_fragment(target: AggregateMap, fragment: AggregateMap) -> AggregateMap:
    """Merges a worker fragment into target in place and returns target."""
    for key, stat in fragment.items():
        existing = target.get(key)
        target[key] = stat if existing is None else existing.merge(stat)
    return target


class FilterKind(Enum):
    EXTENSION = "extension"
    FILE_NAME = "file_name"


@dataclass(frozen=True)
class Filter:
    """
    A case-sensitive substring filter against either a file's extension
    (without the dot) or its base name.
    """
    kind: FilterKind
    text: str

    @classmethod
    def extension(cls, text: str) -> 'Filter':
        return cls(FilterKind.EXTENSION, text)

    @classmethod
    def file_name(cls, text: str) -> 'Filter':
        return cls(FilterKind.FILE_NAME, text)

    def contains(self, value: str) -> bool:
        return self.text in value

    def __str__(self):
        prefix = "*." if self.kind is FilterKind.EXTENSION else ""
        return f"{prefix}{self.text}"


class SortKey(Enum):
    SIZE = "size"
    FILES = "files"

    def value_of(self, stat: FolderStat) -> int:
        return stat.size if self is SortKey.SIZE else stat.files


@dataclass(frozen=True)
class ScanConfig:
    """
    Everything a single scan needs. Immutable: a changed setting means a
    new ScanConfig and a new scan.
    """
    root_path: str
    filters: Tuple[Filter, ...] = ()
    respect_ignore_files: bool = True
    include_hidden: bool = False
    depth: int = 1

    def __post_init__(self):
        if not isinstance(self.depth, int) or not 1 <= self.depth <= MAX_DEPTH:
            raise ScanConfigError(f"Depth must be between 1 and {MAX_DEPTH}: {self.depth!r}")
        # Allow callers to pass a list
        object.__setattr__(self, "filters", tuple(self.filters))

    @classmethod
    def from_path(cls, path: str, **kwargs) -> 'ScanConfig':
        """
        Canonicalizes 'path' and validates that it is a readable directory.
        Raises ScanConfigError otherwise.
        """
        root = os.path.realpath(os.path.abspath(os.path.expanduser(path)))
        if not os.path.isdir(root):
            raise ScanConfigError(f"Path is not a valid directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise ScanConfigError(f"Cannot access root path: {root}")
        return cls(root_path=root, **kwargs)

    def with_changes(self, **changes) -> 'ScanConfig':
        return replace(self, **changes)


@dataclass(frozen=True)
class ViewSnapshot:
    """
    Read-only state handed to the renderer after every event.
    """
    scanning: bool
    folder_name: str
    rows: Tuple[Tuple[str, FolderStat], ...]
    scroll_offset: int
    max_scroll: int
    viewport_height: int
    sort_key: SortKey
    show_help: bool
    scan_time: float
    config: ScanConfig
    totals: FolderStat = FolderStat.EMPTY
    error: Optional[str] = None
    filters_enabled: bool = True

    def visible_rows(self, page_size: int) -> Tuple[Tuple[str, FolderStat], ...]:
        return self.rows[self.scroll_offset:self.scroll_offset + max(0, page_size)]

    def percent_of_total(self, stat: FolderStat) -> float:
        return calculate_percentage(stat.size, self.totals.size)
