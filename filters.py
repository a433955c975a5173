# --- filters.py ---

import logging
import os
from typing import Iterable, List, Optional, Sequence, Tuple

import pathspec

from models import Filter, FilterKind
from utils import split_extension

logger = logging.getLogger(__name__)

# --- Configuration for Ignore Files ---

# Read in this order inside one directory; later files win.
IGNORE_FILENAMES = (".gitignore", ".ignore")


# --- File Filters ---

class FilterSet:
    """
    Decides whether a file takes part in aggregation.

    Filters are grouped by kind. Inside a group any match is enough,
    every non-empty group must match. No filters means every file passes.
    """

    def __init__(self, filters: Iterable[Filter] = ()):
        filters = list(filters)
        self.extensions: List[Filter] = [f for f in filters if f.kind is FilterKind.EXTENSION]
        self.file_names: List[Filter] = [f for f in filters if f.kind is FilterKind.FILE_NAME]

    def __bool__(self):
        return bool(self.extensions or self.file_names)

    def matches_name(self, name: str) -> bool:
        if not self.file_names:
            return True
        return any(f.contains(name) for f in self.file_names)

    def matches_extension(self, name: str) -> bool:
        if not self.extensions:
            return True
        ext = split_extension(name)
        if not ext:
            return False
        return any(f.contains(ext) for f in self.extensions)

    def passes(self, name: str) -> bool:
        """'name' is the base name of a file."""
        return self.matches_name(name) and self.matches_extension(name)


def file_passes(name: str, filters: Sequence[Filter]) -> bool:
    return FilterSet(filters).passes(name)


# --- Ignore Files ---

def read_ignore_lines(directory: str) -> List[str]:
    """
    Reads .gitignore then .ignore from 'directory'.
    Unreadable files are treated as empty.
    """
    lines: List[str] = []
    for filename in IGNORE_FILENAMES:
        path = os.path.join(directory, filename)
        if not os.path.isfile(path):
            continue
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                lines.extend(f.read().splitlines())
        except OSError as e:
            logger.warning("Cannot read ignore file %s: %s", path, e)
    return lines


def valid_ignore_lines(lines: List[str], directory: str) -> List[str]:
    """
    Drops lines pathspec cannot compile ('!', a trailing backslash, ...)
    and keeps the rest in order, the way git skips a bad pattern.
    """
    valid: List[str] = []
    for line in lines:
        try:
            pathspec.GitIgnoreSpec.from_lines([line])
        except ValueError as e:
            # pathspec's pattern errors subclass ValueError
            logger.warning("Skipping invalid ignore pattern %r in %s: %s", line, directory, e)
            continue
        valid.append(line)
    return valid


class IgnoreRules:
    """
    A stack of compiled ignore specs, one per directory that carries
    ignore files, ordered from the root downwards.

    Deeper rules take precedence. Inside one spec the last matching
    pattern wins, so a negated pattern ('!keep.log') re-includes.
    """

    def __init__(self, layers: Tuple[Tuple[str, pathspec.PathSpec], ...] = ()):
        self.layers = layers

    def descend(self, directory: str) -> 'IgnoreRules':
        """
        Returns the rules that apply to the entries of 'directory'.
        Shares layers with the parent when the directory has no ignore files.
        """
        lines = valid_ignore_lines(read_ignore_lines(directory), directory)
        if not lines:
            return self
        spec = pathspec.GitIgnoreSpec.from_lines(lines)
        return IgnoreRules(self.layers + ((directory, spec),))

    def is_ignored(self, path: str, is_dir: bool) -> bool:
        for base, spec in reversed(self.layers):
            decision = self._check(spec, base, path, is_dir)
            if decision is not None:
                return decision
        return False

    @staticmethod
    def _check(spec: pathspec.PathSpec, base: str, path: str, is_dir: bool) -> Optional[bool]:
        rel = os.path.relpath(path, base).replace(os.sep, '/')
        if rel.startswith('../'):
            return None
        if is_dir:
            rel += '/'
        # include=True means "pattern matched" (ignored), False means negated
        return spec.check_file(rel).include
