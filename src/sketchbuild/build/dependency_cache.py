"""Incremental Compilation Cache.

Decides, one source file at a time, whether an object file left over from a
previous build can be reused. The decision is driven by the Make-style
dependency file (.d) the compiler writes next to each object with -MMD.

Design:
    - Every doubtful case answers "recompile"; the cache never skips on error
    - Equal timestamps count as stale (filesystem mtime resolution is coarse)
    - The .d file is only used for staleness, never to build a rebuild graph
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .errors import DependencyCacheError


# Sources that embed the current time at compile time.
ALWAYS_RECOMPILE = frozenset({"mk20dx128.c"})

_TOKEN = re.compile(r"(?:\\ |\S)+")
# First colon followed by whitespace or end of line; skips drive letters (C:\)
_RULE_SEPARATOR = re.compile(r":(?:\s+|$)")


@dataclass
class DependencyRecord:
    """Parsed contents of a .d file."""

    target: str
    prerequisites: List[str] = field(default_factory=list)


def _logical_lines(text: str) -> List[str]:
    """Join backslash-continued lines and drop blank ones."""
    lines: List[str] = []
    current = ""
    for raw in text.splitlines():
        if raw.endswith("\\"):
            current += raw[:-1] + " "
            continue
        current += raw
        if current.strip():
            lines.append(current.strip())
        current = ""
    if current.strip():
        lines.append(current.strip())
    return lines


def _split_paths(text: str) -> List[str]:
    return [token.replace("\\ ", " ") for token in _TOKEN.findall(text)]


def parse_dependency_record(text: str) -> DependencyRecord:
    """Parse a Make-compatible dependency record.

    Accepts both the one-path-per-line layout and rules with the target and
    prerequisites on one line. Phony rules after the first (``foo.h:``) are
    ignored; any other later line is read as more prerequisites.

    Raises:
        DependencyCacheError: If the first rule has no target
    """
    lines = _logical_lines(text)
    if not lines:
        raise DependencyCacheError("empty dependency record")

    first = lines[0]
    separator = _RULE_SEPARATOR.search(first)
    if separator is None:
        raise DependencyCacheError(f"dependency record does not start with a target: {first!r}")

    target = first[:separator.start()].strip().replace("\\ ", " ")
    if not target:
        raise DependencyCacheError("dependency record has an empty target")

    record = DependencyRecord(target=target)
    record.prerequisites.extend(_split_paths(first[separator.end():]))

    for line in lines[1:]:
        phony = _RULE_SEPARATOR.search(line)
        if phony is not None and not line[phony.end():].strip():
            continue
        record.prerequisites.extend(_split_paths(line))

    return record


def _canonical(path: str) -> str:
    return os.path.normcase(os.path.realpath(path))


class DependencyCache:
    """Staleness checks against objects and .d files from a previous build."""

    def __init__(self, log: Optional[Callable[[str], None]] = None):
        """Initialize cache.

        Args:
            log: Build log callback; reuse notices are sent there when given
        """
        self.log = log

    def needs_recompile(self, source: Path, object_file: Path, dependency_file: Path) -> bool:
        """Check whether source must be compiled again.

        Args:
            source: Source file
            object_file: Object file the source compiles to
            dependency_file: .d file written alongside the object

        Returns:
            True unless the existing object is provably up to date
        """
        source = Path(source)
        object_file = Path(object_file)
        dependency_file = Path(dependency_file)

        if source.name in ALWAYS_RECOMPILE:
            return True

        try:
            if not object_file.exists() or not dependency_file.exists():
                return True

            source_mtime = source.stat().st_mtime_ns
            object_mtime = object_file.stat().st_mtime_ns

            if source_mtime >= object_mtime:
                return True
            if source_mtime >= dependency_file.stat().st_mtime_ns:
                return True

            record = parse_dependency_record(
                dependency_file.read_text(encoding="utf-8", errors="replace")
            )
            if _canonical(record.target) != _canonical(str(object_file)):
                logging.debug(
                    f"Dependency record {dependency_file} describes {record.target}, "
                    f"not {object_file}"
                )
                return True

            for prerequisite in record.prerequisites:
                prerequisite_path = Path(prerequisite)
                if not prerequisite_path.exists():
                    return True
                if prerequisite_path.stat().st_mtime_ns >= object_mtime:
                    return True

        except (OSError, DependencyCacheError) as e:
            logging.debug(f"Recompiling {source.name}: {e}")
            return True

        logging.debug(f"Using previously compiled: {object_file}")
        if self.log is not None:
            self.log(f"  Using previously compiled: {object_file}")
        return False
