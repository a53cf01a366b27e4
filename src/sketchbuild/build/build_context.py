"""Per-build state.

Holds everything that lives for exactly one build attempt: the build
directory, the verbose flag, whether the sketch stage is finished, the include
path stack, and the single promoted diagnostic slot.
"""

import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .diagnostics import Diagnostic


LogCallback = Callable[[str], None]


def stderr_log(line: str) -> None:
    """Default build log: tool output goes to stderr, like the tools themselves."""
    print(line, file=sys.stderr)


class IncludePathStack:
    """Ordered include directories.

    Order is the compiler's -I search order, so it is never sorted or
    de-duplicated. Library-private directories are pushed for the duration of
    one library and popped afterwards.
    """

    def __init__(self, paths: Optional[List[Path]] = None):
        self._paths: List[Path] = [Path(p) for p in (paths or [])]

    def push(self, path: Path) -> None:
        self._paths.append(Path(path))

    def pop(self) -> Path:
        return self._paths.pop()

    @contextmanager
    def scoped(self, path: Path) -> Iterator["IncludePathStack"]:
        """Make path visible only inside the with-block."""
        self.push(path)
        try:
            yield self
        finally:
            self.pop()

    def as_list(self) -> List[Path]:
        return list(self._paths)

    def __iter__(self):
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IncludePathStack):
            return self._paths == other._paths
        return NotImplemented

    def __repr__(self) -> str:
        return f"IncludePathStack({[str(p) for p in self._paths]})"


class BuildContext:
    """State shared by the orchestrator, process runner and translator.

    The promoted diagnostic is written from the process runner's drain
    threads; try_promote() makes the first writer win.
    """

    def __init__(
        self,
        build_dir: Path,
        verbose: bool = False,
        log_callback: Optional[LogCallback] = None,
    ):
        self.build_dir = Path(build_dir)
        self.verbose = verbose
        self.sketch_compiled = False
        self._log_callback = log_callback or stderr_log
        self._lock = threading.RLock()
        self._promoted: Optional[Diagnostic] = None

    @property
    def promoted_diagnostic(self) -> Optional[Diagnostic]:
        with self._lock:
            return self._promoted

    def try_promote(self, diagnostic: Diagnostic) -> bool:
        """Promote diagnostic unless one was promoted already.

        Returns:
            True if this diagnostic became the build's failure cause
        """
        with self._lock:
            if self._promoted is not None:
                return False
            self._promoted = diagnostic
            return True

    def log(self, line: str) -> None:
        """Forward one line to the build log."""
        with self._lock:
            self._log_callback(line)
