"""CLI utility functions for sketchbuild.

This module provides common utilities used by the CLI including:
- Error and diagnostic formatting
- Board menu selection parsing
- Progress display
- Path validation
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from sketchbuild.build.diagnostics import Diagnostic


class MenuSelectionParser:
    """Parses ``--menu KEY=VALUE`` arguments."""

    @staticmethod
    def parse(selections: Optional[List[str]]) -> Dict[str, str]:
        """Parse menu selections.

        Args:
            selections: Strings like "cpu=8mhz" or "usb=serial"

        Returns:
            Menu name to option mapping

        Raises:
            ValueError: If an entry has no "=" or an empty menu name
        """
        result: Dict[str, str] = {}
        for selection in selections or []:
            if "=" not in selection:
                raise ValueError(f"Invalid menu selection '{selection}', expected MENU=OPTION")
            menu, option = selection.split("=", 1)
            menu = menu.strip()
            if not menu:
                raise ValueError(f"Invalid menu selection '{selection}', menu name is empty")
            result[menu] = option.strip()
        return result


class BuildProgressBar:
    """Percentage progress bar for a build, with tool output printed above it."""

    def __init__(self, enabled: bool = True):
        self._bar = tqdm(
            total=100,
            desc="Compiling",
            unit="%",
            bar_format="{desc}: {percentage:3.0f}%|{bar}|",
            disable=not enabled,
            file=sys.stderr,
        )
        self._last = 0

    def update(self, percent: int) -> None:
        if percent > self._last:
            self._bar.update(percent - self._last)
            self._last = percent

    def log(self, line: str) -> None:
        tqdm.write(line, file=sys.stderr)

    def close(self) -> None:
        self._bar.close()


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def format_diagnostic(diagnostic: Diagnostic) -> str:
        """Render a diagnostic as 'tab:line: message' plus its explanatory note."""
        if diagnostic.location is not None:
            where = f"{diagnostic.location.file_name}:{diagnostic.location.line + 1}: "
        elif diagnostic.source_file is not None:
            where = f"{diagnostic.source_file}:{diagnostic.source_line}: "
        else:
            where = ""
        text = f"{where}{diagnostic.message}"
        if diagnostic.note:
            text += "\n" + diagnostic.note.strip("\n")
        return text

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates CLI paths."""

    @staticmethod
    def validate_dir(path: Path, what: str) -> None:
        """Exit with status 2 unless path is an existing directory."""
        if not path.exists():
            print(f"{ErrorFormatter.RED}✗ Error: {what} does not exist: {path}{ErrorFormatter.RESET}")
            sys.exit(2)
        if not path.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: {what} is not a directory: {path}{ErrorFormatter.RESET}")
            sys.exit(2)
