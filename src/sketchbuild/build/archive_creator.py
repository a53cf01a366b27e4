"""Core Archive Creator.

This module collects the core's object files into the static library core.a.

Design:
    - One archiver invocation per object, each appending to the growing archive
    - Runs through the ProcessRunner, so archiver output reaches the build log
    - Only core objects are archived; variant objects are linked directly
"""

from pathlib import Path
from typing import List

from .compilation_executor import ProcessRunner
from .flag_builder import archive_command


CORE_ARCHIVE_NAME = "core.a"


class ArchiveCreator:
    """Creates the core static library from object files."""

    def __init__(self, runner: ProcessRunner, ar: str):
        """Initialize archive creator.

        Args:
            runner: Process runner for the archiver invocations
            ar: Archiver executable
        """
        self.runner = runner
        self.ar = ar

    def create_archive(self, archive_path: Path, object_files: List[Path]) -> Path:
        """Append each object file to archive_path.

        Args:
            archive_path: Path of the .a file (created on first append)
            object_files: Objects to add, in order

        Returns:
            Path to the archive

        Raises:
            BuildError: If any archiver invocation fails
        """
        archive_path.parent.mkdir(parents=True, exist_ok=True)

        for obj in object_files:
            self.runner.run(archive_command(self.ar, archive_path, obj))

        return archive_path

    def create_core_archive(self, build_dir: Path, object_files: List[Path]) -> Path:
        """Create <build_dir>/core.a from the core object files."""
        return self.create_archive(Path(build_dir) / CORE_ARCHIVE_NAME, object_files)
