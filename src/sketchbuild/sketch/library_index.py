"""
Library header index.

Maps header file names to the library folder that provides them, so the
libraries a sketch imports can be worked out from its #include lines.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..build.source_scanner import find_subfolders, header_list_from_include_path


class LibraryIndex:
    """
    Header-to-library lookup over one or more libraries folders.

    Folders are indexed in order; a header provided by a library in a later
    folder replaces the earlier entry, so user libraries listed last take
    priority over bundled ones.
    """

    def __init__(self, libraries_dirs: Iterable[Path] = ()):
        self.libraries_dirs = [Path(d) for d in libraries_dirs]
        self._headers: Dict[str, Path] = {}
        for libraries_dir in self.libraries_dirs:
            self.add_libraries_dir(libraries_dir)

    def add_libraries_dir(self, libraries_dir: Path) -> None:
        """Index every library found directly under libraries_dir."""
        for library_dir in find_subfolders(libraries_dir):
            try:
                headers = header_list_from_include_path(library_dir)
            except OSError as e:
                logging.warning(f"Skipping library {library_dir}: {e}")
                continue
            for header in headers:
                self._headers[header] = library_dir.resolve()

    def library_for(self, header: str) -> Optional[Path]:
        """Library folder providing header, or None."""
        return self._headers.get(header)

    def libraries_for(self, headers: Iterable[str]) -> List[Path]:
        """Libraries for a sequence of headers, de-duplicated in first-seen order."""
        libraries: List[Path] = []
        for header in headers:
            library = self.library_for(header)
            if library is not None and library not in libraries:
                libraries.append(library)
        return libraries
