"""
Source file discovery.

This module handles:
- Finding assembly, C and C++ sources in a folder (optionally recursive)
- Grouping them into a SourceSet per compilation unit group
- Telling the two library layouts apart and picking their include roots
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


ASM_EXTENSION = "S"
C_EXTENSION = "c"
CPP_EXTENSION = "cpp"

LIBRARY_MANIFEST = "library.properties"
LIBRARY_SOURCE_DIR = "src"
LIBRARY_UTILITY_DIR = "utility"


def find_files_in_folder(folder: Path, extension: str, recurse: bool = False) -> List[Path]:
    """
    Find files with the given extension.

    Hidden entries (names starting with ".") are skipped, including hidden
    sub-folders when recursing. Results are sorted per folder so builds are
    reproducible.

    Args:
        folder: Folder to search
        extension: Extension without the dot (case-sensitive: "S" != "s")
        recurse: Descend into sub-folders

    Returns:
        Matching file paths (empty if folder does not exist)
    """
    folder = Path(folder)
    if not folder.is_dir():
        return []

    files = []
    for entry in sorted(folder.iterdir()):
        if entry.name.startswith("."):
            continue

        if entry.name.endswith("." + extension) and entry.is_file():
            files.append(entry)

        if recurse and entry.is_dir():
            files.extend(find_files_in_folder(entry, extension, True))

    return files


def find_subfolders(folder: Path) -> List[Path]:
    """List non-hidden sub-folders, sorted."""
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return sorted(
        entry for entry in folder.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


@dataclass
class SourceSet:
    """Sources of one compilation unit group, partitioned by kind."""

    asm: List[Path] = field(default_factory=list)
    c: List[Path] = field(default_factory=list)
    cpp: List[Path] = field(default_factory=list)

    @classmethod
    def scan(cls, folder: Path, recurse: bool = False) -> "SourceSet":
        """Collect the sources of a folder."""
        return cls(
            asm=find_files_in_folder(folder, ASM_EXTENSION, recurse),
            c=find_files_in_folder(folder, C_EXTENSION, recurse),
            cpp=find_files_in_folder(folder, CPP_EXTENSION, recurse),
        )


def is_layered_library(library_dir: Path) -> bool:
    """True for libraries with a manifest and a dedicated src/ folder."""
    library_dir = Path(library_dir)
    return (library_dir / LIBRARY_MANIFEST).is_file() and (library_dir / LIBRARY_SOURCE_DIR).is_dir()


def library_include_root(library_dir: Path) -> Path:
    """Public include directory of a library: src/ for layered, else the root."""
    library_dir = Path(library_dir)
    if is_layered_library(library_dir):
        return library_dir / LIBRARY_SOURCE_DIR
    return library_dir


def header_list_from_include_path(library_dir: Path) -> List[str]:
    """
    Header names a library exposes at the top of its include root.

    Headers in sub-folders are not listed: they are included from the
    top-level headers, not by sketches.

    Raises:
        OSError: If the include root cannot be listed
    """
    include_root = library_include_root(library_dir)
    return sorted(
        entry.name for entry in include_root.iterdir()
        if entry.is_file() and entry.name.endswith(".h")
    )
