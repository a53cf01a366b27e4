"""
Sketch model.

A sketch is a folder named after its primary tab (``Blink/Blink.ino``) with
optional extra tabs. This module:
- Loads the tabs of a sketch folder
- Writes the build-ready sources into the build directory
- Maps compiler file/line pairs back to a tab and line
- Works out which libraries the sketch imports
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..build.diagnostics import SourceReference
from .library_index import LibraryIndex


class SketchError(Exception):
    """Exception raised for unusable sketch folders."""

    pass


SKETCH_EXTENSIONS = ("ino", "pde")
OTHER_EXTENSIONS = ("c", "cpp", "h", "S")

PREAMBLE = '#include "Arduino.h"\n'

_INCLUDE = re.compile(r'^\s*#\s*include\s*[<"]([^>"]+)[>"]', re.MULTILINE)


@dataclass
class SketchCode:
    """One tab of a sketch."""

    path: Path
    # First line of this tab inside the merged .cpp (merged tabs only)
    preproc_offset: Optional[int] = None
    line_count: int = 0

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return self.path.suffix[1:]

    def is_extension(self, *extensions: str) -> bool:
        return self.extension in extensions

    def read(self) -> str:
        # Undecodable bytes survive the round trip into the merged source
        return self.path.read_text(encoding="utf-8", errors="surrogateescape")


def _write_if_changed(path: Path, content: bytes) -> bool:
    """Write content unless the file already holds exactly it.

    Unchanged files keep their modification time, so the incremental cache
    can reuse their objects.
    """
    if path.is_file() and path.read_bytes() == content:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return True


class Sketch:
    """
    A sketch folder and its tabs.

    Usage:
        sketch = Sketch(Path("Blink"), library_index=LibraryIndex([libs]))
        sketch.prepare(build_dir)          # writes Blink.cpp into build_dir
        sketch.imported_libraries          # [Path(".../libraries/Servo")]
    """

    def __init__(
        self,
        folder: Path,
        library_index: Optional[LibraryIndex] = None,
        libraries: Optional[List[Path]] = None,
    ):
        """
        Load a sketch.

        Args:
            folder: Sketch folder
            library_index: Used to find imported libraries from #include lines
            libraries: Explicit imported libraries (skips #include detection)

        Raises:
            SketchError: If the folder has no primary tab, or a tab would be
                overwritten by the merged source
        """
        self.folder = Path(folder).resolve()
        self.name = self.folder.name
        self.library_index = library_index
        self._libraries = [Path(p).resolve() for p in libraries] if libraries is not None else None

        primary = None
        for extension in SKETCH_EXTENSIONS:
            candidate = self.folder / f"{self.name}.{extension}"
            if candidate.is_file():
                primary = candidate
                break
        if primary is None:
            raise SketchError(
                f"No {self.name}.ino found in {self.folder}. "
                "The main sketch file must be named after its folder."
            )

        others = sorted(
            entry for entry in self.folder.iterdir()
            if entry.is_file()
            and entry != primary
            and not entry.name.startswith(".")
            and entry.suffix[1:] in SKETCH_EXTENSIONS + OTHER_EXTENSIONS
        )
        self.code: List[SketchCode] = [SketchCode(primary)] + [SketchCode(p) for p in others]

        clash = self.folder / self.primary_class_name
        if clash in others:
            raise SketchError(
                f"The sketch already contains a file named {clash.name}; "
                "rename it, the merged sketch source uses that name."
            )

    @property
    def primary_class_name(self) -> str:
        """File name of the merged source written into the build directory."""
        return f"{self.name}.cpp"

    def prepare(self, build_dir: Path) -> Path:
        """
        Write the sketch's sources into build_dir.

        Merged tabs (.ino/.pde, primary first) are concatenated behind the
        Arduino.h preamble into <name>.cpp with #line markers; other tabs are
        copied as-is. Files are only rewritten when their content changed.

        Returns:
            Path to the merged source
        """
        build_dir = Path(build_dir)
        build_dir.mkdir(parents=True, exist_ok=True)

        merged = [PREAMBLE]
        line = PREAMBLE.count("\n")
        for code in self.code:
            if not code.is_extension(*SKETCH_EXTENSIONS):
                continue
            text = code.read()
            if not text.endswith("\n"):
                text += "\n"
            merged.append(f'#line 1 "{code.file_name}"\n')
            line += 1
            code.preproc_offset = line
            code.line_count = text.count("\n")
            merged.append(text)
            line += code.line_count

        merged_path = build_dir / self.primary_class_name
        _write_if_changed(merged_path, "".join(merged).encode("utf-8", errors="surrogateescape"))

        for code in self.code:
            if code.is_extension(*OTHER_EXTENSIONS):
                _write_if_changed(build_dir / code.file_name, code.path.read_bytes())

        return merged_path

    def place_error(self, message: str, file_name: str, line: int) -> Optional[SourceReference]:
        """
        Map a compiler location to a tab.

        Args:
            message: Error message (unused for placement, kept for callers)
            file_name: File name as printed by the compiler
            line: Zero-based line in that file

        Returns:
            SourceReference, or None if the location is not in the sketch
        """
        if file_name == self.primary_class_name:
            for index, code in enumerate(self.code):
                if code.preproc_offset is None:
                    continue
                relative = line - code.preproc_offset
                if 0 <= relative < code.line_count:
                    return SourceReference(index, relative, code.file_name)
            return None

        for index, code in enumerate(self.code):
            if code.file_name == file_name:
                return SourceReference(index, line, code.file_name)

        return None

    def included_headers(self) -> List[str]:
        """Headers named in #include lines of all tabs, in first-seen order."""
        headers: List[str] = []
        for code in self.code:
            for header in _INCLUDE.findall(code.read()):
                if header not in headers:
                    headers.append(header)
        return headers

    @property
    def imported_libraries(self) -> List[Path]:
        """Library folders this sketch imports, in import order."""
        if self._libraries is not None:
            return list(self._libraries)
        if self.library_index is None:
            return []
        return self.library_index.libraries_for(self.included_headers())

    def __repr__(self) -> str:
        return f"Sketch(name='{self.name}', tabs={len(self.code)})"
