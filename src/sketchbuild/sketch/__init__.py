"""Sketch model and library discovery for sketchbuild."""

from .library_index import LibraryIndex
from .sketch import Sketch, SketchCode, SketchError

__all__ = [
    "Sketch",
    "SketchCode",
    "SketchError",
    "LibraryIndex",
]
