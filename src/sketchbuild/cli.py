"""
Command-line interface for sketchbuild.

This module provides the `sketchbuild` CLI tool for building sketches.
"""

import argparse
import logging
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sketchbuild import __version__
from sketchbuild.build import BuildOrchestrator
from sketchbuild.cli_utils import (
    BuildProgressBar,
    ErrorFormatter,
    MenuSelectionParser,
    PathValidator,
)
from sketchbuild.config import BoardConfigError, BuildConfiguration, HardwareTargets
from sketchbuild.sketch import LibraryIndex, Sketch, SketchError


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    sketch_dir: Path
    hardware_dir: Path
    board: str
    provider: str = "arduino"
    menu: List[str] = field(default_factory=list)
    libraries: List[Path] = field(default_factory=list)
    build_dir: Optional[Path] = None
    clean: bool = False
    verbose: bool = False


def default_build_dir(sketch_dir: Path, board: str) -> Path:
    return sketch_dir.resolve() / ".sketchbuild" / "build" / board


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def build_command(args: BuildArgs) -> None:
    """Build a sketch.

    Examples:
        sketchbuild build Blink --hardware ~/arduino/hardware --board uno
        sketchbuild build Blink --hardware hw --board teensy31 --provider teensy --menu usb=serial
        sketchbuild build Blink --hardware hw --board uno --libraries ~/arduino/libraries
    """
    print(f"sketchbuild v{__version__}")
    print()

    try:
        targets = HardwareTargets(args.hardware_dir, args.provider)
        config = BuildConfiguration.from_boards_txt(
            targets.boards_txt, args.board, MenuSelectionParser.parse(args.menu)
        )

        sketch = Sketch(args.sketch_dir, library_index=LibraryIndex(args.libraries))
        build_dir = args.build_dir or default_build_dir(args.sketch_dir, args.board)

        if args.clean and build_dir.exists():
            shutil.rmtree(build_dir)

        if args.verbose:
            print(f"Sketch: {sketch.folder}")
            print(f"Board: {config!r}")
            print(f"Build directory: {build_dir}")
            for library in sketch.imported_libraries:
                print(f"Library: {library}")
            print()

        progress = BuildProgressBar(enabled=not args.verbose)
        try:
            orchestrator = BuildOrchestrator(
                config,
                targets,
                verbose=args.verbose,
                log_callback=progress.log,
                progress_callback=progress.update,
            )
            result = orchestrator.build(sketch, build_dir)
        finally:
            progress.close()

        if result.success:
            ErrorFormatter.print_success("Build successful!")
            print()
            print(f"Firmware: {result.hex_path}")
            print(f"EEPROM:   {result.eep_path}")
            print(f"Compiled: {result.compiled_count} file(s), reused: {result.reused_count}")
            print(f"Build time: {result.build_time:.2f}s")
            sys.exit(0)

        if result.diagnostic is not None:
            ErrorFormatter.print_error("Build failed!", ErrorFormatter.format_diagnostic(result.diagnostic))
        else:
            ErrorFormatter.print_error("Build failed!", result.message)
        sys.exit(1)

    except (BoardConfigError, SketchError, ValueError) as e:
        ErrorFormatter.print_error("Error", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def main(argv: Optional[List[str]] = None) -> None:
    """sketchbuild - build Arduino-style sketches with an external toolchain."""
    parser = argparse.ArgumentParser(
        prog="sketchbuild",
        description="sketchbuild - incremental sketch build orchestrator",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sketchbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser(
        "build",
        help="Build a sketch into .elf/.eep/.hex images",
    )
    build_parser.add_argument(
        "sketch_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Sketch folder (default: current directory)",
    )
    build_parser.add_argument(
        "--hardware",
        dest="hardware_dir",
        type=Path,
        required=True,
        help="Hardware folder containing provider folders and tools/",
    )
    build_parser.add_argument(
        "-b",
        "--board",
        required=True,
        help="Board identifier from boards.txt (e.g., uno)",
    )
    build_parser.add_argument(
        "--provider",
        default="arduino",
        help="Hardware provider folder (default: arduino)",
    )
    build_parser.add_argument(
        "-m",
        "--menu",
        action="append",
        default=[],
        metavar="MENU=OPTION",
        help="Board menu selection, repeatable (e.g., --menu cpu=8mhz)",
    )
    build_parser.add_argument(
        "-l",
        "--libraries",
        action="append",
        type=Path,
        default=[],
        metavar="DIR",
        help="Folder of libraries to resolve #includes against, repeatable",
    )
    build_parser.add_argument(
        "-o",
        "--build-dir",
        type=Path,
        default=None,
        help="Build directory (default: <sketch>/.sketchbuild/build/<board>)",
    )
    build_parser.add_argument(
        "-c",
        "--clean",
        action="store_true",
        help="Remove the build directory before building",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show commands and unfiltered tool output",
    )

    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(parsed_args.verbose)

    if parsed_args.command == "build":
        PathValidator.validate_dir(parsed_args.sketch_dir, "Sketch folder")
        PathValidator.validate_dir(parsed_args.hardware_dir, "Hardware folder")
        build_args = BuildArgs(
            sketch_dir=parsed_args.sketch_dir,
            hardware_dir=parsed_args.hardware_dir,
            board=parsed_args.board,
            provider=parsed_args.provider,
            menu=parsed_args.menu,
            libraries=parsed_args.libraries,
            build_dir=parsed_args.build_dir,
            clean=parsed_args.clean,
            verbose=parsed_args.verbose,
        )
        build_command(build_args)


if __name__ == "__main__":
    main()
