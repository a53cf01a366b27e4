"""Toolchain Command Builder.

This module builds the argument vectors for every toolchain invocation of a
build, from the board's BuildConfiguration.

Design:
    - Pure functions: same inputs, same command (except TIME_T / SERIALNUM,
      which are time- and random-derived by definition)
    - Architecture and define flags come before the numbered extra options
    - Include flags sit immediately before the source path; gcc keeps the
      first -I match, so the IncludePathStack order is passed through as is
"""

import calendar
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from ..config.board_config import BuildConfiguration


# Toolchain protocol revision passed to every compile as -DARDUINO=
ARDUINO_REVISION = "105"

DEFAULT_COMMANDS = {
    "gcc": "avr-gcc",
    "g++": "avr-g++",
    "ar": "avr-ar",
    "objcopy": "avr-objcopy",
}

# MCUs that need linker relaxation to link larger programs
RELAX_MCUS = frozenset({"atmega2560"})


@dataclass(frozen=True)
class ToolCommands:
    """Resolved executable paths for one build."""

    gcc: str
    gpp: str
    ar: str
    objcopy: str

    @classmethod
    def from_config(
        cls, config: BuildConfiguration, bin_dir: Optional[Path] = None
    ) -> "ToolCommands":
        """Resolve tool names (``build.command.*`` overrides) against bin_dir.

        Without a bin_dir the bare names are used and looked up on PATH.
        """
        def resolve(key: str) -> str:
            name = config.get(f"build.command.{key}") or DEFAULT_COMMANDS[key]
            return str(Path(bin_dir) / name) if bin_dir else name

        return cls(
            gcc=resolve("gcc"),
            gpp=resolve("g++"),
            ar=resolve("ar"),
            objcopy=resolve("objcopy"),
        )


def arch_flag(config: BuildConfiguration) -> str:
    """-mcpu= when the board names a CPU, else -mmcu=."""
    cpu = config.get("build.cpu")
    if cpu is not None:
        return f"-mcpu={cpu}"
    return f"-mmcu={config.get('build.mcu')}"


def local_time_t() -> int:
    """Current local wall-clock time as seconds since the epoch."""
    return calendar.timegm(time.localtime())


def _usb_defines(config: BuildConfiguration) -> List[str]:
    defines = []
    if config.get("build.vid") is not None:
        defines.append(f"-DUSB_VID={config['build.vid']}")
    if config.get("build.pid") is not None:
        defines.append(f"-DUSB_PID={config['build.pid']}")
    return defines


def _cpu_define(config: BuildConfiguration) -> List[str]:
    f_cpu = config.get("build.f_cpu")
    return [f"-DF_CPU={f_cpu}"] if f_cpu is not None else []


def _include_flags(include_paths: Iterable[Path]) -> List[str]:
    return [f"-I{path}" for path in include_paths]


def asm_command(
    gcc: str,
    include_paths: Iterable[Path],
    source: Path,
    object_file: Path,
    config: BuildConfiguration,
) -> List[str]:
    """Command for assembling a .S file (run through the C preprocessor)."""
    cmd = [
        gcc,
        "-c",
        "-g",
        "-x", "assembler-with-cpp",
        arch_flag(config),
    ]
    cmd.extend(_cpu_define(config))
    cmd.append(f"-DARDUINO={ARDUINO_REVISION}")
    cmd.extend(_usb_defines(config))
    cmd.extend(config.numbered("build.option"))
    cmd.extend(config.menu_defines())
    cmd.extend(_include_flags(include_paths))
    cmd.extend([str(source), "-o", str(object_file)])
    return cmd


def c_command(
    gcc: str,
    include_paths: Iterable[Path],
    source: Path,
    object_file: Path,
    config: BuildConfiguration,
    verbose: bool = False,
) -> List[str]:
    """Command for compiling a .c file; writes a .d file next to the object."""
    cmd = [
        gcc,
        "-c",
        "-g",
        "-Os",
        "-Wall" if verbose else "-w",
        "-ffunction-sections",
        "-fdata-sections",
        arch_flag(config),
    ]
    cmd.extend(_cpu_define(config))
    cmd.append("-MMD")
    cmd.extend(_usb_defines(config))
    cmd.append(f"-DARDUINO={ARDUINO_REVISION}")
    cmd.extend(config.numbered("build.option"))
    if config.get("build.thumb") is not None:
        cmd.append("-mthumb")
    if config.get("build.time_t") is not None:
        cmd.append(f"-DTIME_T={local_time_t()}")
    cmd.extend(config.menu_defines())
    if config.flag("build.serial_number"):
        cmd.append(f"-DSERIALNUM={random.randint(-2**31, 2**31 - 1)}")
    cmd.extend(_include_flags(include_paths))
    cmd.extend([str(source), "-o", str(object_file)])
    return cmd


def cpp_command(
    gpp: str,
    include_paths: Iterable[Path],
    source: Path,
    object_file: Path,
    config: BuildConfiguration,
    verbose: bool = False,
) -> List[str]:
    """Command for compiling a .cpp file; writes a .d file next to the object."""
    cmd = [
        gpp,
        "-c",
        "-g",
        "-Os",
        "-Wall" if verbose else "-w",
        "-fno-exceptions",
        "-ffunction-sections",
        "-fdata-sections",
        arch_flag(config),
    ]
    cmd.extend(_cpu_define(config))
    cmd.append("-MMD")
    cmd.extend(_usb_defines(config))
    cmd.append(f"-DARDUINO={ARDUINO_REVISION}")
    cmd.extend(config.numbered("build.option"))
    cmd.extend(config.numbered("build.cppoption"))
    if config.flag("build.elide_constructors"):
        cmd.append("-felide-constructors")
    if config.flag("build.cpp0x"):
        cmd.append("-std=c++0x")
    if config.flag("build.gnu0x"):
        cmd.append("-std=gnu++0x")
    cmd.extend(config.menu_defines())
    cmd.extend(_include_flags(include_paths))
    cmd.extend([str(source), "-o", str(object_file)])
    return cmd


def archive_command(ar: str, archive: Path, object_file: Path) -> List[str]:
    """Append one object to the archive (r=insert, c=create, s=index)."""
    return [ar, "rcs", str(archive), str(object_file)]


def needs_linker_relaxation(config: BuildConfiguration) -> bool:
    return config.get("build.mcu") in RELAX_MCUS or config.flag("build.linker_relaxation")


def link_command(
    gcc: str,
    config: BuildConfiguration,
    core_dir: Path,
    build_dir: Path,
    elf: Path,
    objects: Iterable[Path],
    core_archive: Optional[Path],
    core_objects: Iterable[Path] = (),
) -> List[str]:
    """Command that links everything into the .elf.

    Args:
        gcc: Compiler driver used as linker
        config: Board configuration
        core_dir: Core directory (linker scripts are relative to it)
        build_dir: Build directory (added as a library search path)
        elf: Output .elf path
        objects: Sketch, library and variant objects, in link order
        core_archive: core.a to link, or None to link core_objects directly
        core_objects: Raw core objects, used when core_archive is None
    """
    gc_sections = "-Wl,--gc-sections"
    if needs_linker_relaxation(config):
        gc_sections += ",--relax"

    cmd = [gcc, "-Os", gc_sections, arch_flag(config)]
    cmd.extend(config.numbered("build.linkoption"))

    linker_script = config.get("build.linkscript")
    if linker_script is not None:
        cmd.append(f"-T{Path(core_dir) / linker_script}")

    cmd.extend(["-o", str(elf)])
    cmd.extend(str(obj) for obj in objects)

    if core_archive is not None:
        cmd.append(str(core_archive))
    else:
        cmd.extend(str(obj) for obj in core_objects)

    cmd.append(f"-L{build_dir}")
    cmd.extend(config.numbered("build.additionalobject"))
    cmd.append("-lm")
    return cmd


def elf_patch_command(tool: Path, config: BuildConfiguration, elf: Path, sketch_dir: Path) -> List[str]:
    return [
        str(tool),
        f"-mmcu={config.get('build.mcu')}",
        str(elf),
        str(Path(sketch_dir) / "disk"),
    ]


def eeprom_command(objcopy: str, elf: Path, eep: Path) -> List[str]:
    """Extract only the .eeprom section, loaded at address zero."""
    return [
        objcopy,
        "-O", "ihex",
        "-j", ".eeprom",
        "--set-section-flags=.eeprom=alloc,load",
        "--no-change-warnings",
        "--change-section-lma", ".eeprom=0",
        str(elf),
        str(eep),
    ]


def hex_command(objcopy: str, elf: Path, hex_path: Path) -> List[str]:
    """Extract the flash image, dropping the .eeprom section."""
    return [
        objcopy,
        "-O", "ihex",
        "-R", ".eeprom",
        str(elf),
        str(hex_path),
    ]


def post_compile_command(
    script: Path, board_id: str, tools_dir: Path, build_dir: Path, output_name: str
) -> List[str]:
    return [
        str(script),
        f"-board={board_id}",
        f"-tools={tools_dir}",
        f"-path={build_dir}",
        f"-file={output_name}",
    ]
