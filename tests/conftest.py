"""Shared fixtures: a fake avr toolchain and a small hardware/libraries tree.

The fake tools are Python scripts that record every invocation in a call log
and produce the files the real tools would (objects, .d files, archives,
images). The compiler reports an error for any source line mentioning BYTE,
honoring #line markers like gcc does.
"""

import json
import os
import sys
from pathlib import Path

import pytest


FAKE_TOOL = '''#!{python}
import json
import os
import re
import sys

CALL_LOG = {call_log!r}
args = sys.argv[1:]
tool = os.path.basename(sys.argv[0])
with open(CALL_LOG, "a") as log:
    log.write(json.dumps([tool] + args) + "\\n")


def touch(path, text=""):
    with open(path, "w") as f:
        f.write(text)


if tool in ("avr-gcc", "avr-g++") and "-c" in args:
    out = args[args.index("-o") + 1]
    source = args[args.index("-o") - 1]
    current_file, line_no = os.path.basename(source), 0
    with open(source, encoding="utf-8", errors="replace") as f:
        for text in f:
            line_no += 1
            marker = re.match(r'#line (\\d+) "([^"]+)"', text)
            if marker:
                current_file, line_no = marker.group(2), int(marker.group(1)) - 1
                continue
            if "BYTE" in text:
                sys.stderr.write(
                    current_file + ":" + str(line_no)
                    + ": error: 'BYTE' was not declared in this scope\\n"
                )
                sys.exit(1)
    touch(out, "object")
    if "-MMD" in args:
        touch(out[:-2] + ".d", out + ": " + source + "\\n")
elif tool == "avr-ar":
    with open(args[1], "a") as f:
        f.write(args[2] + "\\n")
elif "-o" in args:
    touch(args[args.index("-o") + 1], "elf")
else:
    touch(args[-1], "image")
'''

TOOLS = ("avr-gcc", "avr-g++", "avr-ar", "avr-objcopy")


class FakeToolchain:
    """A hardware folder whose tools/avr/bin holds the fake tools."""

    def __init__(self, root: Path):
        self.root = root
        self.hardware_dir = root / "hardware"
        self.provider_dir = self.hardware_dir / "arduino"
        self.core_dir = self.provider_dir / "cores" / "arduino"
        self.variant_dir = self.provider_dir / "variants" / "standard"
        self.bin_dir = self.hardware_dir / "tools" / "avr" / "bin"
        self.libraries_dir = root / "libraries"
        self.call_log = root / "calls.jsonl"

    def create(self) -> "FakeToolchain":
        self.bin_dir.mkdir(parents=True)
        for tool in TOOLS:
            script = self.bin_dir / tool
            script.write_text(FAKE_TOOL.format(python=sys.executable, call_log=str(self.call_log)))
            script.chmod(0o755)

        write(self.provider_dir / "boards.txt", BOARDS_TXT)
        write(self.core_dir / "Arduino.h", "#pragma once\n")
        write(self.core_dir / "main.cpp", '#include "Arduino.h"\nint main() { return 0; }\n')
        write(self.core_dir / "wiring.c", "void init(void) {}\n")
        write(self.core_dir / "wiring_asm.S", "nop\n")
        write(self.variant_dir / "pins_arduino.h", "#pragma once\n")
        write(self.variant_dir / "variant.c", "int variant;\n")

        # Layered library
        servo = self.libraries_dir / "Servo"
        write(servo / "library.properties", "name=Servo\n")
        write(servo / "src" / "Servo.h", "#pragma once\n")
        write(servo / "src" / "Servo.cpp", '#include "Servo.h"\n')
        write(servo / "src" / "avr" / "ServoTimers.cpp", "int timers;\n")

        # Legacy library with a private utility folder
        wire = self.libraries_dir / "Wire"
        write(wire / "Wire.h", "#pragma once\n")
        write(wire / "Wire.cpp", '#include "Wire.h"\n')
        write(wire / "utility" / "twi.h", "#pragma once\n")
        write(wire / "utility" / "twi.c", '#include "twi.h"\n')
        return self

    def make_sketch(self, name: str, body: str) -> Path:
        folder = self.root / "sketches" / name
        write(folder / f"{name}.ino", body)
        return folder

    def calls(self):
        if not self.call_log.exists():
            return []
        return [json.loads(line) for line in self.call_log.read_text().splitlines()]

    def compile_calls(self):
        return [call for call in self.calls() if call[0] in ("avr-gcc", "avr-g++") and "-c" in call]

    def reset_calls(self) -> None:
        if self.call_log.exists():
            self.call_log.unlink()

    def age_sources(self, seconds: int = 100) -> None:
        """Move every source and header into the past, leaving outputs alone."""
        past = int((os.path.getmtime(self.call_log) - seconds) * 1e9)
        for path in self.root.rglob("*"):
            if path.is_file() and path.suffix in (".ino", ".c", ".cpp", ".S", ".h"):
                os.utime(path, ns=(past, past))


BOARDS_TXT = """\
# Test boards
uno.name=Arduino Uno
uno.build.mcu=atmega328p
uno.build.f_cpu=16000000L
uno.build.core=arduino
uno.build.variant=standard

mega.name=Arduino Mega
mega.build.mcu=atmega2560
mega.build.f_cpu=16000000L
mega.build.core=arduino
mega.build.variant=standard
mega.menu.cpu.8mhz=8 MHz
mega.menu.cpu.8mhz.build.f_cpu=8000000L
mega.menu.cpu.16mhz=16 MHz
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def fake_toolchain(tmp_path):
    """Fake toolchain, hardware folder and libraries under tmp_path."""
    if sys.platform == "win32":
        pytest.skip("fake tools rely on shebang scripts")
    return FakeToolchain(tmp_path.resolve()).create()
