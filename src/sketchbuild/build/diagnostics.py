"""Compiler Diagnostic Translation.

This module turns raw toolchain output into structured diagnostics.

Design:
    - Line-oriented: every line of tool output passes through observe()
    - Known historical API-break messages are rewritten from a static table
    - Only errors seen while compiling the sketch are mapped to a source location
    - The first mapped diagnostic of a build is promoted as the failure cause
    - Every line still reaches the build log
"""

import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

if TYPE_CHECKING:
    from .build_context import BuildContext


@dataclass(frozen=True)
class SourceReference:
    """A location inside the sketch: owning tab index and zero-based line."""

    code_index: int
    line: int
    file_name: str


@dataclass
class Diagnostic:
    """A structured error extracted from tool output."""

    source_file: Optional[str]
    source_line: Optional[int]  # 1-based, as reported by the tool
    raw_message: str
    friendly_message: Optional[str] = None
    note: str = ""
    location: Optional[SourceReference] = None

    @property
    def message(self) -> str:
        """Message to show the user (friendly replacement if any)."""
        return self.friendly_message or self.raw_message


@dataclass(frozen=True)
class KnownMessage:
    """Replacement text for a known compiler message."""

    error: Optional[str]
    note: str = ""


class SourceLocator(Protocol):
    """Maps a (file name, zero-based line) reported by the compiler to the sketch."""

    def place_error(
        self, message: str, file_name: str, line: int
    ) -> Optional[SourceReference]:
        ...


KNOWN_MESSAGES: Dict[str, KnownMessage] = {
    "SPI.h: No such file or directory": KnownMessage(
        "Please import the SPI library from the Sketch > Import Library menu.",
        "\nAs of Arduino 0019, the Ethernet library depends on the SPI library."
        "\nYou appear to be using it or another library that depends on the SPI library.\n\n",
    ),
    "'BYTE' was not declared in this scope": KnownMessage(
        "The 'BYTE' keyword is no longer supported.",
        "\nAs of Arduino 1.0, the 'BYTE' keyword is no longer supported."
        "\nPlease use Serial.write() instead.\n\n",
    ),
    "no matching function for call to 'Server::Server(int)'": KnownMessage(
        "The Server class has been renamed EthernetServer.",
        "\nAs of Arduino 1.0, the Server class in the Ethernet library "
        "has been renamed to EthernetServer.\n\n",
    ),
    "no matching function for call to 'Client::Client(byte [4], int)'": KnownMessage(
        "The Client class has been renamed EthernetClient.",
        "\nAs of Arduino 1.0, the Client class in the Ethernet library "
        "has been renamed to EthernetClient.\n\n",
    ),
    "'Udp' was not declared in this scope": KnownMessage(
        "The Udp class has been renamed EthernetUdp.",
        "\nAs of Arduino 1.0, the Udp class in the Ethernet library "
        "has been renamed to EthernetUdp.\n\n",
    ),
    "'class TwoWire' has no member named 'send'": KnownMessage(
        "Wire.send() has been renamed Wire.write().",
        "\nAs of Arduino 1.0, the Wire.send() function was renamed "
        "to Wire.write() for consistency with other libraries.\n\n",
    ),
    "'class TwoWire' has no member named 'receive'": KnownMessage(
        "Wire.receive() has been renamed Wire.read().",
        "\nAs of Arduino 1.0, the Wire.receive() function was renamed "
        "to Wire.read() for consistency with other libraries.\n\n",
    ),
    "'Mouse' was not declared in this scope": KnownMessage(
        "'Mouse' only supported on the Arduino Leonardo",
    ),
    "'Keyboard' was not declared in this scope": KnownMessage(
        "'Keyboard' only supported on the Arduino Leonardo",
    ),
}


# Core whose USB personality is picked from a board menu.
USB_TYPE_CORE = "teensy"


def _usb_hints() -> Dict[str, str]:
    hints = {
        "'Keyboard' was not declared in this scope":
            "\nTo make a USB Keyboard, please select Keyboard from the Tools -> USB Type menu\n\n",
        "'Mouse' was not declared in this scope":
            "\nTo make a USB Mouse, please select Mouse from the Tools -> USB Type menu\n\n",
        "'Joystick' was not declared in this scope":
            "\nTo make a USB Joystick, please select Joystick from the Tools -> USB Type menu\n\n",
        "'Disk' was not declared in this scope":
            "\nTo make a USB Disk, please select Disk from the Tools -> USB Type menu\n\n",
        "'usbMIDI' was not declared in this scope":
            "\nTo make a USB MIDI device, please select MIDI from the Tools -> USB Type menu\n\n",
        "'RawHID' was not declared in this scope":
            "\nTo make a RawHID device, please select RawHID from the Tools -> USB Type menu\n\n",
    }
    flight_sim = (
        "\nTo make a Flight Simulator device, please select Flight Sim Controls "
        "from the Tools -> USB Type menu\n\n"
    )
    for message in (
        "'FlightSimCommand' does not name a type",
        "'FlightSimInteger' does not name a type",
        "'FlightSimFloat' does not name a type",
        "'FlightSim' was not declared in this scope",
    ):
        hints[message] = flight_sim

    # Newer gcc quotes identifiers with typographic quotes
    for message in list(hints):
        typographic = re.sub(r"'([^']*)'", "‘\\1’", message, count=1)
        hints[typographic] = hints[message]
    return hints


USB_TYPE_HINTS: Dict[str, str] = _usb_hints()


# Link failures of the bundled robot library when SPI/Wire were not imported.
LINK_HINTS = (
    (
        "undefined reference to `SPIClass::begin()'",
        "libraries/Robot_Control",
        "Please import the SPI library from the Sketch > Import Library menu.",
    ),
    (
        "undefined reference to `Wire'",
        "libraries/Robot_Control",
        "Please import the Wire library from the Sketch > Import Library menu.",
    ),
)


def lookup_known_message(message: str, core: Optional[str] = None) -> Optional[KnownMessage]:
    """Find the replacement for a compiler message, if it is a known one.

    Args:
        message: Error text as extracted from the compiler line
        core: Active platform core (enables USB type hints for the teensy core)

    Returns:
        KnownMessage, or None if the message is not in the table
    """
    message = message.strip()
    known = KNOWN_MESSAGES.get(message)

    if core == USB_TYPE_CORE and message in USB_TYPE_HINTS:
        error = known.error if known else None
        known = KnownMessage(error, USB_TYPE_HINTS[message])

    return known


class DiagnosticTranslator:
    """Parses tool output into diagnostics for one build attempt.

    observe() is called from both drain threads of the process runner, so all
    state shared between lines lives on the BuildContext, which serializes
    promotion and logging.
    """

    ERROR_PATTERNS = (
        re.compile(r"([\w\d_]+\.\w+):(\d+):\s*error:\s*(.*)\s*"),
        re.compile(r"([\w\d_]+\.\w+):(\d+):\d+:\s*error:\s*(.*)\s*"),
    )

    def __init__(
        self,
        context: "BuildContext",
        locator: Optional[SourceLocator] = None,
        core: Optional[str] = None,
    ):
        """Initialize translator.

        Args:
            context: Per-build context (build dir, verbose flag, promotion slot)
            locator: Maps compiler file/line pairs back to sketch tabs
            core: Active platform core name
        """
        self.context = context
        self.locator = locator
        self.core = core
        self.diagnostics: List[Diagnostic] = []

    def first_diagnostic(self) -> Optional[Diagnostic]:
        return self.context.promoted_diagnostic

    def observe(self, line: str) -> None:
        """Process one line of tool output."""
        line = line.rstrip("\r\n")

        if not self.context.verbose:
            line = self._strip_build_dir(line)

        pieces = self._match_error(line)
        if pieces is not None:
            line = self._handle_error(line, *pieces)

        self._check_link_hints(line)
        self.context.log(line)

    def _strip_build_dir(self, line: str) -> str:
        # Literal removal; the build path may contain regex metacharacters
        prefix = str(self.context.build_dir) + os.sep
        index = line.find(prefix)
        while index != -1:
            line = line[:index] + line[index + len(prefix):]
            index = line.find(prefix)
        return line

    def _match_error(self, line: str):
        for pattern in self.ERROR_PATTERNS:
            match = pattern.search(line)
            if match:
                return match.group(1), int(match.group(2)), match.group(3)
        return None

    def _handle_error(self, line: str, file_name: str, line_number: int, message: str) -> str:
        known = lookup_known_message(message, self.core)
        friendly = known.error if known else None
        note = known.note if known else ""

        diagnostic = Diagnostic(
            source_file=file_name,
            source_line=line_number,
            raw_message=message,
            friendly_message=friendly,
            note=note,
        )
        self.diagnostics.append(diagnostic)

        # Only the sketch's own sources are mapped: a library may contain a
        # file with the same name as a sketch tab.
        if self.context.sketch_compiled or self.locator is None:
            return line

        location = self.locator.place_error(diagnostic.message, file_name, line_number - 1)
        if location is None:
            return line

        diagnostic.location = location
        self.context.try_promote(diagnostic)

        if self.context.verbose:
            return line
        return f"{location.file_name}:{location.line + 1}: error: {message}{note}"

    def _check_link_hints(self, line: str) -> None:
        for symbol, library, error in LINK_HINTS:
            if symbol in line and library in line:
                diagnostic = Diagnostic(
                    source_file=None,
                    source_line=None,
                    raw_message=line,
                    friendly_message=error,
                )
                self.diagnostics.append(diagnostic)
                self.context.try_promote(diagnostic)
