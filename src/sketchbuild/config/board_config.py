"""
Build configuration for one board.

This module provides the read-only key/value map that drives every toolchain
invocation, and the loader that builds it from an Arduino-style boards.txt
file with board menu selections applied.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional


class BoardConfigError(Exception):
    """Exception raised for board configuration errors."""

    pass


TRUTHY = frozenset({"true", "yes", "on", "1"})


class BuildConfiguration(Mapping[str, str]):
    """
    Immutable mapping of build parameter names to string values.

    Keys keep their boards.txt spelling without the board prefix, e.g.
    ``build.mcu``, ``build.core``, ``build.option1``.

    Example boards.txt entry:
        uno.name=Arduino Uno
        uno.build.mcu=atmega328p
        uno.build.f_cpu=16000000L
        uno.build.core=arduino
        uno.build.variant=standard
        uno.menu.cpu.8mhz.build.f_cpu=8000000L

    Usage:
        config = BuildConfiguration.from_boards_txt(
            Path("hardware/arduino/boards.txt"), "uno", {"cpu": "8mhz"}
        )
        config.get("build.f_cpu")        # "8000000L"
        list(config.numbered("build.option"))
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None, board_id: str = ""):
        """
        Initialize configuration.

        Args:
            values: Build parameter names to values
            board_id: Identifier of the board the values were resolved for
        """
        self._values: Dict[str, str] = dict(values or {})
        self.board_id = board_id

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def numbered(self, prefix: str, start: int = 1) -> Iterator[str]:
        """Yield ``<prefix><n>`` values from start until the first missing one."""
        index = start
        while True:
            value = self._values.get(f"{prefix}{index}")
            if value is None:
                return
            yield value
            index += 1

    def menu_defines(self) -> List[str]:
        """Board-menu defines ``build.define0`` .. ``build.define9`` (gaps allowed)."""
        return [
            self._values[f"build.define{i}"]
            for i in range(10)
            if f"build.define{i}" in self._values
        ]

    def flag(self, key: str) -> bool:
        """Interpret a value as a boolean feature flag."""
        value = self._values.get(key)
        return value is not None and value.strip().lower() in TRUTHY

    @property
    def mcu(self) -> Optional[str]:
        return self._values.get("build.mcu")

    @property
    def core(self) -> Optional[str]:
        return self._values.get("build.core")

    @property
    def variant(self) -> Optional[str]:
        return self._values.get("build.variant")

    @classmethod
    def from_boards_txt(
        cls,
        boards_txt_path: Path,
        board_id: str,
        menu_selections: Optional[Mapping[str, str]] = None,
    ) -> "BuildConfiguration":
        """
        Load a board's configuration from a boards.txt file.

        Args:
            boards_txt_path: Path to boards.txt
            board_id: Board identifier (e.g., "uno", "teensy31")
            menu_selections: Chosen option per board menu (e.g., {"usb": "serial"})

        Returns:
            BuildConfiguration instance

        Raises:
            BoardConfigError: If file not found, board not defined, or a
                selected menu option does not exist
        """
        if not boards_txt_path.exists():
            raise BoardConfigError(f"boards.txt not found: {boards_txt_path}")

        board_data = cls._parse_boards_txt(boards_txt_path, board_id)

        if not board_data:
            raise BoardConfigError(f"Board '{board_id}' not found in {boards_txt_path}")

        values = {k: v for k, v in board_data.items() if not k.startswith("menu.")}

        for menu, option in (menu_selections or {}).items():
            option_prefix = f"menu.{menu}.{option}."
            option_values = {
                k[len(option_prefix):]: v
                for k, v in board_data.items()
                if k.startswith(option_prefix)
            }
            if not option_values and f"menu.{menu}.{option}" not in board_data:
                raise BoardConfigError(
                    f"Board '{board_id}' has no option '{option}' in menu '{menu}'"
                )
            values.update(option_values)

        return cls(values, board_id=board_id)

    @staticmethod
    def _parse_boards_txt(boards_txt_path: Path, board_id: str) -> Dict[str, str]:
        """
        Parse boards.txt and extract the entries of one board.

        Args:
            boards_txt_path: Path to boards.txt
            board_id: Board identifier to extract

        Returns:
            Dictionary of keys (board prefix removed) to values
        """
        board_data = {}
        prefix = f"{board_id}."

        try:
            with open(boards_txt_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()

                    if not line or line.startswith("#"):
                        continue

                    if "=" not in line:
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()

                    if not key.startswith(prefix):
                        continue

                    board_data[key[len(prefix):]] = value.strip()

        except KeyboardInterrupt as ke:
            from sketchbuild.interrupt_utils import handle_keyboard_interrupt_properly

            handle_keyboard_interrupt_properly(ke)
        except Exception as e:
            raise BoardConfigError(f"Failed to parse {boards_txt_path}: {e}") from e

        return board_data

    def __repr__(self) -> str:
        """String representation of build configuration."""
        return (
            f"BuildConfiguration(board_id='{self.board_id}', mcu='{self.mcu}', "
            f"core='{self.core}', variant='{self.variant}')"
        )
