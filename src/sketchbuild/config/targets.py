"""
Hardware target resolution.

Locates core, variant, tool and toolchain directories inside an Arduino-style
hardware folder:

    hardware/
        arduino/            <- provider (target)
            boards.txt
            cores/arduino/
            variants/standard/
        teensy/
            boards.txt
            cores/teensy3/
        tools/              <- post-compile scripts, elf patchers
            avr/bin/        <- toolchain executables

Core and variant identifiers may be namespaced as ``provider:name`` to borrow
a core from another provider.
"""

from pathlib import Path
from typing import List, Optional


class TargetError(Exception):
    """Exception raised when a target directory cannot be resolved."""

    pass


class HardwareTargets:
    """Resolves directories for the selected hardware provider."""

    def __init__(
        self,
        hardware_dir: Path,
        provider: str = "arduino",
        toolchain_bin_dir: Optional[Path] = None,
    ):
        """
        Initialize target resolver.

        Args:
            hardware_dir: Root hardware folder
            provider: Selected provider (sub-folder holding boards.txt)
            toolchain_bin_dir: Explicit toolchain bin directory; defaults to
                hardware/tools/avr/bin when it exists, else tools are taken from PATH
        """
        self.hardware_dir = Path(hardware_dir).resolve()
        self.provider = provider
        self._toolchain_bin_dir = Path(toolchain_bin_dir) if toolchain_bin_dir else None

    @property
    def provider_dir(self) -> Path:
        return self.hardware_dir / self.provider

    @property
    def boards_txt(self) -> Path:
        return self.provider_dir / "boards.txt"

    @property
    def tools_dir(self) -> Path:
        return self.hardware_dir / "tools"

    @property
    def toolchain_bin_dir(self) -> Optional[Path]:
        if self._toolchain_bin_dir is not None:
            return self._toolchain_bin_dir
        bundled = self.tools_dir / "avr" / "bin"
        return bundled if bundled.is_dir() else None

    def providers(self) -> List[str]:
        """List providers found under the hardware folder."""
        if not self.hardware_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.hardware_dir.iterdir()
            if entry.is_dir() and (entry / "boards.txt").is_file()
        )

    def resolve_core(self, identifier: str) -> Path:
        """Resolve a core identifier to its directory."""
        return self._resolve("cores", identifier)

    def resolve_variant(self, identifier: str) -> Path:
        """Resolve a variant identifier to its directory."""
        return self._resolve("variants", identifier)

    def _resolve(self, kind: str, identifier: str) -> Path:
        if ":" not in identifier:
            return self.provider_dir / kind / identifier

        provider, name = identifier.split(":", 1)
        provider_dir = self.hardware_dir / provider
        if not provider_dir.is_dir():
            raise TargetError(
                f"Unknown hardware provider '{provider}' in '{identifier}'. "
                f"Available: {', '.join(self.providers()) or 'none'}"
            )
        return provider_dir / kind / name

    def __repr__(self) -> str:
        return f"HardwareTargets(hardware_dir='{self.hardware_dir}', provider='{self.provider}')"
