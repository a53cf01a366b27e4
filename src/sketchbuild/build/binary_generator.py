"""Post-link Binary Steps.

This module runs everything that happens after the .elf is linked:
optional ELF patching, EEPROM and flash image extraction, and the optional
post-build notification script.

Design:
    - Separates image generation from linking
    - Patch tools and post-build scripts live in the hardware tools folder
    - All invocations go through the ProcessRunner
"""

from pathlib import Path

from ..config.board_config import BuildConfiguration
from .compilation_executor import ProcessRunner
from .flag_builder import eeprom_command, elf_patch_command, hex_command, post_compile_command


class BinaryGenerator:
    """Produces .eep and .hex images from a linked .elf."""

    def __init__(
        self,
        runner: ProcessRunner,
        config: BuildConfiguration,
        objcopy: str,
        tools_dir: Path,
    ):
        """Initialize binary generator.

        Args:
            runner: Process runner for tool invocations
            config: Board configuration
            objcopy: objcopy executable
            tools_dir: Hardware tools folder (patchers, post-build scripts)
        """
        self.runner = runner
        self.config = config
        self.objcopy = objcopy
        self.tools_dir = Path(tools_dir)

    def patch_elf(self, elf_path: Path, sketch_dir: Path) -> bool:
        """Run the configured ELF patch tool, if any.

        Returns:
            True if a patch tool was configured and ran
        """
        patcher = self.config.get("build.elfpatch")
        if patcher is None:
            return False

        self.runner.run(elf_patch_command(self.tools_dir / patcher, self.config, elf_path, sketch_dir))
        return True

    def generate_eep(self, elf_path: Path, eep_path: Path) -> Path:
        """Extract the EEPROM image (.eeprom section only)."""
        self.runner.run(eeprom_command(self.objcopy, elf_path, eep_path))
        return eep_path

    def generate_hex(self, elf_path: Path, hex_path: Path) -> Path:
        """Extract the flash image (everything except .eeprom)."""
        self.runner.run(hex_command(self.objcopy, elf_path, hex_path))
        return hex_path

    def run_post_compile_script(self, build_dir: Path, output_name: str) -> bool:
        """Notify external tools that new images exist.

        Returns:
            True if a script was configured and ran
        """
        script = self.config.get("build.post_compile_script")
        if script is None:
            return False

        cmd = post_compile_command(
            self.tools_dir / script,
            self.config.board_id,
            self.tools_dir,
            build_dir,
            output_name,
        )
        self.runner.run_simple(cmd, failure_message=f"Error communicating with {script}")
        return True
