"""
Build orchestration for sketches.

This module sequences a complete build, from the sketch sources already in the
build directory to flashable images:
- Sketch compilation (with diagnostic attribution)
- Library compilation (layered and legacy layouts)
- Core and variant compilation, core archiving
- Linking, optional ELF patching
- EEPROM/flash image extraction, optional post-build script
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple

from ..config.board_config import BuildConfiguration
from ..config.targets import HardwareTargets, TargetError
from .archive_creator import ArchiveCreator
from .binary_generator import BinaryGenerator
from .build_context import BuildContext, IncludePathStack, LogCallback
from .compilation_executor import ProcessRunner
from .dependency_cache import DependencyCache
from .diagnostics import Diagnostic, DiagnosticTranslator
from .errors import BuildError, CompileDiagnosticError, ConfigurationError
from .flag_builder import ToolCommands, asm_command, c_command, cpp_command, link_command
from .source_scanner import (
    LIBRARY_UTILITY_DIR,
    SourceSet,
    find_subfolders,
    is_layered_library,
    library_include_root,
)

if TYPE_CHECKING:
    from ..sketch.sketch import Sketch


ProgressCallback = Callable[[int], None]


@dataclass
class BuildResult:
    """Result of a complete build operation."""

    success: bool
    elf_path: Optional[Path]
    hex_path: Optional[Path]
    eep_path: Optional[Path]
    build_time: float
    message: str
    diagnostic: Optional[Diagnostic] = None
    compiled_count: int = 0
    reused_count: int = 0


class BuildOrchestrator:
    """
    Orchestrates the complete build of one sketch for one board.

    Phases (progress percentage in brackets):
    1. [20] Resolve core, variant and library include roots
    2. [30] Compile the sketch
    3. [40] Compile imported libraries
    4. [50] Compile core and variant, archive the core into core.a
    5. [60] Link <name>.elf, optionally patch it
    6. [70] Extract <name>.eep
    7. [80] Extract <name>.hex
    8. [90] Run the post-build script, if configured

    Example usage:
        orchestrator = BuildOrchestrator(config, HardwareTargets(hw_dir))
        result = orchestrator.build(sketch, Path("/tmp/build"), "Blink")
        if result.success:
            print(f"Firmware: {result.hex_path}")
    """

    def __init__(
        self,
        config: BuildConfiguration,
        targets: HardwareTargets,
        verbose: bool = False,
        log_callback: Optional[LogCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize build orchestrator.

        Args:
            config: Board build configuration
            targets: Resolves core/variant/tool directories
            verbose: Show full commands and unfiltered tool output
            log_callback: Receives every line of tool output
            progress_callback: Receives the progress percentage after each phase
        """
        self.config = config
        self.targets = targets
        self.verbose = verbose
        self.log_callback = log_callback
        self.progress_callback = progress_callback

    def report_progress(self, percent: int) -> None:
        if self.progress_callback is not None:
            self.progress_callback(percent)

    def build(
        self,
        sketch: "Sketch",
        build_dir: Path,
        output_name: Optional[str] = None,
        verbose: Optional[bool] = None,
    ) -> BuildResult:
        """
        Execute the complete build.

        The sketch's sources are written into build_dir first (unchanged files
        are left untouched so their objects can be reused).

        Args:
            sketch: Sketch to build
            build_dir: Build directory (created if missing)
            output_name: Base name of the images (defaults to the merged source name)
            verbose: Override verbose setting

        Returns:
            BuildResult; on failure, message (and diagnostic, when the error
            could be attributed) describe the first failing phase
        """
        start_time = time.time()
        verbose_mode = verbose if verbose is not None else self.verbose
        build_dir = Path(build_dir).resolve()
        output_name = output_name or sketch.primary_class_name

        context = BuildContext(build_dir, verbose_mode, self.log_callback)
        run = _BuildRun(self, sketch, context, output_name)

        try:
            build_dir.mkdir(parents=True, exist_ok=True)
            sketch.prepare(build_dir)
            run.execute()
        except CompileDiagnosticError as e:
            return run.result(False, start_time, str(e), diagnostic=e.diagnostic)
        except BuildError as e:
            return run.result(False, start_time, str(e))
        except OSError as e:
            return run.result(False, start_time, f"Build failed: {e}")

        self.report_progress(100)
        return run.result(True, start_time, "Build successful")


class _BuildRun:
    """State and phases of a single build attempt."""

    def __init__(self, owner: BuildOrchestrator, sketch: "Sketch", context: BuildContext, output_name: str):
        self.owner = owner
        self.config = owner.config
        self.targets = owner.targets
        self.sketch = sketch
        self.context = context
        self.build_dir = context.build_dir
        self.output_name = output_name

        self.translator = DiagnosticTranslator(context, sketch, self.config.core)
        self.runner = ProcessRunner(context, self.translator)
        self.cache = DependencyCache(context.log if context.verbose else None)
        self.tools = ToolCommands.from_config(self.config, self.targets.toolchain_bin_dir)

        self.compiled_count = 0
        self.reused_count = 0
        self.elf_path: Optional[Path] = None
        self.hex_path: Optional[Path] = None
        self.eep_path: Optional[Path] = None

    def result(
        self, success: bool, start_time: float, message: str, diagnostic: Optional[Diagnostic] = None
    ) -> BuildResult:
        return BuildResult(
            success=success,
            elf_path=self.elf_path if success else None,
            hex_path=self.hex_path if success else None,
            eep_path=self.eep_path if success else None,
            build_time=time.time() - start_time,
            message=message,
            diagnostic=diagnostic,
            compiled_count=self.compiled_count,
            reused_count=self.reused_count,
        )

    def execute(self) -> None:
        core_dir, variant_dir = self.resolve_target_dirs()
        libraries = list(self.sketch.imported_libraries)

        # Phase 1: include paths for core + all libraries
        self.owner.report_progress(20)
        include_paths = IncludePathStack([core_dir] + ([variant_dir] if variant_dir else []))
        for library_dir in libraries:
            include_paths.push(library_include_root(library_dir))

        # Phase 2: the sketch (already in the build directory)
        self.owner.report_progress(30)
        object_files = self.compile_files(self.build_dir, include_paths, SourceSet.scan(self.build_dir))
        self.context.sketch_compiled = True

        # Phase 3: libraries, into <build>/<library name>/
        self.owner.report_progress(40)
        for library_dir in libraries:
            object_files.extend(self.compile_library(library_dir, include_paths))

        # Phase 4: core and variant into <build>, core objects into core.a
        self.owner.report_progress(50)
        core_include_paths = IncludePathStack([core_dir] + ([variant_dir] if variant_dir else []))
        core_objects = self.compile_files(
            self.build_dir, core_include_paths, SourceSet.scan(core_dir, recurse=True)
        )
        if variant_dir is not None:
            object_files.extend(
                self.compile_files(
                    self.build_dir, core_include_paths, SourceSet.scan(variant_dir, recurse=True)
                )
            )

        use_archive = self.config.get("build.noarchive") is None
        core_archive = None
        if use_archive:
            archiver = ArchiveCreator(self.runner, self.tools.ar)
            core_archive = archiver.create_core_archive(self.build_dir, core_objects)

        # Phase 5: link
        self.owner.report_progress(60)
        self.elf_path = self.build_dir / f"{self.output_name}.elf"
        self.runner.run(
            link_command(
                self.tools.gcc,
                self.config,
                core_dir,
                self.build_dir,
                self.elf_path,
                object_files,
                core_archive,
                core_objects,
            )
        )

        generator = BinaryGenerator(self.runner, self.config, self.tools.objcopy, self.targets.tools_dir)
        generator.patch_elf(self.elf_path, self.sketch.folder)

        # Phase 6: EEPROM image
        self.owner.report_progress(70)
        self.eep_path = generator.generate_eep(self.elf_path, self.build_dir / f"{self.output_name}.eep")

        # Phase 7: flash image
        self.owner.report_progress(80)
        self.hex_path = generator.generate_hex(self.elf_path, self.build_dir / f"{self.output_name}.hex")

        # Phase 8: tell external tools about the new images
        self.owner.report_progress(90)
        generator.run_post_compile_script(self.build_dir, self.output_name)

    def resolve_target_dirs(self) -> Tuple[Path, Optional[Path]]:
        core = self.config.get("build.core")
        if core is None:
            raise ConfigurationError("No board selected; please choose a board from the Tools > Board menu.")

        try:
            core_dir = self.targets.resolve_core(core)
            variant = self.config.get("build.variant")
            variant_dir = self.targets.resolve_variant(variant) if variant is not None else None
        except TargetError as e:
            raise ConfigurationError(str(e)) from e

        return core_dir, variant_dir

    def compile_library(self, library_dir: Path, include_paths: IncludePathStack) -> List[Path]:
        """Compile one library into <build>/<library name>/."""
        output_dir = self.build_dir / library_dir.name
        output_dir.mkdir(parents=True, exist_ok=True)

        if is_layered_library(library_dir):
            source_root = library_include_root(library_dir)
            with include_paths.scoped(source_root):
                return self.recursive_compile(source_root, output_dir, include_paths)

        # Legacy layout: top-level sources, then utility/, which only this
        # library may see
        utility_dir = library_dir / LIBRARY_UTILITY_DIR
        with include_paths.scoped(utility_dir):
            objects = self.compile_files(output_dir, include_paths, SourceSet.scan(library_dir))
            utility_output = output_dir / LIBRARY_UTILITY_DIR
            utility_output.mkdir(parents=True, exist_ok=True)
            objects.extend(self.compile_files(utility_output, include_paths, SourceSet.scan(utility_dir)))
        return objects

    def recursive_compile(
        self, source_dir: Path, output_dir: Path, include_paths: IncludePathStack
    ) -> List[Path]:
        """Compile source_dir into output_dir, mirroring its sub-folders."""
        objects = self.compile_files(output_dir, include_paths, SourceSet.scan(source_dir))

        for subfolder in find_subfolders(source_dir):
            output_subfolder = output_dir / subfolder.name
            output_subfolder.mkdir(parents=True, exist_ok=True)
            objects.extend(self.recursive_compile(subfolder, output_subfolder, include_paths))

        return objects

    def compile_files(
        self, output_dir: Path, include_paths: IncludePathStack, sources: SourceSet
    ) -> List[Path]:
        """
        Compile a SourceSet into output_dir.

        Assembly is always rebuilt (no dependency file); C and C++ objects are
        reused when the dependency cache says they are current.

        Returns:
            Object file paths, compiled or reused, in source order
        """
        output_dir = Path(output_dir)
        includes = include_paths.as_list()
        objects: List[Path] = []

        for source in sources.asm:
            object_file = output_dir / f"{source.name}.o"
            objects.append(object_file)
            self._compile(asm_command(self.tools.gcc, includes, source, object_file, self.config))

        for source in sources.c:
            object_file = output_dir / f"{source.name}.o"
            objects.append(object_file)
            if self._is_current(source, object_file, output_dir):
                continue
            self._compile(
                c_command(self.tools.gcc, includes, source, object_file, self.config, self.context.verbose)
            )

        for source in sources.cpp:
            object_file = output_dir / f"{source.name}.o"
            objects.append(object_file)
            if self._is_current(source, object_file, output_dir):
                continue
            self._compile(
                cpp_command(self.tools.gpp, includes, source, object_file, self.config, self.context.verbose)
            )

        return objects

    def _is_current(self, source: Path, object_file: Path, output_dir: Path) -> bool:
        dependency_file = output_dir / f"{source.name}.d"
        if self.cache.needs_recompile(source, object_file, dependency_file):
            return False
        self.reused_count += 1
        return True

    def _compile(self, command: Sequence[str]) -> None:
        self.runner.run(list(command))
        self.compiled_count += 1
