"""Tool Process Runner.

This module runs one toolchain invocation at a time and feeds its output to
the diagnostic translator while it runs.

Design:
    - stdout and stderr are drained on two threads, so a full pipe never
      stalls the child
    - Both drains reach end-of-stream before the exit status counts, so no
      output line is lost between process exit and buffered delivery
    - An interrupted wait is retried, never abandoned; there is no timeout
    - A promoted diagnostic outranks the raw exit code as the failure cause
"""

import logging
import subprocess
import sys
import threading
from typing import IO, Callable, List, Optional

import psutil

from .build_context import BuildContext
from .diagnostics import DiagnosticTranslator
from .errors import CompileDiagnosticError, GenericToolFailure, ToolInvocationError


def get_subprocess_creation_flags() -> int:
    """No console window per tool invocation on Windows."""
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def terminate_process_tree(pid: int) -> int:
    """Terminate a process and all of its children.

    Returns:
        Number of processes that were signalled
    """
    try:
        root = psutil.Process(pid)
        processes = root.children(recursive=True) + [root]
    except psutil.NoSuchProcess:
        return 0

    killed = 0
    for proc in processes:
        try:
            proc.terminate()
            killed += 1
        except psutil.NoSuchProcess:
            pass

    _gone, alive = psutil.wait_procs(processes, timeout=3)
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return killed


class ProcessRunner:
    """Runs tool commands, streaming their output through the translator."""

    def __init__(self, context: BuildContext, translator: DiagnosticTranslator):
        """Initialize runner.

        Args:
            context: Per-build context (verbose flag, build log)
            translator: Receives every output line of every invocation
        """
        self.context = context
        self.translator = translator

    def _spawn(self, command: List[str], stderr) -> subprocess.Popen:
        if self.context.verbose:
            self.context.log(" ".join(command))

        try:
            return subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=stderr,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=get_subprocess_creation_flags(),
            )
        except OSError as e:
            raise ToolInvocationError(str(e)) from e

    @staticmethod
    def _drain(stream: IO[str], consumer: Callable[[str], None]) -> None:
        with stream:
            for line in stream:
                consumer(line)

    def _start_drain(self, stream: IO[str], consumer: Callable[[str], None]) -> threading.Thread:
        thread = threading.Thread(target=self._drain, args=(stream, consumer), daemon=True)
        thread.start()
        return thread

    def _wait(self, process: subprocess.Popen, drains: List[threading.Thread]) -> int:
        while True:
            try:
                for thread in drains:
                    thread.join()
                return process.wait()
            except InterruptedError:
                continue
            except KeyboardInterrupt as ke:
                terminate_process_tree(process.pid)
                from sketchbuild.interrupt_utils import handle_keyboard_interrupt_properly
                handle_keyboard_interrupt_properly(ke)

    def run(self, command: List[str]) -> int:
        """Run one tool invocation to completion.

        Args:
            command: Executable followed by its arguments

        Returns:
            Exit status (always 0; failures raise)

        Raises:
            ToolInvocationError: If the executable cannot be started
            CompileDiagnosticError: If a diagnostic was promoted
            GenericToolFailure: If the tool exited non-zero
        """
        process = self._spawn(command, stderr=subprocess.PIPE)
        drains = [
            self._start_drain(process.stdout, self.translator.observe),
            self._start_drain(process.stderr, self.translator.observe),
        ]
        result = self._wait(process, drains)

        diagnostic = self.translator.first_diagnostic()
        if diagnostic is not None:
            raise CompileDiagnosticError(diagnostic)

        if result > 1:
            # The tool itself misbehaved (e.g. could not find a sub-executable)
            logging.warning(f"{command[0]} returned {result}")

        if result != 0:
            raise GenericToolFailure("Error compiling.")

        return result

    def run_simple(self, command: List[str], failure_message: Optional[str] = None) -> int:
        """Run a helper script: stdout is logged, stderr is left to the terminal.

        Raises:
            ToolInvocationError: If the executable cannot be started
            GenericToolFailure: If the script exited non-zero
        """
        process = self._spawn(command, stderr=None)
        drains = [self._start_drain(process.stdout, lambda line: self.context.log(line.rstrip("\r\n")))]
        result = self._wait(process, drains)

        if result != 0:
            raise GenericToolFailure(failure_message or f"{command[0]} returned {result}")

        return result
