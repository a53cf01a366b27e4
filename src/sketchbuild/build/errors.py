"""Build error taxonomy.

Every failure a build can stop on derives from BuildError. The orchestrator
catches these and turns them into a failed BuildResult; users only ever see
the message, never a stack trace.
"""

from typing import Optional

from .diagnostics import Diagnostic


class BuildError(Exception):
    """Base class for errors that stop a build."""
    pass


class ConfigurationError(BuildError):
    """Raised when no usable target or core is selected."""
    pass


class ToolInvocationError(BuildError):
    """Raised when a toolchain executable cannot be started."""
    pass


class GenericToolFailure(BuildError):
    """Raised when a tool exits non-zero without a recognized diagnostic."""
    pass


class CompileDiagnosticError(BuildError):
    """Raised when the diagnostic translator promoted a diagnostic."""

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


class DependencyCacheError(Exception):
    """Raised when a dependency record cannot be read or parsed.

    Never fatal: the cache treats it as "must recompile".
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
