"""
Build system components for sketchbuild.

This module provides the build pipeline implementation including:
- Incremental compilation cache (dependency files)
- Toolchain command construction
- Tool process execution with concurrent output draining
- Compiler diagnostic translation
- Build orchestration
"""

from .build_context import BuildContext, IncludePathStack
from .dependency_cache import DependencyCache, DependencyRecord, parse_dependency_record
from .diagnostics import Diagnostic, DiagnosticTranslator, SourceReference
from .compilation_executor import ProcessRunner
from .errors import (
    BuildError,
    CompileDiagnosticError,
    ConfigurationError,
    DependencyCacheError,
    GenericToolFailure,
    ToolInvocationError,
)
from .orchestrator import BuildOrchestrator, BuildResult
from .source_scanner import SourceSet

__all__ = [
    'BuildContext',
    'IncludePathStack',
    'DependencyCache',
    'DependencyRecord',
    'parse_dependency_record',
    'Diagnostic',
    'DiagnosticTranslator',
    'SourceReference',
    'ProcessRunner',
    'BuildError',
    'CompileDiagnosticError',
    'ConfigurationError',
    'DependencyCacheError',
    'GenericToolFailure',
    'ToolInvocationError',
    'BuildOrchestrator',
    'BuildResult',
    'SourceSet',
]
