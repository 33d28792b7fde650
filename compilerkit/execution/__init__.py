"""
Process execution and compile-and-run orchestration.
"""

from compilerkit.execution.runner import (
    ExecutionRequest,
    ExecutionResult,
    ProcessRunner,
)
from compilerkit.execution.orchestrator import (
    CompilationOrchestrator,
    CompileRequest,
    CompileRunResult,
    build_compiler_args,
    executable_name,
    language_for_source,
    select_compiler,
)

__all__ = [
    "ExecutionRequest",
    "ExecutionResult",
    "ProcessRunner",
    "CompilationOrchestrator",
    "CompileRequest",
    "CompileRunResult",
    "build_compiler_args",
    "executable_name",
    "language_for_source",
    "select_compiler",
]
