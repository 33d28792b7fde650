"""
Compile-and-run orchestration.

A CompileRequest is handled in two steps through the ProcessRunner:

1. Copy the source into a fresh build directory and compile it with a fixed
   compile timeout. A failed compile ends the request; nothing is run.
2. Run the produced binary with the caller's time/memory budget and stdin.

The build directory is removed afterwards whatever the outcome.

Usage:
    from compilerkit.execution.orchestrator import CompilationOrchestrator, CompileRequest

    orchestrator = CompilationOrchestrator()
    result = orchestrator.compile_and_run(
        CompileRequest(source_path="a.cpp", compiler=compiler, stdin="1 2\\n")
    )
    print(result.stdout)
"""

import logging
import os
import shutil
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from compilerkit.config.parser import CompileConfig
from compilerkit.core.exceptions import CompilationError
from compilerkit.core.filesystem import FilesystemError, safe_rmtree
from compilerkit.detection.models import CompilerInfo
from compilerkit.detection.priority import major_version
from compilerkit.execution.runner import ExecutionRequest, ExecutionResult, ProcessRunner

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

LANGUAGES = ("c", "cpp")
C_SOURCE_SUFFIXES = (".c",)

# Clang 20+ breaks some C++17 code; such builds fall back to C++14
CLANG_CPP17_FALLBACK_MAJOR = 20
CLANG_CPP17_FALLBACK_STANDARD = "c++14"

CPP_DRIVER_TYPES = ("clang++", "g++", "msvc", "apple-clang")
C_DRIVER_TYPES = ("clang", "gcc", "apple-clang", "msvc")


@dataclass
class CompileRequest:
    """
    A source file to compile and run.

    Attributes:
        source_path: Source file to build (copied, never modified)
        compiler: Compiler to build with
        language: 'c' or 'cpp'
        standard: Language standard (default: from CompileConfig)
        stdin: Input fed to the program
        timeout_ms: Run-step wall-clock limit, 0 means unbounded
        memory_limit_bytes: Run-step output limit
        cancel_event: Optional event that cancels the run step
    """

    source_path: str
    compiler: CompilerInfo
    language: str = "cpp"
    standard: Optional[str] = None
    stdin: str = ""
    timeout_ms: int = 2000
    memory_limit_bytes: Optional[int] = None
    cancel_event: Optional[threading.Event] = None


@dataclass
class CompileRunResult:
    """
    Outcome of a compile-and-run request.

    When compiled is False, stderr carries the compiler diagnostics (or the
    setup failure message) and nothing was run.
    """

    compiled: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    signal: Optional[str] = None
    timed_out: bool = False
    memory_exceeded: bool = False
    cancelled: bool = False
    compile_output: str = ""
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return (
            self.compiled
            and self.exit_code == 0
            and not (self.timed_out or self.memory_exceeded or self.cancelled)
        )

    @classmethod
    def from_run(
        cls, run: ExecutionResult, compile_output: str = ""
    ) -> "CompileRunResult":
        return cls(
            compiled=True,
            stdout=run.stdout,
            stderr=run.stderr,
            exit_code=run.exit_code,
            signal=run.signal,
            timed_out=run.timed_out,
            memory_exceeded=run.memory_exceeded,
            cancelled=run.cancelled,
            compile_output=compile_output,
            duration_ms=run.duration_ms,
        )


def language_for_source(source_path: str) -> str:
    """Guess the language from a file suffix ('.c' is C, anything else C++)."""
    return "c" if Path(source_path).suffix.lower() in C_SOURCE_SUFFIXES else "cpp"


def executable_name(source_name: str) -> str:
    """
    Output file name for a source file.

    The name never equals source_name: a suffix always starts with a dot.

    Example:
        >>> executable_name("main.cpp")
        'main_bin'
    """
    name = f"{Path(source_name).stem}_bin"
    return f"{name}.exe" if IS_WINDOWS else name


def select_compiler(
    compilers: Sequence[CompilerInfo], language: str
) -> Optional[CompilerInfo]:
    """
    Pick the best compiler driver for a language.

    Compilers are expected in ranked order. A driver matching the language
    is preferred; otherwise the top-ranked compiler is returned.
    """
    preferred = CPP_DRIVER_TYPES if language == "cpp" else C_DRIVER_TYPES
    for compiler in compilers:
        if compiler.type in preferred:
            return compiler
    return compilers[0] if compilers else None


def effective_standard(
    compiler: CompilerInfo, language: str, standard: Optional[str], config: CompileConfig
) -> str:
    """
    Resolve the language standard for a build.

    Falls back to the configured default per language, then applies known
    compiler-version workarounds.
    """
    if not standard:
        standard = config.cpp_standard if language == "cpp" else config.c_standard

    if (
        "clang" in compiler.type
        and standard == "c++17"
        and major_version(compiler.version) >= CLANG_CPP17_FALLBACK_MAJOR
    ):
        logger.debug(
            f"{compiler.name}: using {CLANG_CPP17_FALLBACK_STANDARD} instead of {standard}"
        )
        standard = CLANG_CPP17_FALLBACK_STANDARD

    return standard


def build_compiler_args(
    compiler: CompilerInfo,
    language: str,
    source_path: str,
    output_path: str,
    standard: Optional[str] = None,
    config: Optional[CompileConfig] = None,
) -> List[str]:
    """
    Build the argument list of a compile command.

    Args:
        compiler: Compiler to invoke
        language: 'c' or 'cpp'
        source_path: Source file to compile
        output_path: Executable to produce
        standard: Language standard (default: from config)
        config: Compile settings (default: CompileConfig())

    Returns:
        Arguments, not including the compiler path

    Raises:
        CompilationError: If the language is not supported

    Example:
        >>> build_compiler_args(gcc13, "cpp", "a.cpp", "a.out")
        ['-O2', '-std=c++17', '-Wall', '-o', 'a.out', 'a.cpp']
    """
    if language not in LANGUAGES:
        raise CompilationError(f"Unsupported language: {language} (expected 'c' or 'cpp')")

    config = config or CompileConfig()
    standard = effective_standard(compiler, language, standard, config)

    if compiler.type == "msvc":
        args = [
            f"/{config.optimization}",
            f"/std:{standard}",
            "/TP" if language == "cpp" else "/TC",
            f"/Fe:{output_path}",
        ]
        args.extend(config.extra_flags)
        args.append(source_path)
        return args

    args = [f"-{config.optimization}", f"-std={standard}", "-Wall", "-o", output_path]
    args.extend(config.extra_flags)
    args.append(source_path)

    # Apple Clang's C driver does not link the C++ standard library
    if compiler.type == "apple-clang" and language == "cpp":
        args.append("-lc++")

    return args


class CompilationOrchestrator:
    """
    Compiles a source file and runs the result under resource limits.

    Example:
        >>> orchestrator = CompilationOrchestrator()
        >>> result = orchestrator.compile_and_run(request)
        >>> if not result.compiled:
        ...     print(result.stderr)
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        config: Optional[CompileConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            runner: Process runner for the compile and run steps
            config: Compile settings (standards, flags, compile timeout)
            logger: Logger to report to (default: module logger)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.runner = runner or ProcessRunner(logger=self.logger)
        self.config = config or CompileConfig()

    def compile_and_run(self, request: CompileRequest) -> CompileRunResult:
        """
        Compile request.source_path and run the produced program.

        Args:
            request: Source, compiler and run budget

        Returns:
            CompileRunResult; setup failures are reported in it, not raised

        Raises:
            CompilationError: If the request names an unsupported language
        """
        if request.language not in LANGUAGES:
            raise CompilationError(
                f"Unsupported language: {request.language} (expected 'c' or 'cpp')"
            )

        compiler = request.compiler
        self.logger.info(
            f"Compiling {request.source_path} ({request.language}) with {compiler.name}"
        )

        build_dir = None
        try:
            build_dir = Path(tempfile.mkdtemp(prefix="compilerkit_build_"))
            source = build_dir / Path(request.source_path).name
            shutil.copyfile(request.source_path, source)
            executable = build_dir / executable_name(source.name)

            args = build_compiler_args(
                compiler,
                request.language,
                str(source),
                str(executable),
                standard=request.standard,
                config=self.config,
            )
            self.logger.debug(f"Compile command: {compiler.path} {' '.join(args)}")

            compile_result = self.runner.execute(
                ExecutionRequest(
                    command=compiler.path,
                    args=args,
                    cwd=str(build_dir),
                    timeout_ms=self.config.timeout_ms,
                )
            )
            if not compile_result.succeeded:
                self.logger.info(f"Compilation failed: {compile_result.stderr.strip()}")
                return CompileRunResult(
                    compiled=False,
                    stdout=compile_result.stdout,
                    stderr=compile_result.stderr,
                    exit_code=compile_result.exit_code,
                    signal=compile_result.signal,
                    timed_out=compile_result.timed_out,
                    memory_exceeded=compile_result.memory_exceeded,
                    compile_output=compile_result.stderr,
                    duration_ms=compile_result.duration_ms,
                )

            if not IS_WINDOWS:
                self._make_executable(executable)

            self.logger.debug(f"Running {executable}")
            run_result = self.runner.execute(
                ExecutionRequest(
                    command=str(executable),
                    cwd=str(build_dir),
                    timeout_ms=request.timeout_ms,
                    memory_limit_bytes=request.memory_limit_bytes,
                    stdin=request.stdin,
                    cancel_event=request.cancel_event,
                )
            )
            self.logger.debug(
                f"Run finished: exit code {run_result.exit_code}, signal {run_result.signal}"
            )
            return CompileRunResult.from_run(run_result, compile_output=compile_result.stderr)

        except OSError as e:
            self.logger.error(f"Compile-and-run setup failed: {e}")
            return CompileRunResult(compiled=False, stderr=str(e), exit_code=-1)

        finally:
            if build_dir is not None:
                self._cleanup(build_dir)

    def _make_executable(self, executable: Path) -> None:
        try:
            os.chmod(executable, 0o755)
        except OSError as e:
            self.logger.warning(f"Failed to set execute permission on {executable}: {e}")

    def _cleanup(self, build_dir: Path) -> None:
        try:
            safe_rmtree(build_dir, require_prefix=tempfile.gettempdir())
        except (FilesystemError, ValueError) as e:
            self.logger.warning(f"Failed to clean up build directory {build_dir}: {e}")
