"""
Run command - compile a source file and run it under limits.

Exit codes:
    0    program exited with 0
    1    compilation failed or no compiler available
    124  time limit exceeded
    125  output limit exceeded
    N    program exit code otherwise (1 when killed by a signal)
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from compilerkit.cli.utils import get_detection_cache, load_config_from_args, safe_print
from compilerkit.config.parser import CompilerKitConfig
from compilerkit.detection.detector import detect_compilers
from compilerkit.detection.models import CompilerInfo
from compilerkit.detection.prober import CompilerProber
from compilerkit.detection.registry import DedupRegistry
from compilerkit.execution.orchestrator import (
    CompilationOrchestrator,
    CompileRequest,
    language_for_source,
    select_compiler,
)

logger = logging.getLogger(__name__)

EXIT_COMPILE_FAILED = 1
EXIT_TIME_LIMIT = 124
EXIT_OUTPUT_LIMIT = 125


def resolve_compiler(
    args, config: CompilerKitConfig, language: str
) -> Optional[CompilerInfo]:
    """
    Compiler named by --compiler, or the best detected one for the language.
    """
    if args.compiler:
        compiler = CompilerProber().probe(args.compiler, DedupRegistry())
        if compiler is None:
            logger.error(f"Not a usable compiler: {args.compiler}")
        return compiler

    cache = get_detection_cache(config) if config.detection.use_cache else None
    result = detect_compilers(
        deep_scan=config.detection.deep_scan,
        cache=cache,
        max_workers=config.detection.max_workers,
        deep_scan_max_depth=config.detection.deep_scan_max_depth,
    )
    compiler = select_compiler(result.compilers, language)
    if compiler is None:
        logger.error("No C/C++ compiler found")
        for suggestion in result.suggestions:
            logger.info(f"  - {suggestion}")
    return compiler


def read_input(input_arg: Optional[str]) -> str:
    if not input_arg:
        return ""
    if input_arg == "-":
        return sys.stdin.read()
    return Path(input_arg).read_text(encoding="utf-8")


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (see module docstring)
    """
    config = load_config_from_args(args)

    source = Path(args.source)
    if not source.is_file():
        logger.error(f"Source file not found: {source}")
        return EXIT_COMPILE_FAILED

    language = args.language or language_for_source(str(source))
    compiler = resolve_compiler(args, config, language)
    if compiler is None:
        return EXIT_COMPILE_FAILED

    timeout_ms = args.timeout_ms if args.timeout_ms is not None else config.execution.timeout_ms
    memory_limit_bytes = (
        args.memory_mb * 1024 * 1024
        if args.memory_mb is not None
        else config.execution.memory_limit_bytes
    )

    orchestrator = CompilationOrchestrator(config=config.compile)
    result = orchestrator.compile_and_run(
        CompileRequest(
            source_path=str(source),
            compiler=compiler,
            language=language,
            standard=args.std,
            stdin=read_input(args.input),
            timeout_ms=timeout_ms,
            memory_limit_bytes=memory_limit_bytes,
        )
    )

    if not result.compiled:
        safe_print("❌ Compilation failed", file=sys.stderr)
        if result.stderr:
            safe_print(result.stderr.rstrip(), file=sys.stderr)
        return EXIT_COMPILE_FAILED

    sys.stdout.write(result.stdout)
    sys.stdout.flush()
    if result.stderr:
        sys.stderr.write(result.stderr)

    if result.timed_out:
        safe_print(f"⚠️  Time limit exceeded ({timeout_ms} ms)", file=sys.stderr)
        return EXIT_TIME_LIMIT
    if result.memory_exceeded:
        safe_print(f"⚠️  Output limit exceeded ({memory_limit_bytes} bytes)", file=sys.stderr)
        return EXIT_OUTPUT_LIMIT
    if result.signal is not None:
        safe_print(f"⚠️  Program terminated by {result.signal}", file=sys.stderr)
        return 1

    logger.debug(f"Program finished in {result.duration_ms:.0f}ms")
    return result.exit_code if result.exit_code is not None else 1
