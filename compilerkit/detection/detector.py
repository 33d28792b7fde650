"""
compilerkit/detection/detector.py

Compiler detection entry point and result aggregation.

A detection run:
1. Picks the search strategy for the running platform
2. Probes every distinct candidate path against a fresh DedupRegistry
3. Keeps only the registry's surviving winners
4. Ranks them by priority, recommends the best, and adds suggestions

Usage:
    from compilerkit.detection.detector import CompilerDetector

    result = CompilerDetector().detect()
    if result.recommended:
        print(f"Using {result.recommended.name} at {result.recommended.path}")
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Mapping, Optional

from compilerkit.core.exceptions import CacheError
from compilerkit.core.platform import PlatformInfo, detect_platform
from compilerkit.detection.models import CompilerInfo, DetectionResult
from compilerkit.detection.priority import major_version
from compilerkit.detection.prober import CompilerProber
from compilerkit.detection.registry import DedupRegistry
from compilerkit.detection.search import DEFAULT_DEEP_SCAN_DEPTH, get_search_strategy
from compilerkit.execution.runner import ProcessRunner

logger = logging.getLogger(__name__)

GCC_FAMILY = ("gcc", "g++")
CLANG_FAMILY = ("clang", "clang++", "apple-clang")

# Oldest major version considered modern enough for C++17
MODERN_MAJOR_VERSION = 6

NO_COMPILER_SUGGESTIONS = [
    "Install a C/C++ compiler (LLVM, GCC, or MSVC)",
    "Ensure compiler directories are in PATH",
    "Run 'compilerkit detect --deep' to search non-standard install locations",
]

DETECTION_FAILED_SUGGESTIONS = [
    "Make sure C/C++ compilers are installed",
    "Check that compiler directories are in PATH",
    "Try running detection again with --deep",
]


def unique_candidates(candidates: Iterable[str]) -> List[str]:
    """Drop repeated candidate strings, keeping first-seen order."""
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate not in seen:
            seen.add(candidate)
            unique.append(candidate)
    return unique


def rank_compilers(compilers: Iterable[CompilerInfo]) -> List[CompilerInfo]:
    """
    Sort compilers by descending priority.

    The sort is stable: equal priorities keep discovery order.
    """
    return sorted(compilers, key=lambda c: c.priority, reverse=True)


def generate_suggestions(compilers: List[CompilerInfo]) -> List[str]:
    """
    Remediation hints for an empty or one-sided detection result.

    Args:
        compilers: Detected compilers

    Returns:
        Suggestions, possibly empty
    """
    if not compilers:
        return list(NO_COMPILER_SUGGESTIONS)

    suggestions = []
    types = {c.type for c in compilers}

    if types == {"msvc"}:
        suggestions.append(
            "Consider installing LLVM/Clang for better cross-platform compatibility"
        )
    elif types <= set(GCC_FAMILY):
        suggestions.append("Consider installing Clang for better standards compliance")
    elif types <= set(CLANG_FAMILY):
        suggestions.append("Consider installing GCC to cross-check results with a second compiler")

    if not any(c.is_64bit for c in compilers):
        suggestions.append("Use a 64-bit compiler for better performance")

    if not any(major_version(c.version) >= MODERN_MAJOR_VERSION for c in compilers):
        suggestions.append("Install a newer compiler to get C++17/C++20 support")

    return suggestions


class CompilerDetector:
    """
    Detect and rank the C/C++ compilers installed on this machine.

    Each call to detect() owns its own DedupRegistry; nothing is shared
    between calls.

    Example:
        >>> detector = CompilerDetector(max_workers=4)
        >>> result = detector.detect(deep_scan=False)
        >>> for compiler in result.compilers:
        ...     print(compiler)
    """

    def __init__(
        self,
        platform: Optional[PlatformInfo] = None,
        runner: Optional[ProcessRunner] = None,
        max_workers: int = 1,
        deep_scan_max_depth: int = DEFAULT_DEEP_SCAN_DEPTH,
        environ: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize detector.

        Args:
            platform: Platform to detect for (default: running platform)
            runner: Process runner for compiler and vendor tool queries
            max_workers: Number of parallel probes; 1 probes sequentially
            deep_scan_max_depth: Directory depth limit of the deep scan
            environ: Environment mapping providing PATH (default: os.environ)
            logger: Logger to report to (default: module logger)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.platform = platform
        self.runner = runner or ProcessRunner(logger=self.logger)
        self.max_workers = max(1, max_workers)
        self.deep_scan_max_depth = deep_scan_max_depth
        self.environ = environ
        self.prober = CompilerProber(runner=self.runner, logger=self.logger)

    def detect(self, deep_scan: bool = False) -> DetectionResult:
        """
        Run a full detection.

        Args:
            deep_scan: Also recursively scan the platform's deep scan roots

        Returns:
            DetectionResult; unexpected failures produce success=False
            instead of raising
        """
        try:
            platform = self.platform or detect_platform()
            self.logger.info(f"Detecting compilers for platform: {platform}")

            strategy = get_search_strategy(
                platform,
                runner=self.runner,
                environ=self.environ,
                deep_scan_max_depth=self.deep_scan_max_depth,
                logger=self.logger,
            )
            candidates = strategy.candidates(deep_scan=deep_scan)
            compilers = rank_compilers(self.probe_candidates(candidates))

            self.logger.info(f"Found {len(compilers)} compilers")
            return DetectionResult(
                success=True,
                compilers=compilers,
                recommended=compilers[0] if compilers else None,
                suggestions=generate_suggestions(compilers),
            )

        except Exception as e:
            self.logger.error(f"Compiler detection failed: {e}")
            return DetectionResult(
                success=False,
                error=str(e),
                suggestions=list(DETECTION_FAILED_SUGGESTIONS),
            )

    def probe_candidates(self, candidates: Iterable[str]) -> List[CompilerInfo]:
        """
        Probe candidates against a fresh registry.

        Args:
            candidates: Candidate paths, duplicates allowed

        Returns:
            Surviving compilers in discovery order. A compiler displaced by
            a later higher-priority candidate is not included.
        """
        registry = DedupRegistry(logger=self.logger)
        paths = unique_candidates(candidates)
        self.logger.debug(f"Probing {len(paths)} candidate paths")

        if self.max_workers > 1 and len(paths) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                probed = list(pool.map(lambda p: self.prober.probe(p, registry), paths))
        else:
            probed = [self.prober.probe(path, registry) for path in paths]

        return [
            info
            for info in probed
            if info is not None and registry.is_winner(info.path, info.fingerprint)
        ]


def detect_compilers(
    deep_scan: bool = False,
    cache=None,
    refresh: bool = False,
    **detector_kwargs,
) -> DetectionResult:
    """
    Convenience function for compiler detection with optional caching.

    Args:
        deep_scan: Include the expensive recursive scan
        cache: Optional DetectionCache consulted before and updated after
            detection
        refresh: Ignore a cached result and detect again. A deep scan always
            detects again, since cached results may come from a normal scan
        **detector_kwargs: Passed to CompilerDetector

    Returns:
        DetectionResult

    Example:
        >>> result = detect_compilers()
        >>> print(result.recommended)
    """
    if cache is not None and not (refresh or deep_scan):
        try:
            cached = cache.load()
        except CacheError as e:
            logger.warning(f"Failed to read detection cache: {e}")
            cached = None
        if cached is not None:
            logger.info(f"Using cached detection result ({len(cached.compilers)} compilers)")
            return cached

    result = CompilerDetector(**detector_kwargs).detect(deep_scan=deep_scan)

    if cache is not None and result.success:
        try:
            cache.save(result)
        except CacheError as e:
            logger.warning(f"Failed to cache detection result: {e}")

    return result
