"""
Compiler detection: search, probing, deduplication and ranking.
"""

from compilerkit.detection.cache import DetectionCache
from compilerkit.detection.detector import (
    CompilerDetector,
    detect_compilers,
    generate_suggestions,
    rank_compilers,
)
from compilerkit.detection.models import CompilerCapabilities, CompilerInfo, DetectionResult
from compilerkit.detection.priority import calculate_priority
from compilerkit.detection.prober import CompilerProber
from compilerkit.detection.registry import DedupRegistry, RegistrationOutcome
from compilerkit.detection.search import SearchStrategy, get_search_strategy

__all__ = [
    "CompilerDetector",
    "detect_compilers",
    "generate_suggestions",
    "rank_compilers",
    "DetectionCache",
    "CompilerCapabilities",
    "CompilerInfo",
    "DetectionResult",
    "calculate_priority",
    "CompilerProber",
    "DedupRegistry",
    "RegistrationOutcome",
    "SearchStrategy",
    "get_search_strategy",
]
