"""
compilerkit/detection/models.py

Data model shared by detection, caching and execution.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

COMPILER_TYPES = ("clang", "clang++", "gcc", "g++", "msvc", "apple-clang")


@dataclass
class CompilerCapabilities:
    """Feature switches a compiler supports."""

    optimize: bool = True
    debug: bool = True
    sanitize: bool = True
    parallel: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "optimize": self.optimize,
            "debug": self.debug,
            "sanitize": self.sanitize,
            "parallel": self.parallel,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilerCapabilities":
        return cls(
            optimize=bool(data.get("optimize", True)),
            debug=bool(data.get("debug", True)),
            sanitize=bool(data.get("sanitize", True)),
            parallel=bool(data.get("parallel", True)),
        )


@dataclass
class CompilerInfo:
    """
    A compiler that passed probing.

    Attributes:
        path: Candidate path the compiler was found under (not the resolved path)
        name: Display name (e.g., 'Clang 19.1.0')
        type: One of COMPILER_TYPES
        version: Parsed version string or 'unknown'
        supported_standards: Ordered language standard tokens (e.g., 'c++17')
        is_64bit: Whether the compiler targets a 64-bit machine
        priority: Ranking score, higher is preferred
        capabilities: Feature switches
    """

    path: str
    name: str
    type: str
    version: str
    supported_standards: List[str] = field(default_factory=list)
    is_64bit: bool = True
    priority: int = 0
    capabilities: CompilerCapabilities = field(default_factory=CompilerCapabilities)

    def __str__(self) -> str:
        return f"{self.name} ({self.type}) at {self.path} [priority {self.priority}]"

    @property
    def fingerprint(self) -> str:
        """Deduplication key: '<type>-<version>'."""
        return f"{self.type}-{self.version}"

    @property
    def is_cpp(self) -> bool:
        return "++" in self.type

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-serializable dictionary.

        Returns:
            Dictionary representation suitable for storage/serialization
        """
        return {
            "path": self.path,
            "name": self.name,
            "type": self.type,
            "version": self.version,
            "supportedStandards": list(self.supported_standards),
            "is64Bit": self.is_64bit,
            "priority": self.priority,
            "capabilities": self.capabilities.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilerInfo":
        """
        Build a CompilerInfo from a dictionary produced by to_dict().

        Raises:
            KeyError: If a required field is missing
            ValueError: If the type is not one of COMPILER_TYPES
        """
        if data["type"] not in COMPILER_TYPES:
            raise ValueError(f"Unknown compiler type: {data['type']!r}")
        return cls(
            path=data["path"],
            name=data.get("name", data["type"]),
            type=data["type"],
            version=data.get("version", "unknown"),
            supported_standards=list(data.get("supportedStandards", [])),
            is_64bit=bool(data.get("is64Bit", True)),
            priority=int(data.get("priority", 0)),
            capabilities=CompilerCapabilities.from_dict(data.get("capabilities", {})),
        )


@dataclass
class DetectionResult:
    """
    Outcome of one detection run.

    Attributes:
        success: False only when detection itself failed unexpectedly
        compilers: Compilers ordered by descending priority
        recommended: Highest-priority compiler, if any
        suggestions: Free-text remediation hints
        error: Failure message when success is False
    """

    success: bool
    compilers: List[CompilerInfo] = field(default_factory=list)
    recommended: Optional[CompilerInfo] = None
    suggestions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "compilers": [c.to_dict() for c in self.compilers],
            "recommended": self.recommended.to_dict() if self.recommended else None,
            "suggestions": list(self.suggestions),
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionResult":
        recommended = data.get("recommended")
        return cls(
            success=bool(data.get("success", False)),
            compilers=[CompilerInfo.from_dict(c) for c in data.get("compilers", [])],
            recommended=CompilerInfo.from_dict(recommended) if recommended else None,
            suggestions=list(data.get("suggestions", [])),
            error=data.get("error"),
        )
