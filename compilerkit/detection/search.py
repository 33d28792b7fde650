"""
compilerkit/detection/search.py

Platform search strategies - enumerate compiler candidate paths.

Each strategy combines several sources:
- Linux: PATH, common bin directories, versioned LLVM/GCC installs
- macOS: PATH, Xcode toolchains (xcode-select), Homebrew/MacPorts
- Windows: PATH, vendor directories (LLVM, MinGW, MSYS2), MSVC via vswhere

Candidates are plain path strings. The same binary may appear several times
under different names or symlinks; deduplication happens during probing.
A failing source is logged and skipped, it never aborts the search.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from compilerkit.core.exceptions import DetectionError
from compilerkit.core.platform import PlatformInfo
from compilerkit.execution.runner import ProcessRunner

logger = logging.getLogger(__name__)

# gcc-13, g++-13, clang-19, clang++-19.1
VERSIONED_COMPILER_PATTERN = re.compile(r"^(gcc|g\+\+|clang|clang\+\+)-\d+(\.\d+)*$")

DEFAULT_DEEP_SCAN_DEPTH = 6


class SearchStrategy(ABC):
    """
    Base class for per-OS candidate enumeration.

    Subclasses list their sources in _sources(); the base class runs them in
    order, isolating failures, and appends the deep scan when requested.
    """

    compiler_names: Sequence[str] = ()
    deep_scan_roots: Sequence[str] = ()

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
        deep_scan_max_depth: int = DEFAULT_DEEP_SCAN_DEPTH,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize strategy.

        Args:
            runner: Process runner for vendor locator tools
            environ: Environment mapping (default: os.environ)
            deep_scan_max_depth: Directory depth limit of the deep scan
            logger: Logger to report to (default: module logger)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.runner = runner or ProcessRunner(logger=self.logger)
        self.environ = environ if environ is not None else os.environ
        self.deep_scan_max_depth = deep_scan_max_depth

    @abstractmethod
    def _sources(self) -> List[Tuple[str, Callable[[], List[str]]]]:
        """Named candidate sources, in search order."""
        pass

    def candidates(self, deep_scan: bool = False) -> List[str]:
        """
        Enumerate candidate compiler paths.

        Args:
            deep_scan: Also walk the deep scan roots (slow)

        Returns:
            Candidate paths in discovery order, duplicates included
        """
        found: List[str] = []
        sources = self._sources()
        if deep_scan:
            sources.append(("deep scan", self.deep_scan))

        for name, source in sources:
            try:
                paths = source()
                self.logger.debug(f"{name} yielded {len(paths)} candidates")
                found.extend(paths)
            except Exception as e:
                self.logger.debug(f"{name} search failed: {e}")

        return found

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def path_entries(self) -> List[str]:
        """Directories listed in PATH."""
        path_env = self.environ.get("PATH", "")
        return [entry for entry in path_env.split(os.pathsep) if entry]

    def search_path(self, names: Optional[Iterable[str]] = None) -> List[str]:
        """
        Look for each compiler name in every PATH directory.

        Args:
            names: File names to look for (default: compiler_names)

        Returns:
            Existing candidate paths, grouped by name
        """
        found = []
        entries = self.path_entries()
        for name in names or self.compiler_names:
            for directory in entries:
                candidate = os.path.join(directory, name)
                if os.path.exists(candidate):
                    found.append(candidate)
        return found

    def search_directory(
        self, directory: str, names: Optional[Iterable[str]] = None
    ) -> List[str]:
        """
        List a directory and keep entries named like a compiler.

        Unreadable or missing directories yield no candidates.
        """
        wanted = {name.lower() for name in (names or self.compiler_names)}
        found = []
        try:
            entries = sorted(os.listdir(directory))
        except OSError:
            return found

        for entry in entries:
            if entry.lower() in wanted:
                full_path = os.path.join(directory, entry)
                if os.path.exists(full_path):
                    found.append(full_path)
        return found

    def search_versioned(self, directory: str) -> List[str]:
        """Find versioned compiler executables such as gcc-13 or clang++-18."""
        found = []
        try:
            entries = sorted(os.listdir(directory))
        except OSError:
            return found

        for entry in entries:
            if VERSIONED_COMPILER_PATTERN.match(entry):
                full_path = os.path.join(directory, entry)
                if os.path.isfile(full_path):
                    found.append(full_path)
        return found

    def search_directories(self, directories: Iterable[str]) -> List[str]:
        found = []
        for directory in directories:
            if directory and os.path.isdir(directory):
                found.extend(self.search_directory(directory))
        return found

    def deep_scan(self) -> List[str]:
        """
        Walk the deep scan roots looking for compiler names.

        Symlinked directories are not followed and the walk stops at
        deep_scan_max_depth levels below each root.
        """
        self.logger.info("Performing deep system scan for compilers...")
        wanted = {name.lower() for name in self.compiler_names}
        found = []

        for root in self.deep_scan_roots:
            if not os.path.isdir(root):
                continue
            base_depth = root.rstrip("\\/").count(os.sep)
            for current, dirs, files in os.walk(root, onerror=lambda e: None):
                depth = current.rstrip("\\/").count(os.sep) - base_depth
                if depth >= self.deep_scan_max_depth:
                    dirs[:] = []
                for file_name in files:
                    if file_name.lower() in wanted:
                        found.append(os.path.join(current, file_name))

        return found


class LinuxSearchStrategy(SearchStrategy):
    """Compiler search for Linux."""

    compiler_names = ("clang", "clang++", "gcc", "g++", "cc", "c++")
    common_directories = ("/usr/bin", "/usr/local/bin", "/opt/bin", "/opt/local/bin", "/bin")
    versioned_directories = ("/usr/bin", "/usr/local/bin")
    llvm_parents = ("/usr/lib", "/opt", "/usr/local")
    gcc_parents = ("/opt", "/usr/local")
    deep_scan_roots = ("/usr", "/usr/local", "/opt", "/home")

    def _sources(self):
        return [
            ("PATH", self.search_path),
            ("common directories", lambda: self.search_directories(self.common_directories)),
            ("versioned executables", self.find_versioned_executables),
            ("LLVM installations", self.find_llvm_installations),
            ("GCC installations", self.find_gcc_installations),
        ]

    def find_versioned_executables(self) -> List[str]:
        found = []
        for directory in self.versioned_directories:
            found.extend(self.search_versioned(directory))
        return found

    def _installation_bins(self, parents: Iterable[str], prefix: str) -> List[str]:
        bins = []
        for parent in parents:
            try:
                entries = sorted(os.listdir(parent))
            except OSError:
                continue
            for entry in entries:
                if entry.startswith(prefix):
                    bin_dir = os.path.join(parent, entry, "bin")
                    if os.path.isdir(bin_dir):
                        bins.append(bin_dir)
        return bins

    def find_llvm_installations(self) -> List[str]:
        """Compilers in /usr/lib/llvm-*/bin, /opt/llvm-*/bin, /usr/local/llvm-*/bin."""
        found = []
        for bin_dir in self._installation_bins(self.llvm_parents, "llvm-"):
            found.extend(self.search_directory(bin_dir))
            found.extend(self.search_versioned(bin_dir))
        return found

    def find_gcc_installations(self) -> List[str]:
        """Compilers in /opt/gcc-*/bin and /usr/local/gcc-*/bin."""
        found = []
        for bin_dir in self._installation_bins(self.gcc_parents, "gcc-"):
            found.extend(self.search_directory(bin_dir))
            found.extend(self.search_versioned(bin_dir))
        return found


class MacOSSearchStrategy(SearchStrategy):
    """Compiler search for macOS."""

    compiler_names = ("clang", "clang++", "gcc", "g++")
    xcode_applications = ("/Applications/Xcode.app", "/Applications/Xcode-beta.app")
    homebrew_directories = (
        "/usr/local/bin",
        "/opt/homebrew/bin",
        "/opt/local/bin",
        "/opt/homebrew/opt/llvm/bin",
        "/usr/local/opt/llvm/bin",
    )
    homebrew_cellars = ("/usr/local/Cellar", "/opt/homebrew/Cellar")
    deep_scan_roots = ("/usr", "/usr/local", "/opt", "/Users")

    def _sources(self):
        return [
            ("PATH", self.search_path),
            ("Xcode", lambda: self.search_directories(self.find_xcode_directories())),
            ("Homebrew", self.find_homebrew_compilers),
        ]

    def find_xcode_directories(self) -> List[str]:
        """
        Toolchain directories of the active Xcode and installed Xcode apps.

        Uses 'xcode-select -p' to locate the active developer directory.
        """
        directories = []

        result = self.runner.run_command("xcode-select", ["-p"])
        developer_dir = result.stdout.strip() if result.exit_code == 0 else ""
        if developer_dir and os.path.exists(developer_dir):
            directories.extend(
                [
                    os.path.join(
                        developer_dir, "Toolchains", "XcodeDefault.xctoolchain", "usr", "bin"
                    ),
                    os.path.join(developer_dir, "usr", "bin"),
                ]
            )

        for app in self.xcode_applications:
            if os.path.exists(app):
                developer = os.path.join(app, "Contents", "Developer")
                directories.extend(
                    [
                        os.path.join(
                            developer, "Toolchains", "XcodeDefault.xctoolchain", "usr", "bin"
                        ),
                        os.path.join(developer, "usr", "bin"),
                    ]
                )

        return directories

    def find_homebrew_compilers(self) -> List[str]:
        """Compilers from Homebrew/MacPorts bin directories and Cellar versions."""
        found = []
        for directory in self.homebrew_directories:
            if os.path.isdir(directory):
                found.extend(self.search_directory(directory))
                found.extend(self.search_versioned(directory))

        for cellar in self.homebrew_cellars:
            for package in ("llvm", "gcc"):
                package_dir = os.path.join(cellar, package)
                try:
                    versions = sorted(os.listdir(package_dir), reverse=True)
                except OSError:
                    continue
                for version in versions:
                    bin_dir = os.path.join(package_dir, version, "bin")
                    found.extend(self.search_directory(bin_dir))
                    found.extend(self.search_versioned(bin_dir))

        return found


class WindowsSearchStrategy(SearchStrategy):
    """Compiler search for Windows."""

    compiler_names = ("clang.exe", "clang++.exe", "gcc.exe", "g++.exe")
    vendor_directories = (
        "C:\\LLVM\\bin",
        "C:\\Program Files\\LLVM\\bin",
        "C:\\MinGW\\bin",
        "C:\\mingw64\\bin",
        "C:\\msys64\\mingw64\\bin",
        "C:\\msys64\\ucrt64\\bin",
        "C:\\msys64\\clang64\\bin",
    )
    msvc_host_targets = (("Hostx64", "x64"), ("Hostx86", "x86"))
    deep_scan_roots = ("C:\\", "C:\\Program Files", "C:\\Program Files (x86)")

    def _sources(self):
        return [
            ("PATH and vendor directories", self.find_directory_compilers),
            ("MSVC", self.find_msvc_compilers),
        ]

    def find_directory_compilers(self) -> List[str]:
        directories = self.path_entries()
        directories.extend(
            self.environ.get(key, "") for key in ("ProgramFiles", "ProgramFiles(x86)")
        )
        directories.extend(self.vendor_directories)
        return self.search_directories(directories)

    def vswhere_path(self) -> str:
        program_files_x86 = self.environ.get("ProgramFiles(x86)") or "C:\\Program Files (x86)"
        return os.path.join(
            program_files_x86, "Microsoft Visual Studio", "Installer", "vswhere.exe"
        )

    def find_msvc_compilers(self) -> List[str]:
        """
        Locate cl.exe for every Visual Studio installation with C++ tools.

        Runs vswhere to list installations, then checks each
        VC/Tools/MSVC/<version> directory, newest first.
        """
        vswhere = self.vswhere_path()
        if not os.path.exists(vswhere):
            self.logger.debug("vswhere not found, skipping MSVC detection")
            return []

        result = self.runner.run_command(
            vswhere,
            [
                "-products",
                "*",
                "-requires",
                "Microsoft.VisualStudio.Component.VC.Tools.x86.x64",
                "-property",
                "installationPath",
            ],
        )
        if result.exit_code != 0:
            self.logger.debug(f"vswhere returned {result.exit_code}")
            return []

        compilers = []
        for install_path in result.stdout.splitlines():
            install_path = install_path.strip()
            if not install_path:
                continue

            self.logger.debug(f"Found VS installation: {install_path}")
            vc_tools = os.path.join(install_path, "VC", "Tools", "MSVC")
            try:
                versions = sorted(os.listdir(vc_tools), reverse=True)
            except OSError:
                continue

            for version in versions:
                for host, target in self.msvc_host_targets:
                    cl_path = os.path.join(vc_tools, version, "bin", host, target, "cl.exe")
                    if os.path.exists(cl_path):
                        compilers.append(cl_path)

        return compilers


STRATEGIES = {
    "linux": LinuxSearchStrategy,
    "macos": MacOSSearchStrategy,
    "windows": WindowsSearchStrategy,
}


def get_search_strategy(platform: PlatformInfo, **kwargs) -> SearchStrategy:
    """
    Create the search strategy for a platform.

    Args:
        platform: Platform to search on
        **kwargs: Passed to the strategy constructor

    Raises:
        DetectionError: If the platform has no strategy
    """
    strategy_cls = STRATEGIES.get(platform.os)
    if strategy_cls is None:
        raise DetectionError(f"No compiler search strategy for platform: {platform.os}")
    return strategy_cls(**kwargs)
