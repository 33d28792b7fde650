"""
Per-detection deduplication registry.

One registry is created for every detection call and shared by all search
strategies feeding that call. It tracks the canonical paths already probed and
the best candidate registered for each fingerprint ('<type>-<version>').

Decision rules for a candidate with canonical path R and fingerprint F:

1. R already seen and F already registered: duplicate, discard.
2. R already seen but F new: accept (one binary serving another language
   role, e.g. clang and clang++).
3. R is recorded as seen.
4. F registered with priority P: a strictly higher priority replaces the
   winner and releases the old winner's canonical path; otherwise discard
   (first seen wins ties).
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Set


class RegistrationOutcome(Enum):
    """Result of offering a candidate to the registry."""

    ACCEPTED = "accepted"
    REPLACED = "replaced"
    DUPLICATE = "duplicate"
    LOWER_PRIORITY = "lower_priority"

    @property
    def accepted(self) -> bool:
        return self in (RegistrationOutcome.ACCEPTED, RegistrationOutcome.REPLACED)


@dataclass(frozen=True)
class RegisteredCompiler:
    """Current winner for a fingerprint."""

    path: str
    priority: int
    real_path: str


class DedupRegistry:
    """
    Deduplication state for one detection run.

    All mutation goes through register(), which holds a lock for the whole
    check-and-replace sequence so concurrent probes stay consistent.

    Example:
        >>> registry = DedupRegistry()
        >>> registry.register("/usr/bin/clang-19", "/usr/bin/clang-19", "clang-19.1.0", 270)
        <RegistrationOutcome.ACCEPTED: 'accepted'>
        >>> registry.register("/opt/clang/bin/clang", "/opt/clang/bin/clang", "clang-19.1.0", 290)
        <RegistrationOutcome.REPLACED: 'replaced'>
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._lock = threading.Lock()
        self._real_paths_seen: Set[str] = set()
        self._best_by_fingerprint: Dict[str, RegisteredCompiler] = {}
        self.logger = logger or logging.getLogger(__name__)

    def register(
        self, path: str, real_path: str, fingerprint: str, priority: int
    ) -> RegistrationOutcome:
        """
        Offer a probed candidate to the registry.

        Args:
            path: Candidate path as found by the search
            real_path: Canonical path of the candidate binary
            fingerprint: '<type>-<version>' key
            priority: Candidate priority score

        Returns:
            RegistrationOutcome describing whether the candidate survives
        """
        with self._lock:
            if real_path in self._real_paths_seen:
                if fingerprint in self._best_by_fingerprint:
                    self.logger.debug(
                        f"Skipping duplicate compiler: {path} ({fingerprint}) -> {real_path}"
                    )
                    return RegistrationOutcome.DUPLICATE
                self.logger.debug(
                    f"Allowing additional compiler role: {path} ({fingerprint}) -> {real_path}"
                )
            self._real_paths_seen.add(real_path)

            outcome = RegistrationOutcome.ACCEPTED
            existing = self._best_by_fingerprint.get(fingerprint)
            if existing is not None:
                if priority <= existing.priority:
                    self.logger.debug(
                        f"Skipping lower priority compiler: {path} (priority: {priority}, "
                        f"existing: {existing.path} with priority: {existing.priority})"
                    )
                    return RegistrationOutcome.LOWER_PRIORITY

                self.logger.debug(
                    f"Replacing lower priority compiler: {existing.path} with {path} "
                    f"(priority: {priority} > {existing.priority})"
                )
                self._real_paths_seen.discard(existing.real_path)
                outcome = RegistrationOutcome.REPLACED

            self._best_by_fingerprint[fingerprint] = RegisteredCompiler(
                path=path, priority=priority, real_path=real_path
            )
            return outcome

    def winner(self, fingerprint: str) -> Optional[RegisteredCompiler]:
        """Current winner for a fingerprint, if any."""
        with self._lock:
            return self._best_by_fingerprint.get(fingerprint)

    def is_winner(self, path: str, fingerprint: str) -> bool:
        """Whether path is still the registered winner for fingerprint."""
        entry = self.winner(fingerprint)
        return entry is not None and entry.path == path

    def has_seen(self, real_path: str) -> bool:
        with self._lock:
            return real_path in self._real_paths_seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._best_by_fingerprint)
