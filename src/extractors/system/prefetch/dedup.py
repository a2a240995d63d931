"""Content-hash deduplication of prefetch candidates."""

from __future__ import annotations

from typing import Set

from core.hashing import hash_stream
from core.logging import get_logger
from extractors.exceptions import DigestError

from .models import Candidate

LOGGER = get_logger("extractors.prefetch.dedup")


class Deduplicator:
    """
    First-seen-wins filter keyed on the SHA-1 of a candidate's bytes.

    A disabled deduplicator accepts everything without reading the candidate.
    """

    def __init__(self, enabled: bool = True, algorithm: str = "sha1") -> None:
        self.enabled = enabled
        self.algorithm = algorithm
        self._seen: Set[str] = set()
        self.rejected = 0

    def digest(self, candidate: Candidate) -> str:
        try:
            with candidate.open() as handle:
                return hash_stream(handle, alg=self.algorithm)
        except OSError as exc:
            raise DigestError(candidate.label, str(exc)) from exc

    def accept(self, candidate: Candidate) -> bool:
        """Return False when an identical candidate was already accepted this run."""
        if not self.enabled:
            return True
        key = self.digest(candidate)
        if key in self._seen:
            self.rejected += 1
            LOGGER.info("Skipping '%s': duplicate content (%s %s)", candidate.label, self.algorithm, key)
            return False
        self._seen.add(key)
        return True

    def __len__(self) -> int:
        return len(self._seen)
