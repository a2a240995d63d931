"""
Batch processing of prefetch candidates.

Per-candidate state machine:

    Discovered -> Rejected                      (duplicate content)
    Discovered -> Accepted -> Success
                           -> UnsupportedFormat (valid artifact, newer decoder needed)
                           -> OtherError        (corrupt, unreadable, anything else)

Every terminal state is recorded on the BatchReport; nothing is retried and
one candidate's failure never stops the batch.
"""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Protocol

from core.logging import get_logger
from extractors.exceptions import DecodeError, DigestError, UnsupportedFormatError

from .decoder import ArtifactDecoder
from .dedup import Deduplicator
from .models import Candidate, NormalizedArtifact

LOGGER = get_logger("extractors.prefetch.processor")

FAILURE_UNSUPPORTED_FORMAT = "unsupported-format"
FAILURE_DECODE = "decode-error"
FAILURE_DIGEST = "digest-error"
FAILURE_OTHER = "error"


@dataclass(frozen=True, slots=True)
class FailureEntry:
    """A candidate that reached a failure state."""

    path: str
    reason: str
    kind: str = FAILURE_OTHER


@dataclass
class BatchReport:
    """
    Accumulated outcome of one batch.

    Attributes:
        successes: Decoded artifacts, in processing order
        failures: Failure entries, in processing order
        discovered: Candidates drained from discovery
        duplicates: Candidates rejected by the deduplicator
        started_at: UTC time the batch started (also used to name output files)
        elapsed_seconds: Wall time spent processing
    """

    successes: List[NormalizedArtifact] = field(default_factory=list)
    failures: List[FailureEntry] = field(default_factory=list)
    discovered: int = 0
    duplicates: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed_seconds: float = 0.0

    @property
    def processed_count(self) -> int:
        return len(self.successes)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def attempted_count(self) -> int:
        return self.processed_count + self.failed_count

    def add_failure(self, path: str, reason: str, kind: str = FAILURE_OTHER) -> None:
        self.failures.append(FailureEntry(path=path, reason=reason, kind=kind))


class BatchObserver(Protocol):
    """
    Per-record callbacks for interactive narration.

    Implementations can print (ConsoleRenderer) or collect (tests).
    """

    def on_record(self, artifact: NormalizedArtifact, candidate: Candidate, elapsed: float) -> None:
        ...

    def on_failure(self, failure: FailureEntry) -> None:
        ...


class BatchProcessor:
    """Drains candidates through dedup and decode into a BatchReport."""

    def __init__(
        self,
        decoder: ArtifactDecoder,
        deduplicator: Optional[Deduplicator] = None,
        observer: Optional[BatchObserver] = None,
    ) -> None:
        self.decoder = decoder
        self.deduplicator = deduplicator if deduplicator is not None else Deduplicator(enabled=False)
        self.observer = observer

    def process(self, candidates: Iterable[Candidate], report: Optional[BatchReport] = None) -> BatchReport:
        """
        Process every candidate and return the (possibly shared) report.

        Passing an existing report lets several candidate sources (live root,
        then snapshots) accumulate into one batch.
        """
        report = report if report is not None else BatchReport()
        start = time.perf_counter()
        for candidate in candidates:
            report.discovered += 1
            self._process_one(candidate, report)
        report.elapsed_seconds += time.perf_counter() - start
        return report

    def _process_one(self, candidate: Candidate, report: BatchReport) -> None:
        try:
            accepted = self.deduplicator.accept(candidate)
        except DigestError as exc:
            self._fail(report, candidate, str(exc), FAILURE_DIGEST)
            return
        if not accepted:
            report.duplicates += 1
            return

        LOGGER.info("Processing '%s'", candidate.label)
        start = time.perf_counter()
        try:
            artifact = self._decode(candidate)
        except UnsupportedFormatError as exc:
            self._fail(report, candidate, str(exc), FAILURE_UNSUPPORTED_FORMAT)
            return
        except DecodeError as exc:
            self._fail(report, candidate, str(exc), FAILURE_DECODE)
            return
        except Exception as exc:
            LOGGER.debug("Unexpected error decoding '%s'", candidate.label, exc_info=True)
            self._fail(report, candidate, f"Error opening '{candidate.label}'. Message: {exc}", FAILURE_OTHER)
            return

        if artifact.source_path != candidate.display_path:
            artifact = dataclasses.replace(artifact, source_path=candidate.display_path)
        report.successes.append(artifact)

        if self.observer is not None:
            self.observer.on_record(artifact, candidate, time.perf_counter() - start)

    def _decode(self, candidate: Candidate) -> NormalizedArtifact:
        if candidate.is_stream:
            with candidate.open() as stream:
                return self.decoder.open_stream(stream, candidate.label)
        return self.decoder.open(candidate.path)

    def _fail(self, report: BatchReport, candidate: Candidate, reason: str, kind: str) -> None:
        LOGGER.error("Failed to process '%s': %s", candidate.label, reason)
        report.add_failure(candidate.label, reason, kind)
        if self.observer is not None:
            self.observer.on_failure(report.failures[-1])
