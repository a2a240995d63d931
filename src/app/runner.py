"""
End-to-end batch run: discovery -> dedup -> decode -> export.

Environment problems (missing input, missing rights for snapshot
processing) raise EnvironmentCheckError before anything is mounted or
written. When snapshots are processed, mounting brackets the whole run and
unmounting happens on every exit path.
"""

from __future__ import annotations

import itertools
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import Iterator, List, Optional

from core.logging import get_logger
from extractors.exceptions import EnvironmentCheckError
from extractors.system.prefetch.decoder import ArtifactDecoder
from extractors.system.prefetch.dedup import Deduplicator
from extractors.system.prefetch.discovery import Discoverer
from extractors.system.prefetch.models import Candidate
from extractors.system.prefetch.processor import BatchObserver, BatchProcessor, BatchReport
from extractors.system.prefetch.snapshots import (
    SnapshotCorrelator,
    SnapshotMount,
    SnapshotMounter,
    VssMounter,
    snapshot_session,
)
from reports.fanout import ExportFanout, ExportOptions, ExportResult

LOGGER = get_logger("app.runner")


@dataclass
class RunSettings:
    """
    Everything one batch run needs.

    Exactly one of ``file`` and ``directory`` must be set.
    """

    file: Optional[Path] = None
    directory: Optional[Path] = None
    extension: str = ".pf"
    dedupe: bool = True
    dedupe_algorithm: str = "sha1"
    export: ExportOptions = field(default_factory=ExportOptions)
    process_snapshots: bool = False
    drive_letter: Optional[str] = None
    mount_dir_name: str = "___pfsifterVssMount"
    snapshot_volume_root: Optional[Path] = None
    snapshot_mount_root: Optional[Path] = None
    require_elevation: bool = True

    @property
    def target(self) -> Path:
        return self.file if self.file is not None else self.directory


@dataclass
class RunResult:
    report: BatchReport
    export: Optional[ExportResult] = None
    snapshots: List[SnapshotMount] = field(default_factory=list)


def check_environment(settings: RunSettings) -> None:
    """Fail fast on inputs that make the batch impossible."""
    if settings.file is None and settings.directory is None:
        raise EnvironmentCheckError("Either a file or a directory to process is required")
    if settings.file is not None and settings.directory is not None:
        raise EnvironmentCheckError("Specify either a file or a directory, not both")
    if settings.file is not None and not settings.file.is_file():
        raise EnvironmentCheckError(f"File '{settings.file}' not found")
    if settings.directory is not None and not settings.directory.is_dir():
        raise EnvironmentCheckError(f"Directory '{settings.directory}' not found")


def _volume_root(settings: RunSettings) -> Path:
    if settings.snapshot_volume_root is not None:
        return settings.snapshot_volume_root
    drive = settings.drive_letter or PureWindowsPath(str(settings.target.resolve())).drive.rstrip(":")
    if not drive:
        raise EnvironmentCheckError(
            f"Unable to determine the volume of '{settings.target}' for snapshot processing"
        )
    return Path(f"{drive}:\\")


def _live_candidates(settings: RunSettings, discoverer: Discoverer) -> Iterator[Candidate]:
    if settings.file is not None:
        yield from discoverer.candidates_for_file(settings.file)
    else:
        LOGGER.info("Looking for '%s' files in '%s'", settings.extension, settings.directory)
        yield from discoverer.iter_candidates(settings.directory)


def run_pipeline(
    settings: RunSettings,
    decoder: ArtifactDecoder,
    *,
    observer: Optional[BatchObserver] = None,
    mounter: Optional[SnapshotMounter] = None,
    discoverer: Optional[Discoverer] = None,
) -> RunResult:
    """Run one batch and export it."""
    check_environment(settings)

    discoverer = discoverer or Discoverer(extension=settings.extension)
    processor = BatchProcessor(
        decoder,
        Deduplicator(enabled=settings.dedupe, algorithm=settings.dedupe_algorithm),
        observer=observer,
    )
    report = BatchReport()
    result = RunResult(report=report)

    with ExitStack() as stack:
        candidates: Iterator[Candidate] = _live_candidates(settings, discoverer)

        if settings.process_snapshots:
            volume_root = _volume_root(settings)
            mount_root = settings.snapshot_mount_root or (volume_root / settings.mount_dir_name)
            drive_letter = settings.drive_letter or str(volume_root)[:1]
            mounts = stack.enter_context(
                snapshot_session(
                    mounter or VssMounter(),
                    drive_letter,
                    mount_root,
                    require_elevation=settings.require_elevation,
                )
            )
            result.snapshots = list(mounts)
            correlator = SnapshotCorrelator(volume_root, mounts, mount_root, discoverer)
            # Live candidates first so first-seen dedup keeps the live copy
            candidates = itertools.chain(candidates, correlator.correlate(settings.target))

        processor.process(candidates, report)
        LOGGER.info(
            "Processed %d of %d candidate(s), %d failed, %d duplicate(s) skipped",
            report.processed_count,
            report.attempted_count,
            report.failed_count,
            report.duplicates,
        )

        if settings.export.has_sinks and report.successes:
            result.export = ExportFanout.from_options(settings.export, report.started_at).export(report)

    return result
