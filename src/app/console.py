"""
Console narration of processed artifacts.

ConsoleRenderer implements the BatchObserver callbacks. Output goes to the
``pfsifter.console`` logger; emphasized lines carry the classification tag
in ``extra`` so ConsoleFormatter can highlight them.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from core.logging import CONSOLE_LOGGER_NAME
from core.timestamps import DEFAULT_TIME_FORMAT, format_timestamp, is_null_timestamp
from extractors.system.prefetch.classifier import TAG_NORMAL, Classifier
from extractors.system.prefetch.models import Candidate, NormalizedArtifact
from extractors.system.prefetch.processor import BatchReport, FailureEntry

RULE = "-" * 32


class ConsoleRenderer:
    """Human-readable dump of each artifact plus the batch summary."""

    def __init__(
        self,
        keywords: Iterable[str],
        time_format: str = DEFAULT_TIME_FORMAT,
        local_time: bool = False,
        logger: Optional[logging.Logger] = None,
        quiet: bool = False,
    ) -> None:
        self.classifier = Classifier(keywords)
        self.time_format = time_format
        self.local_time = local_time
        self.quiet = quiet
        self.logger = logger or logging.getLogger(CONSOLE_LOGGER_NAME)

    def _ts(self, value) -> str:
        return format_timestamp(value, self.time_format, local_time=self.local_time)

    def _line(self, message: str = "", tag: str = TAG_NORMAL) -> None:
        if tag == TAG_NORMAL:
            self.logger.info(message)
        else:
            self.logger.info(message, extra={"tag": tag})

    def on_record(self, artifact: NormalizedArtifact, candidate: Candidate, elapsed: float) -> None:
        self._line(f"Created on: {self._ts(artifact.source_created)}")
        self._line(f"Modified on: {self._ts(artifact.source_modified)}")
        self._line(f"Last accessed on: {self._ts(artifact.source_accessed)}")
        if candidate.provenance.tag != "live":
            self._line(f"Provenance: {candidate.provenance.tag}")
        self._line()

        self._line(f"Executable name: {artifact.executable_name}")
        self._line(f"Hash: {artifact.hash}")
        self._line(f"File size (bytes): {artifact.file_size:,}")
        self._line(f"Version: {artifact.version}")
        self._line()

        self._line(f"Run count: {artifact.run_count:,}")
        self._line(f"Last run: {self._ts(artifact.last_run)}")
        if len(artifact.run_times) > 1:
            others = ", ".join(self._ts(value) for value in artifact.run_times[1:])
            self._line(f"Other run times: {others}")

        if artifact.partial:
            self._line()
            self._line("Warning: file was only partially decoded; directory and file tables may be incomplete")

        # Quiet mode keeps the header block only
        if not self.quiet:
            self._tables(artifact)

        self._line()
        self._line(f"{RULE} Processed '{artifact.source_path}' in {elapsed:.4f} seconds {RULE}")
        self._line()

    def _tables(self, artifact: NormalizedArtifact) -> None:
        self._line()
        self._line("Volume information:")
        self._line()
        for number, volume in enumerate(artifact.volumes):
            created = "" if is_null_timestamp(volume.creation_time) else self._ts(volume.creation_time)
            self._line(
                f"#{number}: Name: {volume.device_name} Serial: {volume.serial_number} "
                f"Created: {created} Directories: {len(volume.directories):,} "
                f"File references: {volume.file_reference_count:,}"
            )
        self._line()

        directories = self.classifier.directories(artifact)
        self._line(f"Directories referenced: {len(directories):,}")
        self._line()
        width = len(str(len(directories)))
        for index, (name, tag) in enumerate(directories):
            self._line(f"{index:0{width}d}: {name}", tag)
        self._line()

        filenames = self.classifier.filenames(artifact)
        self._line(f"Files referenced: {len(filenames):,}")
        self._line()
        width = len(str(len(filenames)))
        for index, (name, tag) in enumerate(filenames):
            self._line(f"{index:0{width}d}: {name}", tag)

    def on_failure(self, failure: FailureEntry) -> None:
        self.logger.error(failure.reason)

    def summarize(self, report: BatchReport) -> None:
        self._line()
        self._line(
            f"Processed {report.processed_count:,} out of {report.attempted_count:,} files "
            f"in {report.elapsed_seconds:.4f} seconds"
        )
        if report.duplicates:
            self._line(f"Skipped {report.duplicates:,} duplicate file(s)")
        if report.failures:
            self._line()
            self._line("Failed files")
            for failure in report.failures:
                self._line(f"  {failure.path} ==> ({failure.reason})")
