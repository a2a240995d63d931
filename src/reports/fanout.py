"""
Fan-out of processed artifacts to every active export sink.

Failure isolation:
    - a sink that cannot be opened is disabled; the other sinks proceed
    - a write failure for one artifact on one sink is logged with the
      artifact's path; the same artifact is still written to the other sinks
      and later artifacts are still written to this sink
    - every opened sink is closed at the end, including when the export
      loop itself raises
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from core.logging import get_logger
from core.timestamps import DEFAULT_TIME_FORMAT
from extractors.system.prefetch.processor import BatchReport

from .paths import sanitize_label, timeline_path_for
from .projection import RecordProjector
from .sinks import (
    DocumentTreeSink,
    ExportSink,
    JsonLinesSink,
    PrettyJsonSink,
    TabularSink,
    TimelineSink,
)

LOGGER = get_logger("reports.fanout")

OUTPUT_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass
class ExportOptions:
    """
    Which sinks are active and where they write.

    Attributes:
        csv_dir: Directory for the tabular and timeline files (None disables both)
        csv_name: Tabular file name override
        json_dir: Directory for the JSON lines file (None disables it)
        json_name: JSON lines file name override
        json_pretty: Write one indented JSON file per artifact into json_dir
            instead of the JSON lines file
        html_dir: Parent directory for the document tree (None disables it)
        source_label: Input description used to name the document tree directory
        time_format: strftime pattern for human-facing sinks
        local_time: Render human-facing timestamps in the host timezone
        output_prefix: Base name of generated files
    """

    csv_dir: Optional[Path] = None
    csv_name: Optional[str] = None
    json_dir: Optional[Path] = None
    json_name: Optional[str] = None
    json_pretty: bool = False
    html_dir: Optional[Path] = None
    source_label: str = "input"
    time_format: str = DEFAULT_TIME_FORMAT
    local_time: bool = False
    output_prefix: str = "PFSifter_Output"

    @property
    def has_sinks(self) -> bool:
        return any(d is not None for d in (self.csv_dir, self.json_dir, self.html_dir))


@dataclass
class ExportResult:
    """
    Result of an export run.

    Attributes:
        rows_written: Rows written per sink name
        outputs: Output path per sink name
        open_failures: Sink name -> reason for sinks that could not be opened
        write_failures: (sink name, artifact path, reason) per failed write
    """

    rows_written: Dict[str, int] = field(default_factory=dict)
    outputs: Dict[str, Path] = field(default_factory=dict)
    open_failures: Dict[str, str] = field(default_factory=dict)
    write_failures: List[tuple[str, str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.open_failures and not self.write_failures


def build_sinks(options: ExportOptions, started_at: datetime) -> List[ExportSink]:
    """Create the sinks selected by ``options``; file names carry the batch start time."""
    stamp = started_at.strftime(OUTPUT_TIMESTAMP_FORMAT)
    human = RecordProjector(time_format=options.time_format, local_time=options.local_time)
    sinks: List[ExportSink] = []

    if options.csv_dir is not None:
        csv_path = options.csv_dir / (options.csv_name or f"{stamp}_{options.output_prefix}.csv")
        sinks.append(TabularSink(csv_path, human))
        sinks.append(TimelineSink(timeline_path_for(csv_path), human))

    if options.json_dir is not None and options.json_pretty:
        sinks.append(PrettyJsonSink(options.json_dir, stamp))
    elif options.json_dir is not None:
        json_path = options.json_dir / (options.json_name or f"{stamp}_{options.output_prefix}.json")
        sinks.append(JsonLinesSink(json_path))

    if options.html_dir is not None:
        directory = options.html_dir / f"{stamp}_{options.output_prefix}_for_{sanitize_label(options.source_label)}"
        sinks.append(DocumentTreeSink(directory, human))

    return sinks


class ExportFanout:
    """Writes every successful artifact of a batch to every open sink."""

    def __init__(self, sinks: Sequence[ExportSink]) -> None:
        self.sinks = list(sinks)

    @classmethod
    def from_options(cls, options: ExportOptions, started_at: datetime) -> "ExportFanout":
        return cls(build_sinks(options, started_at))

    def export(self, report: BatchReport) -> ExportResult:
        result = ExportResult()
        opened: List[ExportSink] = []

        try:
            for sink in self.sinks:
                try:
                    sink.open()
                except Exception as exc:
                    LOGGER.error("Unable to open %s output '%s', disabling it: %s", sink.name, sink.path, exc)
                    result.open_failures[sink.name] = str(exc)
                    continue
                opened.append(sink)
                result.outputs[sink.name] = sink.path

            for artifact in report.successes:
                for sink in opened:
                    try:
                        sink.write(artifact)
                    except Exception as exc:
                        LOGGER.error(
                            "Error writing '%s' to %s output: %s", artifact.source_path, sink.name, exc
                        )
                        result.write_failures.append((sink.name, artifact.source_path, str(exc)))
        finally:
            for sink in opened:
                try:
                    sink.close()
                except Exception as exc:
                    LOGGER.error("Error closing %s output '%s': %s", sink.name, sink.path, exc)
                result.rows_written[sink.name] = sink.rows_written

        LOGGER.info(
            "Exported %d record(s) to %d sink(s)", len(report.successes), len(opened)
        )
        return result
