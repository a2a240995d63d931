"""
Flat projections of decoded artifacts for export.

``project`` is a pure function of the artifact and a time rendering choice.
Sinks needing different timestamp renderings call it again with their own
format instead of reformatting a shared record.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.timestamps import DEFAULT_TIME_FORMAT, format_timestamp, is_null_timestamp
from extractors.system.prefetch.models import NormalizedArtifact, VolumeInfo

EXTRA_VOLUMES_NOTE = "File contains > 2 volumes! Please inspect output from main program for full details!"

# Run-time slots after LastRun
PREVIOUS_RUN_SLOTS = 7


@dataclass(frozen=True)
class ExportRecord:
    """One row of the tabular export; field order is column order."""

    Note: str = ""
    SourceFilename: str = ""
    SourceCreated: str = ""
    SourceModified: str = ""
    SourceAccessed: str = ""
    ExecutableName: str = ""
    Hash: str = ""
    Size: int = 0
    Version: str = ""
    RunCount: int = 0
    LastRun: str = ""
    PreviousRun0: str = ""
    PreviousRun1: str = ""
    PreviousRun2: str = ""
    PreviousRun3: str = ""
    PreviousRun4: str = ""
    PreviousRun5: str = ""
    PreviousRun6: str = ""
    Volume0Name: str = ""
    Volume0Serial: str = ""
    Volume0Created: str = ""
    Volume1Name: str = ""
    Volume1Serial: str = ""
    Volume1Created: str = ""
    Directories: str = ""
    FilesLoaded: str = ""
    ParsingError: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TimelineRecord:
    """One execution of the tracked executable."""

    RunTime: str
    ExecutableName: str

    def to_dict(self) -> Dict[str, Any]:
        return {"RunTime": self.RunTime, "ExecutableName": self.ExecutableName}


EXPORT_FIELDS: List[str] = [f.name for f in fields(ExportRecord)]
TIMELINE_FIELDS: List[str] = [f.name for f in fields(TimelineRecord)]


def _volume_fields(volume: Optional[VolumeInfo], render) -> Tuple[str, str, str]:
    if volume is None:
        return "", "", ""
    created = "" if is_null_timestamp(volume.creation_time) else render(volume.creation_time)
    return volume.device_name, volume.serial_number, created


def project(
    artifact: NormalizedArtifact,
    time_format: str = DEFAULT_TIME_FORMAT,
    *,
    local_time: bool = False,
) -> Tuple[ExportRecord, List[TimelineRecord]]:
    """
    Project an artifact into an export row and its timeline rows.

    Args:
        artifact: Decoded artifact
        time_format: strftime pattern, or core.timestamps.ISO_FORMAT
        local_time: Render timestamps in the host timezone

    Returns:
        (ExportRecord, list of TimelineRecord, one per run time)
    """

    def render(value: Optional[datetime]) -> str:
        return format_timestamp(value, time_format, local_time=local_time)

    run_times = list(artifact.run_times)
    previous = [render(value) for value in run_times[1:1 + PREVIOUS_RUN_SLOTS]]
    previous += [""] * (PREVIOUS_RUN_SLOTS - len(previous))

    volumes = list(artifact.volumes)
    volume0 = _volume_fields(volumes[0] if len(volumes) > 0 else None, render)
    volume1 = _volume_fields(volumes[1] if len(volumes) > 1 else None, render)

    if artifact.partial:
        directories = ""
        files_loaded = ""
    else:
        directories = ", ".join(artifact.directories)
        files_loaded = ", ".join(artifact.filenames)

    record = ExportRecord(
        Note=EXTRA_VOLUMES_NOTE if len(volumes) > 2 else "",
        SourceFilename=artifact.source_path,
        SourceCreated=render(artifact.source_created),
        SourceModified=render(artifact.source_modified),
        SourceAccessed=render(artifact.source_accessed),
        ExecutableName=artifact.executable_name,
        Hash=artifact.hash,
        Size=artifact.file_size,
        Version=artifact.version,
        RunCount=artifact.run_count,
        LastRun=render(artifact.last_run),
        PreviousRun0=previous[0],
        PreviousRun1=previous[1],
        PreviousRun2=previous[2],
        PreviousRun3=previous[3],
        PreviousRun4=previous[4],
        PreviousRun5=previous[5],
        PreviousRun6=previous[6],
        Volume0Name=volume0[0],
        Volume0Serial=volume0[1],
        Volume0Created=volume0[2],
        Volume1Name=volume1[0],
        Volume1Serial=volume1[1],
        Volume1Created=volume1[2],
        Directories=directories,
        FilesLoaded=files_loaded,
        ParsingError=artifact.partial,
    )

    executable_path = artifact.resolve_executable_path()
    timeline = [TimelineRecord(RunTime=render(value), ExecutableName=executable_path) for value in run_times]
    return record, timeline


class RecordProjector:
    """Binds a time format to ``project`` for a sink."""

    def __init__(self, time_format: str = DEFAULT_TIME_FORMAT, local_time: bool = False) -> None:
        self.time_format = time_format
        self.local_time = local_time

    def project(self, artifact: NormalizedArtifact) -> Tuple[ExportRecord, List[TimelineRecord]]:
        return project(artifact, self.time_format, local_time=self.local_time)
