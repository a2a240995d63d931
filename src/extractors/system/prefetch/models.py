"""
Data model for prefetch batch processing.

Candidate and Provenance describe *where* bytes came from; NormalizedArtifact
describes *what* a decoder found in them. Artifacts are frozen: pipeline
stages derive new values (projections, classifications) instead of
mutating them.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePath
from typing import BinaryIO, Optional, Tuple

PROVENANCE_LIVE = "live"
PROVENANCE_SNAPSHOT = "snapshot"

SNAPSHOT_DISPLAY_PREFIX = "SNAPSHOT"


@dataclass(frozen=True, slots=True)
class Provenance:
    """
    Origin of a candidate.

    Attributes:
        kind: PROVENANCE_LIVE or PROVENANCE_SNAPSHOT
        snapshot_id: Snapshot directory name under mount_root (e.g. "VSS3")
        mount_root: Directory the snapshots are mounted under
        stream_name: Alternate data stream name when the bytes are not the primary stream
    """

    kind: str = PROVENANCE_LIVE
    snapshot_id: Optional[str] = None
    mount_root: Optional[Path] = None
    stream_name: Optional[str] = None

    @classmethod
    def snapshot(cls, snapshot_id: str, mount_root: Path) -> "Provenance":
        return cls(kind=PROVENANCE_SNAPSHOT, snapshot_id=snapshot_id, mount_root=mount_root)

    @property
    def is_snapshot(self) -> bool:
        return self.kind == PROVENANCE_SNAPSHOT

    @property
    def snapshot_root(self) -> Optional[Path]:
        if not self.is_snapshot or self.mount_root is None or self.snapshot_id is None:
            return None
        return self.mount_root / self.snapshot_id

    @property
    def tag(self) -> str:
        """Provenance tag: ``live`` or ``snapshot:<id>``, plus ``:stream`` when applicable."""
        base = f"{PROVENANCE_SNAPSHOT}:{self.snapshot_id}" if self.is_snapshot else PROVENANCE_LIVE
        if self.stream_name:
            return f"{base}:{self.stream_name}"
        return base

    def with_stream(self, stream_name: str) -> "Provenance":
        return Provenance(
            kind=self.kind,
            snapshot_id=self.snapshot_id,
            mount_root=self.mount_root,
            stream_name=stream_name,
        )


@dataclass(frozen=True, slots=True)
class Candidate:
    """A discovered path (or in-memory stream) queued for possible decoding."""

    path: Path
    provenance: Provenance = field(default_factory=Provenance)
    data: Optional[bytes] = None

    @property
    def is_stream(self) -> bool:
        return self.data is not None

    @property
    def label(self) -> str:
        """Internal identifier for logs and failure entries."""
        if self.provenance.stream_name:
            return f"{self.path}:{self.provenance.stream_name}"
        return str(self.path)

    @property
    def display_path(self) -> str:
        """
        Path as it should appear in reports.

        Snapshot candidates drop their mount location: a file resolved at
        ``<mount_root>/<id>/sub/path`` renders as ``SNAPSHOT/sub/path``.
        """
        rendered = str(self.path)
        snapshot_root = self.provenance.snapshot_root
        if snapshot_root is not None:
            try:
                relative = PurePath(self.path).relative_to(snapshot_root)
            except ValueError:
                relative = None
            if relative is not None:
                rendered = str(PurePath(SNAPSHOT_DISPLAY_PREFIX) / relative)
        if self.provenance.stream_name:
            rendered = f"{rendered}:{self.provenance.stream_name}"
        return rendered

    def open(self) -> BinaryIO:
        """Open the candidate's bytes for reading."""
        if self.data is not None:
            return io.BytesIO(self.data)
        return self.path.open("rb")


@dataclass(frozen=True, slots=True)
class VolumeInfo:
    """One volume descriptor recorded in an artifact."""

    device_name: str
    serial_number: str
    creation_time: Optional[datetime]
    directories: Tuple[str, ...] = ()
    file_reference_count: int = 0


@dataclass(frozen=True, slots=True)
class NormalizedArtifact:
    """
    Decoded prefetch artifact.

    run_times are ordered most-recent first. ``partial`` is set when the
    header decoded but some tables (volumes, filenames) could not be read.
    """

    source_path: str
    executable_name: str
    hash: str
    version: str
    run_count: int
    run_times: Tuple[datetime, ...] = ()
    volumes: Tuple[VolumeInfo, ...] = ()
    filenames: Tuple[str, ...] = ()
    file_size: int = 0
    source_created: Optional[datetime] = None
    source_modified: Optional[datetime] = None
    source_accessed: Optional[datetime] = None
    partial: bool = False

    @property
    def last_run(self) -> Optional[datetime]:
        return self.run_times[0] if self.run_times else None

    @property
    def directories(self) -> Tuple[str, ...]:
        """All directory names across volumes, in volume order."""
        return tuple(name for volume in self.volumes for name in volume.directories)

    def resolve_executable_path(self) -> str:
        """First referenced file ending with the executable name, else the bare name."""
        needle = self.executable_name.lower()
        if needle:
            for filename in self.filenames:
                if filename.lower().endswith(needle):
                    return filename
        return self.executable_name
