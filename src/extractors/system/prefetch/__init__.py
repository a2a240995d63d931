"""
Windows Prefetch batch processing.

Prefetch (*.pf) files record the executable name, run count, last run times,
the volumes touched and every file loaded during the first seconds of a
program's execution.

Components:
    - Discoverer: recursive candidate enumeration (including alternate streams)
    - Deduplicator: first-seen-wins content hash filter
    - SnapshotCorrelator: mirrors live paths into mounted shadow copies
    - SccaDecoder: libscca-backed ArtifactDecoder
    - BatchProcessor: dedup + decode with per-candidate failure isolation
    - Classifier: keyword/executable tags for console emphasis
"""

from .models import Candidate, NormalizedArtifact, Provenance, VolumeInfo
from .decoder import ArtifactDecoder, SccaDecoder, version_label
from .discovery import Discoverer, list_alternate_streams
from .dedup import Deduplicator
from .snapshots import (
    SnapshotCorrelator,
    SnapshotMount,
    VssMounter,
    is_elevated,
    snapshot_session,
)
from .classifier import Classifier, classify, classify_file_reference, parse_keywords
from .processor import BatchObserver, BatchProcessor, BatchReport, FailureEntry

__all__ = [
    "Candidate",
    "NormalizedArtifact",
    "Provenance",
    "VolumeInfo",
    "ArtifactDecoder",
    "SccaDecoder",
    "version_label",
    "Discoverer",
    "list_alternate_streams",
    "Deduplicator",
    "SnapshotCorrelator",
    "SnapshotMount",
    "VssMounter",
    "is_elevated",
    "snapshot_session",
    "Classifier",
    "classify",
    "classify_file_reference",
    "parse_keywords",
    "BatchObserver",
    "BatchProcessor",
    "BatchReport",
    "FailureEntry",
]
