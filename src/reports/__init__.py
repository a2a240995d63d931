"""Reports module - export of processed prefetch artifacts.

This module provides:
- Flat projections of artifacts (projection.py)
- Output sinks: CSV summary, CSV timeline, JSON lines, XHTML document (sinks.py)
- Fan-out of a batch to every active sink (fanout.py)
- XHTML templates in reports/templates/ and style assets in reports/static/
"""

from core.app_version import get_app_version

__version__ = get_app_version()

from .projection import (
    EXPORT_FIELDS,
    TIMELINE_FIELDS,
    ExportRecord,
    RecordProjector,
    TimelineRecord,
    project,
)
from .sinks import (
    DocumentTreeSink,
    ExportSink,
    JsonLinesSink,
    PrettyJsonSink,
    TabularSink,
    TimelineSink,
)
from .fanout import ExportFanout, ExportOptions, ExportResult, build_sinks
