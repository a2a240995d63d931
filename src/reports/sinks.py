"""
Export sinks.

Every sink follows the same lifecycle driven by ExportFanout:

    open()  - create the destination directory, open the file, write the header
    write() - project one artifact and append it
    close() - write any footer, flush and release the handle

Each sink owns its RecordProjector, so sinks that render timestamps
differently (the JSON lines sink uses ISO 8601) never share a record.
"""

from __future__ import annotations

import csv
import json
import shutil
from abc import ABC, abstractmethod
from pathlib import Path, PureWindowsPath
from typing import List, Optional, TextIO

from jinja2 import Environment, FileSystemLoader

from core.logging import get_logger
from core.timestamps import ISO_FORMAT
from extractors.system.prefetch.models import NormalizedArtifact

from .paths import STYLE_ASSETS, get_static_dir, get_templates_dir
from .projection import EXPORT_FIELDS, TIMELINE_FIELDS, RecordProjector

LOGGER = get_logger("reports.sinks")

SINK_TABULAR = "tabular"
SINK_TIMELINE = "tabular-timeline"
SINK_STRUCTURED_LINES = "structured-lines"
SINK_STRUCTURED_PRETTY = "structured-pretty"
SINK_DOCUMENT_TREE = "document-tree"


class ExportSink(ABC):
    """Base class for one output destination."""

    name: str = ""

    def __init__(self, path: Path, projector: Optional[RecordProjector] = None) -> None:
        self.path = path
        self.projector = projector or RecordProjector()
        self.rows_written = 0
        self._handle: Optional[TextIO] = None

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", encoding="utf-8", newline="")
        try:
            self.write_header()
        except Exception:
            self._handle.close()
            self._handle = None
            raise
        LOGGER.info("Writing %s output to '%s'", self.name, self.path)

    def write_header(self) -> None:
        """Write anything that precedes the first record."""

    def write_footer(self) -> None:
        """Write anything that follows the last record."""

    @abstractmethod
    def write(self, artifact: NormalizedArtifact) -> None:
        ...

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self.write_footer()
            self._handle.flush()
        finally:
            self._handle.close()
            self._handle = None


class TabularSink(ExportSink):
    """Comma separated summary, one row per artifact."""

    name = SINK_TABULAR

    def write_header(self) -> None:
        self._writer = csv.DictWriter(self._handle, fieldnames=EXPORT_FIELDS)
        self._writer.writeheader()

    def write(self, artifact: NormalizedArtifact) -> None:
        record, _ = self.projector.project(artifact)
        self._writer.writerow(record.to_dict())
        self.rows_written += 1


class TimelineSink(ExportSink):
    """Comma separated timeline, one row per recorded run time."""

    name = SINK_TIMELINE

    def write_header(self) -> None:
        self._writer = csv.DictWriter(self._handle, fieldnames=TIMELINE_FIELDS)
        self._writer.writeheader()

    def write(self, artifact: NormalizedArtifact) -> None:
        _, timeline = self.projector.project(artifact)
        for entry in timeline:
            self._writer.writerow(entry.to_dict())
            self.rows_written += 1


class JsonLinesSink(ExportSink):
    """One JSON object per line with ISO 8601 timestamps."""

    name = SINK_STRUCTURED_LINES

    def __init__(self, path: Path, projector: Optional[RecordProjector] = None) -> None:
        super().__init__(path, projector or RecordProjector(time_format=ISO_FORMAT))

    def write(self, artifact: NormalizedArtifact) -> None:
        record, _ = self.projector.project(artifact)
        self._handle.write(json.dumps(record.to_dict(), ensure_ascii=False))
        self._handle.write("\n")
        self.rows_written += 1


class PrettyJsonSink(ExportSink):
    """
    One indented JSON document per artifact, written into ``path`` as a directory.

    Files are named ``<stamp>_<source file name>.json``; a name already used
    in this run gets a numeric suffix instead of being overwritten.
    """

    name = SINK_STRUCTURED_PRETTY

    def __init__(self, directory: Path, stamp: str, projector: Optional[RecordProjector] = None) -> None:
        super().__init__(directory, projector or RecordProjector(time_format=ISO_FORMAT))
        self.stamp = stamp
        self.files: List[Path] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        self._open = True
        LOGGER.info("Writing %s output to '%s'", self.name, self.path)

    def _target_for(self, artifact: NormalizedArtifact) -> Path:
        source_name = PureWindowsPath(artifact.source_path).name.replace(":", "_") or artifact.executable_name
        target = self.path / f"{self.stamp}_{source_name}.json"
        counter = 1
        while target in self.files:
            target = self.path / f"{self.stamp}_{source_name}_{counter}.json"
            counter += 1
        return target

    def write(self, artifact: NormalizedArtifact) -> None:
        record, _ = self.projector.project(artifact)
        target = self._target_for(artifact)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(record.to_dict(), handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        self.files.append(target)
        self.rows_written += 1

    def close(self) -> None:
        self._open = False


class DocumentTreeSink(ExportSink):
    """
    XHTML document with one Container element per artifact.

    Templates are loaded and the style assets copied when the sink is
    opened, so a missing template directory only disables this sink.
    """

    name = SINK_DOCUMENT_TREE
    DOCUMENT_NAME = "index.xhtml"

    def __init__(
        self,
        directory: Path,
        projector: Optional[RecordProjector] = None,
        templates_dir: Optional[Path] = None,
    ) -> None:
        super().__init__(directory / self.DOCUMENT_NAME, projector)
        self.directory = directory
        self.templates_dir = templates_dir
        self._env: Optional[Environment] = None

    def write_header(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(self.templates_dir or get_templates_dir()),
            autoescape=True,
            keep_trailing_newline=True,
        )
        header = self._env.get_template("document_header.xhtml")
        self._container = self._env.get_template("container.xhtml")
        static_dir = get_static_dir()
        for asset in STYLE_ASSETS:
            shutil.copyfile(static_dir / asset, self.directory / asset)
        self._handle.write(header.render(stylesheets=STYLE_ASSETS))

    def write(self, artifact: NormalizedArtifact) -> None:
        record, _ = self.projector.project(artifact)
        # Render first so a template failure leaves no partial element behind
        rendered = self._container.render(fields=record.to_dict())
        self._handle.write(rendered)
        self.rows_written += 1

    def write_footer(self) -> None:
        self._handle.write(self._env.get_template("document_footer.xhtml").render())
