from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .timestamps import DEFAULT_TIME_FORMAT

DEFAULT_KEYWORDS = ("temp", "tmp")


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    log_max_mb: int = 50
    log_backup_count: int = 10


@dataclass(slots=True)
class ProcessingConfig:
    """Discovery and batch processing configuration from config.yml."""

    extension: str = ".pf"
    keywords: List[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    dedupe: bool = True
    dedupe_algorithm: str = "sha1"
    quiet: bool = False


@dataclass(slots=True)
class ExportConfig:
    """Export configuration from config.yml."""

    time_format: str = DEFAULT_TIME_FORMAT
    local_time: bool = False
    output_prefix: str = "PFSifter_Output"


@dataclass(slots=True)
class SnapshotConfig:
    """Snapshot (volume shadow copy) configuration from config.yml."""

    mount_dir_name: str = "___pfsifterVssMount"
    drive_letter: str = "C"


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    logs_dir: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for run manifests."""
        data = {
            "logs_dir": str(self.logs_dir),
            "logging": asdict(self.logging),
            "processing": asdict(self.processing),
            "export": asdict(self.export),
            "snapshots": asdict(self.snapshots),
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def _normalize_extension(value: str) -> str:
    value = value.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


def load_app_config(base_dir: Path, config_file: Path | None = None) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_yaml = config_file or (base_dir / "config" / "config.yml")
    config_overrides = _load_yaml(config_yaml)

    logs_dir = Path(config_overrides.get("logs_dir") or (base_dir / "logs"))

    logging_cfg = config_overrides.get("logging", {})
    logging_config = LoggingConfig(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        log_max_mb=logging_cfg.get("log_max_mb", 50),
        log_backup_count=logging_cfg.get("log_backup_count", 10),
    )

    processing_cfg = config_overrides.get("processing", {})
    keywords = processing_cfg.get("keywords", list(DEFAULT_KEYWORDS))
    if not isinstance(keywords, list):
        raise ValueError(f"processing.keywords in {config_yaml} must be a list.")
    processing_config = ProcessingConfig(
        extension=_normalize_extension(processing_cfg.get("extension", ".pf")),
        keywords=[str(kw) for kw in keywords],
        dedupe=bool(processing_cfg.get("dedupe", True)),
        dedupe_algorithm=processing_cfg.get("dedupe_algorithm", "sha1"),
        quiet=bool(processing_cfg.get("quiet", False)),
    )

    export_cfg = config_overrides.get("export", {})
    export_config = ExportConfig(
        time_format=export_cfg.get("time_format", DEFAULT_TIME_FORMAT),
        local_time=bool(export_cfg.get("local_time", False)),
        output_prefix=export_cfg.get("output_prefix", "PFSifter_Output"),
    )

    snapshot_cfg = config_overrides.get("snapshots", {})
    snapshot_config = SnapshotConfig(
        mount_dir_name=snapshot_cfg.get("mount_dir_name", "___pfsifterVssMount"),
        drive_letter=str(snapshot_cfg.get("drive_letter", "C")).rstrip(":\\/"),
    )

    return AppConfig(
        base_dir=base_dir,
        logs_dir=logs_dir,
        logging=logging_config,
        processing=processing_config,
        export=export_config,
        snapshots=snapshot_config,
    )
