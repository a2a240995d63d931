"""Typer CLI entrypoint for pfsifter."""

from __future__ import annotations

import logging
import sys
from pathlib import Path, PureWindowsPath
from typing import Optional

import typer

from core.app_version import get_app_version
from core.config import AppConfig, load_app_config
from core.logging import configure_logging, get_logger
from core.timestamps import DEFAULT_TIME_FORMAT, PRECISE_TIME_FORMAT
from extractors.exceptions import EnvironmentCheckError, SnapshotError
from extractors.system.prefetch.classifier import parse_keywords
from extractors.system.prefetch.decoder import SccaDecoder
from reports.fanout import ExportOptions

from app.console import ConsoleRenderer
from app.runner import RunSettings, run_pipeline

LOGGER = get_logger("app.cli")

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

app = typer.Typer(
    add_completion=False,
    help="Batch-process Windows prefetch files into CSV, JSON and XHTML reports.",
    no_args_is_help=True,
)


def _base_dir() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys._MEIPASS)
    return Path(__file__).resolve().parents[2]


def _log_level(config: AppConfig, debug: bool, trace: bool) -> int:
    if trace:
        return TRACE_LEVEL
    if debug:
        return logging.DEBUG
    level = logging.getLevelName(config.logging.level)
    return level if isinstance(level, int) else logging.INFO


def _drive_letter(target: Path, config: AppConfig) -> str:
    drive = PureWindowsPath(str(target.resolve())).drive.rstrip(":")
    return drive or config.snapshots.drive_letter


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pfsifter {get_app_version()}")
        raise typer.Exit()


@app.command()
def main(
    file: Optional[Path] = typer.Option(None, "-f", "--file", help="File to process. Either this or -d is required."),
    directory: Optional[Path] = typer.Option(
        None, "-d", "--directory", help="Directory to recursively process. Either this or -f is required."
    ),
    keywords: Optional[str] = typer.Option(
        None,
        "-k",
        "--keywords",
        help="Comma separated keywords to highlight in output, added to the configured defaults (temp, tmp).",
    ),
    csv_dir: Optional[Path] = typer.Option(None, "--csv", help="Directory to save CSV summary and timeline to."),
    csv_name: Optional[str] = typer.Option(None, "--csvf", help="File name for the CSV summary."),
    json_dir: Optional[Path] = typer.Option(None, "--json", help="Directory to save JSON lines output to."),
    json_name: Optional[str] = typer.Option(None, "--jsonf", help="File name for the JSON lines output."),
    json_pretty: bool = typer.Option(
        False, "--pretty", help="With --json, write one indented JSON file per artifact instead of JSON lines."
    ),
    html_dir: Optional[Path] = typer.Option(None, "--html", help="Directory to save the XHTML report to."),
    time_format: Optional[str] = typer.Option(
        None, "--dt", help=f"strftime format for timestamps. Default: {DEFAULT_TIME_FORMAT}"
    ),
    precise: bool = typer.Option(False, "--mp", help="Include fractional seconds in the default timestamp format."),
    local_time: bool = typer.Option(False, "--local", help="Render timestamps in the local timezone instead of UTC."),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Do not dump full details about each file processed."),
    dedupe: Optional[bool] = typer.Option(
        None, "--dedupe/--no-dedupe", help="Skip files whose SHA-1 matches an already processed file."
    ),
    vss: bool = typer.Option(False, "--vss", help="Also process files in volume shadow copies (needs admin rights)."),
    debug: bool = typer.Option(False, "--debug", help="Show debug information during processing."),
    trace: bool = typer.Option(False, "--trace", help="Show trace information during processing."),
    config_file: Optional[Path] = typer.Option(None, "--config-file", help="Optional settings YAML path."),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    """Process prefetch files from a single file or a directory tree."""

    base_dir = _base_dir()
    config = load_app_config(base_dir, config_file)
    configure_logging(
        config.logs_dir,
        level=_log_level(config, debug, trace),
        max_bytes=config.logging.log_max_mb * 1024 * 1024,
        backup_count=config.logging.log_backup_count,
    )

    if file is None and directory is None:
        LOGGER.warning("Either -f or -d is required. Exiting")
        return

    all_keywords = list(config.processing.keywords)
    for keyword in parse_keywords(keywords):
        if keyword.lower() not in {kw.lower() for kw in all_keywords}:
            all_keywords.append(keyword)

    if time_format is None:
        time_format = PRECISE_TIME_FORMAT if precise else config.export.time_format
    local = local_time or config.export.local_time
    quiet = quiet or config.processing.quiet

    export = ExportOptions(
        csv_dir=csv_dir,
        csv_name=csv_name,
        json_dir=json_dir,
        json_name=json_name,
        json_pretty=json_pretty,
        html_dir=html_dir,
        source_label=str(file or directory),
        time_format=time_format,
        local_time=local,
        output_prefix=config.export.output_prefix,
    )
    settings = RunSettings(
        file=file,
        directory=directory,
        extension=config.processing.extension,
        dedupe=config.processing.dedupe if dedupe is None else dedupe,
        dedupe_algorithm=config.processing.dedupe_algorithm,
        export=export,
        process_snapshots=vss,
        drive_letter=_drive_letter(file or directory, config) if vss else None,
        mount_dir_name=config.snapshots.mount_dir_name,
    )

    LOGGER.info("pfsifter version %s", get_app_version())
    LOGGER.info("Command line: %s", " ".join(sys.argv[1:]))
    LOGGER.info("Keywords: %s", ", ".join(all_keywords))
    LOGGER.debug("Configuration: %s", config.to_json())

    renderer = ConsoleRenderer(all_keywords, time_format=time_format, local_time=local, quiet=quiet)
    try:
        decoder = SccaDecoder()
        result = run_pipeline(settings, decoder, observer=renderer)
    except EnvironmentCheckError as exc:
        LOGGER.warning("%s. Exiting", exc)
        return
    except SnapshotError as exc:
        LOGGER.error("Snapshot processing failed: %s", exc)
        return

    renderer.summarize(result.report)
    if result.export is not None:
        for sink_name, path in result.export.outputs.items():
            LOGGER.info("Saved %s output to '%s' (%d rows)", sink_name, path, result.export.rows_written.get(sink_name, 0))


def run() -> int:
    """Console-script entrypoint."""
    app()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(run())
