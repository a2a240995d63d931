"""
Path resolution utilities for reports module.

Handles path resolution in both development and PyInstaller bundle environments.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

STYLE_ASSETS = ("normalize.css", "style.css")


def _get_meipass_base() -> Optional[Path]:
    """Get PyInstaller MEIPASS base directory if running frozen."""
    if getattr(sys, "frozen", False):
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            return Path(meipass) / "src" / "reports"
    return None


def get_reports_dir() -> Path:
    """Get the reports package root directory.

    Returns:
        Path to reports directory, handling PyInstaller bundles.
    """
    meipass_base = _get_meipass_base()
    if meipass_base:
        return meipass_base
    return Path(__file__).parent


def get_templates_dir() -> Path:
    """Get the templates directory.

    Returns:
        Path to templates directory, handling PyInstaller bundles.
    """
    return get_reports_dir() / "templates"


def get_static_dir() -> Path:
    """Get the directory holding style assets copied next to document exports."""
    return get_reports_dir() / "static"


def sanitize_label(value: str) -> str:
    """
    Turn an input path into a string usable inside a directory name.

    Example:
        >>> sanitize_label("C:\\\\Windows\\\\Prefetch")
        'C_Windows_Prefetch'
    """
    cleaned = value.replace(":", "").replace("\\", "_").replace("/", "_")
    return cleaned.strip("_") or "input"


def timeline_path_for(tabular_path: Path) -> Path:
    """Timeline file name derived from the tabular output name."""
    return tabular_path.with_name(f"{tabular_path.stem}_Timeline{tabular_path.suffix}")
