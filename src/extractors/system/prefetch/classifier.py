"""
Keyword classification of referenced directories and files.

Tags only drive emphasis in console output; exports never consult them.

Precedence for file references:
    tracked-executable > keyword-match > normal
Directories never receive the tracked-executable tag.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import NormalizedArtifact

TAG_TRACKED_EXECUTABLE = "tracked-executable"
TAG_KEYWORD_MATCH = "keyword-match"
TAG_NORMAL = "normal"


def normalize_keywords(keywords: Iterable[str]) -> frozenset[str]:
    """Lowercase, strip and drop empty keywords."""
    return frozenset(kw.strip().lower() for kw in keywords if kw and kw.strip())


def parse_keywords(text: str | None) -> List[str]:
    """
    Split a comma separated keyword list.

    Example:
        >>> parse_keywords("system32, fonts,,")
        ['system32', 'fonts']
    """
    if not text:
        return []
    return [kw.strip() for kw in text.split(",") if kw.strip()]


def classify(text: str, keywords: Iterable[str]) -> str:
    """Case-insensitive substring match of ``text`` against ``keywords``."""
    lowered = text.lower()
    for keyword in keywords:
        if keyword and keyword.lower() in lowered:
            return TAG_KEYWORD_MATCH
    return TAG_NORMAL


def classify_file_reference(path: str, executable_name: str, keywords: Iterable[str]) -> str:
    """Classify a referenced file; the tracked executable wins over keywords."""
    if executable_name and path.lower().endswith(executable_name.lower()):
        return TAG_TRACKED_EXECUTABLE
    return classify(path, keywords)


class Classifier:
    """Produces tag annotations for an artifact without touching it."""

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = normalize_keywords(keywords)

    def directories(self, artifact: NormalizedArtifact) -> List[Tuple[str, str]]:
        return [(name, classify(name, self.keywords)) for name in artifact.directories]

    def filenames(self, artifact: NormalizedArtifact) -> List[Tuple[str, str]]:
        return [
            (name, classify_file_reference(name, artifact.executable_name, self.keywords))
            for name in artifact.filenames
        ]
