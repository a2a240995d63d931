"""
Artifact extractors for forensic analysis.

Folder Structure:
- system/          Windows system artifacts (prefetch)
- exceptions.py    Exception hierarchy shared by extractors
"""

from .exceptions import (
    DecodeError,
    DigestError,
    EnvironmentCheckError,
    ExtractorError,
    SnapshotError,
    UnsupportedFormatError,
)
