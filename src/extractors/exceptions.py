"""
Exceptions for extractor modules.
"""


class ExtractorError(Exception):
    """Base exception for extractor errors."""
    pass


class DecodeError(ExtractorError):
    """Raised when an artifact cannot be decoded (corrupt, truncated, unreadable)."""

    def __init__(self, source: str, message: str = ""):
        self.source = source
        super().__init__(message or f"Unable to decode '{source}'")


class UnsupportedFormatError(DecodeError):
    """Raised when an artifact is valid but its format version needs a newer decoder."""

    def __init__(self, source: str, version: str = ""):
        self.version = version
        message = f"'{source}' uses an unsupported format version"
        if version:
            message += f" ({version})"
        message += "; a newer decoder is required to process it"
        super().__init__(source, message)


class DigestError(ExtractorError):
    """Raised when a candidate cannot be read to compute its content digest."""

    def __init__(self, source: str, reason: str):
        self.source = source
        super().__init__(f"Unable to hash '{source}': {reason}")


class EnvironmentCheckError(ExtractorError):
    """Raised before processing starts when inputs or privileges are missing."""
    pass


class SnapshotError(ExtractorError):
    """Raised when snapshots cannot be listed or mounted."""
    pass
