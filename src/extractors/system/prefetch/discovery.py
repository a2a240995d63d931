"""
Candidate discovery for prefetch files.

Walks one root at a time (depth first, entries sorted by name so the order
is stable for deduplication), yielding a Candidate per matching file and one
more per alternate data stream the file carries.

Skipped silently (debug log only):
    - files that vanish between listing and stat
    - zero-length files
Skipped and not descended into:
    - reparse points / symlinks (files or directories)
Skipped with a warning, enumeration continues:
    - directories that cannot be listed due to permissions
"""

from __future__ import annotations

import os
import platform
import stat as stat_module
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from core.logging import get_logger

from .models import Candidate, Provenance

LOGGER = get_logger("extractors.prefetch.discovery")

DEFAULT_EXTENSION = ".pf"

# Stream lister: returns (stream_name, bytes) for every non-primary data stream of a file
StreamLister = Callable[[Path], List[Tuple[str, bytes]]]


def _is_reparse_point(entry: os.DirEntry) -> bool:
    if entry.is_symlink():
        return True
    try:
        st = entry.stat(follow_symlinks=False)
    except OSError:
        return False
    attributes = getattr(st, "st_file_attributes", 0)
    return bool(attributes & getattr(stat_module, "FILE_ATTRIBUTE_REPARSE_POINT", 0))


def list_alternate_streams(path: Path) -> List[Tuple[str, bytes]]:
    """
    List NTFS alternate data streams of ``path`` with their contents.

    Uses FindFirstStreamW/FindNextStreamW on Windows. Other platforms have
    no alternate streams and always return an empty list.
    """
    if platform.system() != "Windows":
        return []

    import ctypes
    from ctypes import wintypes

    class WIN32_FIND_STREAM_DATA(ctypes.Structure):
        _fields_ = [
            ("StreamSize", ctypes.c_longlong),
            ("cStreamName", ctypes.c_wchar * (260 + 36)),
        ]

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    kernel32.FindFirstStreamW.restype = wintypes.HANDLE
    kernel32.FindFirstStreamW.argtypes = [
        wintypes.LPCWSTR, ctypes.c_int, ctypes.c_void_p, wintypes.DWORD,
    ]
    kernel32.FindNextStreamW.argtypes = [wintypes.HANDLE, ctypes.c_void_p]
    kernel32.FindClose.argtypes = [wintypes.HANDLE]
    invalid_handle = wintypes.HANDLE(-1).value

    data = WIN32_FIND_STREAM_DATA()
    handle = kernel32.FindFirstStreamW(str(path), 0, ctypes.byref(data), 0)
    if handle == invalid_handle:
        return []

    names: List[str] = []
    try:
        while True:
            # Stream names look like ":name:$DATA"; the primary stream is "::$DATA"
            raw_name = data.cStreamName
            name = raw_name.split(":")[1] if raw_name.count(":") >= 2 else ""
            if name:
                names.append(name)
            if not kernel32.FindNextStreamW(handle, ctypes.byref(data)):
                break
    finally:
        kernel32.FindClose(handle)

    streams: List[Tuple[str, bytes]] = []
    for name in names:
        try:
            with open(f"{path}:{name}", "rb") as handle_ads:
                streams.append((name, handle_ads.read()))
        except OSError as exc:
            LOGGER.warning("Unable to read stream '%s' of '%s': %s", name, path, exc)
    return streams


class Discoverer:
    """
    Enumerates prefetch candidates under one or more roots.

    Each call to ``iter_candidates`` starts a fresh walk, so the sequence can
    be restarted per root.
    """

    def __init__(
        self,
        extension: str = DEFAULT_EXTENSION,
        stream_lister: Optional[StreamLister] = None,
    ) -> None:
        self.extension = extension.lower()
        self.stream_lister = stream_lister or list_alternate_streams
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        LOGGER.warning(message)

    def matches(self, name: str) -> bool:
        return name.lower().endswith(self.extension)

    def iter_candidates(
        self,
        root: Path,
        provenance: Optional[Provenance] = None,
    ) -> Iterator[Candidate]:
        """Yield candidates under ``root`` in stable depth-first order."""
        provenance = provenance or Provenance()
        LOGGER.debug("Discovering '%s' files under %s (%s)", self.extension, root, provenance.tag)
        yield from self._walk(root, provenance)

    def iter_roots(self, roots: Iterable[Tuple[Path, Provenance]]) -> Iterator[Candidate]:
        """Yield candidates for several roots, in the order the roots are given."""
        for root, provenance in roots:
            yield from self.iter_candidates(root, provenance)

    def candidates_for_file(self, path: Path, provenance: Optional[Provenance] = None) -> List[Candidate]:
        """Candidates for a single file: the file itself plus its alternate streams."""
        provenance = provenance or Provenance()
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            LOGGER.debug("File vanished before stat: %s", path)
            return []
        except OSError as exc:
            self._warn(f"Unable to read attributes of '{path}', skipping: {exc}")
            return []
        if size == 0:
            LOGGER.debug("Skipping zero-length file: %s", path)
            return []

        candidates = [Candidate(path=path, provenance=provenance)]
        for stream_name, data in self.stream_lister(path):
            if not data:
                continue
            LOGGER.info("Found alternate data stream '%s' on %s", stream_name, path)
            candidates.append(
                Candidate(path=path, provenance=provenance.with_stream(stream_name), data=data)
            )
        return candidates

    def _walk(self, directory: Path, provenance: Provenance) -> Iterator[Candidate]:
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name.lower())
        except PermissionError:
            self._warn(f"Access denied to directory '{directory}', skipping")
            return
        except FileNotFoundError:
            LOGGER.debug("Directory vanished before listing: %s", directory)
            return

        subdirectories: List[Path] = []
        for entry in entries:
            if _is_reparse_point(entry):
                LOGGER.debug("Skipping reparse point: %s", entry.path)
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirectories.append(Path(entry.path))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if self.matches(entry.name):
                yield from self.candidates_for_file(Path(entry.path), provenance)

        for subdirectory in subdirectories:
            yield from self._walk(subdirectory, provenance)
