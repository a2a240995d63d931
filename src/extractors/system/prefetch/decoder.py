"""
Prefetch decoder interface and the libscca-backed implementation.

The pipeline only depends on the ArtifactDecoder protocol. SccaDecoder adapts
the libyal ``pyscca`` binding (distributed as ``libscca-python``) into
NormalizedArtifact values; tests substitute decoders that synthesize
artifacts directly.

Failure contract:
    UnsupportedFormatError - artifact recognized, format version not supported
    DecodeError            - anything else that prevents decoding
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path, PureWindowsPath
from typing import Any, BinaryIO, Dict, List, Optional, Protocol, Tuple

from core.logging import get_logger
from core.timestamps import filetime_to_datetime, unix_to_datetime
from extractors.exceptions import DecodeError, EnvironmentCheckError, UnsupportedFormatError

from .models import NormalizedArtifact, VolumeInfo

LOGGER = get_logger("extractors.prefetch.decoder")

# Windows 10+ prefetch files are Xpress-Huffman compressed behind this header
COMPRESSED_SIGNATURE = b"MAM\x04"

# Last-run slots recorded by format version 26 and later
MAX_RUN_TIMES = 8

FORMAT_VERSIONS: Dict[int, str] = {
    17: "Windows XP or Windows Server 2003",
    23: "Windows Vista or Windows 7",
    26: "Windows 8.0, Windows 8.1, or Windows Server 2012(R2)",
    30: "Windows 10 or Windows 11",
    31: "Windows 11",
}


class ArtifactDecoder(Protocol):
    """Capability interface for turning bytes into a NormalizedArtifact."""

    def open(self, path: Path) -> NormalizedArtifact:
        ...

    def open_stream(self, stream: BinaryIO, label: str) -> NormalizedArtifact:
        ...


def version_label(format_version: int) -> str:
    """Translate a numeric format version into its display label."""
    return FORMAT_VERSIONS.get(format_version, f"Unknown ({format_version})")


def _file_times(path: Path) -> Tuple[Optional[datetime], Optional[datetime], Optional[datetime], int]:
    st = os.stat(path)
    # st_birthtime exists on Windows (3.12+) and macOS; st_ctime is creation time on older Windows builds
    created_epoch = getattr(st, "st_birthtime", None)
    if created_epoch is None and os.name == "nt":
        created_epoch = st.st_ctime
    return (
        unix_to_datetime(created_epoch) if created_epoch else None,
        unix_to_datetime(st.st_mtime),
        unix_to_datetime(st.st_atime),
        st.st_size,
    )


def _split_volume_path(filename: str) -> Tuple[str, str]:
    """Split ``\\VOLUME{...}\\DIR\\FILE`` into (device prefix, remainder)."""
    parts = PureWindowsPath(filename).parts
    if len(parts) < 2:
        return "", filename
    # parts[0] is "\\" for rooted paths
    head = parts[1] if parts[0] == "\\" else parts[0]
    return f"\\{head}", filename[len(head) + 1:]


def _directories_for(device_path: str, filenames: List[str]) -> Tuple[Tuple[str, ...], int]:
    """
    Collect the ordered unique directories (with ancestors) of the files
    that live on ``device_path``, and count those files.
    """
    device_key = device_path.upper()
    seen: Dict[str, None] = {}
    count = 0
    for filename in filenames:
        prefix, remainder = _split_volume_path(filename)
        if prefix.upper() != device_key:
            continue
        count += 1
        current = device_path
        for segment in PureWindowsPath(remainder).parts[1:-1]:
            current = f"{current}\\{segment}"
            seen.setdefault(current.upper(), None)
    return tuple(seen), count


class SccaDecoder:
    """
    ArtifactDecoder backed by libscca.

    The binding is imported on construction so a missing installation is
    reported before any batch work starts.
    """

    def __init__(self) -> None:
        try:
            import pyscca
        except ImportError as exc:
            raise EnvironmentCheckError(
                "The libscca binding is not installed. Install it with: pip install 'pfsifter[scca]'"
            ) from exc
        self._pyscca = pyscca
        LOGGER.debug("Using pyscca %s", pyscca.get_version())

    def open(self, path: Path) -> NormalizedArtifact:
        with path.open("rb") as handle:
            signature = handle.read(len(COMPRESSED_SIGNATURE))
            handle.seek(0)
            scca_file = self._open_handle(handle, str(path), signature)
        created, modified, accessed, size = _file_times(path)
        return self._normalize(
            scca_file,
            source=str(path),
            file_size=size,
            created=created,
            modified=modified,
            accessed=accessed,
        )

    def open_stream(self, stream: BinaryIO, label: str) -> NormalizedArtifact:
        signature = stream.read(len(COMPRESSED_SIGNATURE))
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        scca_file = self._open_handle(stream, label, signature)
        return self._normalize(scca_file, source=label, file_size=size)

    def _open_handle(self, handle: BinaryIO, source: str, signature: bytes) -> Any:
        scca_file = self._pyscca.file()
        try:
            scca_file.open_file_object(handle)
        except (IOError, OSError, ValueError) as exc:
            message = str(exc)
            if signature == COMPRESSED_SIGNATURE or "unsupported" in message.lower():
                raise UnsupportedFormatError(
                    source,
                    "compressed (Windows 10 or later)" if signature == COMPRESSED_SIGNATURE else "",
                ) from exc
            raise DecodeError(source, f"Unable to open '{source}': {message}") from exc
        return scca_file

    def _normalize(
        self,
        scca_file: Any,
        *,
        source: str,
        file_size: int,
        created: Optional[datetime] = None,
        modified: Optional[datetime] = None,
        accessed: Optional[datetime] = None,
    ) -> NormalizedArtifact:
        partial = False
        try:
            executable = scca_file.executable_filename or ""
            header_hash = f"{scca_file.prefetch_hash:08X}"
            version = version_label(scca_file.format_version)
            run_count = scca_file.run_count
        except (IOError, OSError) as exc:
            raise DecodeError(source, f"Unable to read header of '{source}': {exc}") from exc

        run_times: List[datetime] = []
        for index in range(MAX_RUN_TIMES):
            try:
                value = scca_file.get_last_run_time_as_integer(index)
            except (IOError, OSError, IndexError):
                break
            converted = filetime_to_datetime(value)
            if converted is not None:
                run_times.append(converted)
        run_times.sort(reverse=True)

        filenames: List[str] = []
        try:
            for index in range(scca_file.number_of_filenames):
                filenames.append(scca_file.get_filename(index))
        except (IOError, OSError) as exc:
            LOGGER.warning("Filename table of '%s' is incomplete: %s", source, exc)
            partial = True

        volumes: List[VolumeInfo] = []
        try:
            for index in range(scca_file.number_of_volumes):
                volume = scca_file.get_volume_information(index)
                device_path = volume.device_path or ""
                directories, reference_count = _directories_for(device_path, filenames)
                volumes.append(
                    VolumeInfo(
                        device_name=device_path,
                        serial_number=f"{volume.serial_number:X}",
                        creation_time=filetime_to_datetime(volume.get_creation_time_as_integer()),
                        directories=directories,
                        file_reference_count=reference_count,
                    )
                )
        except (IOError, OSError) as exc:
            LOGGER.warning("Volume table of '%s' is incomplete: %s", source, exc)
            partial = True
        finally:
            scca_file.close()

        return NormalizedArtifact(
            source_path=source,
            executable_name=executable,
            hash=header_hash,
            version=version,
            run_count=run_count,
            run_times=tuple(run_times),
            volumes=tuple(volumes),
            filenames=tuple(filenames),
            file_size=file_size,
            source_created=created,
            source_modified=modified,
            source_accessed=accessed,
            partial=partial,
        )
