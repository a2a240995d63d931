"""
Volume snapshot (shadow copy) mounting and path correlation.

Mounting is bracketed around a whole batch with ``snapshot_session``: the
snapshots of a drive are linked under a scratch mount root before discovery
and the mount root is deleted afterwards, on success and on failure.

SnapshotCorrelator mirrors a live path into every mounted snapshot. A live
path ``C:\\Windows\\Prefetch`` has the stem ``Windows\\Prefetch``; inside a
snapshot mounted at ``<mount_root>\\VSS2`` the mirrored path is
``<mount_root>\\VSS2\\Windows\\Prefetch``. Missing mirrors are expected and
produce no candidates.
"""

from __future__ import annotations

import os
import platform
import re
import shutil
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterator, List, Optional, Protocol, Sequence

from core.logging import get_logger
from extractors.exceptions import EnvironmentCheckError, SnapshotError

from .discovery import Discoverer
from .models import Candidate, Provenance

LOGGER = get_logger("extractors.prefetch.snapshots")

SNAPSHOT_DIR_PREFIX = "VSS"

_SHADOW_VOLUME_RE = re.compile(r"Shadow Copy Volume:\s*(\S+)")
_CREATION_TIME_RE = re.compile(r"creation time:\s*(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class SnapshotMount:
    """A snapshot linked under the mount root."""

    snapshot_id: str
    root: Path
    device: str = ""
    created: str = ""


class SnapshotMounter(Protocol):
    def mount(self, drive_letter: str, mount_root: Path) -> List[SnapshotMount]:
        ...

    def unmount(self, mount_root: Path) -> None:
        ...


def is_elevated() -> bool:
    """Return True when running with administrator/root rights."""
    if platform.system() == "Windows":
        import ctypes
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except OSError:
            return False
    return os.geteuid() == 0


def parse_vssadmin_output(output: str) -> List[tuple[str, str]]:
    """
    Parse ``vssadmin list shadows`` output into (device, creation time) pairs.

    vssadmin lists shadow copies oldest first; that order is preserved.
    """
    shadows: List[tuple[str, str]] = []
    created = ""
    for line in output.splitlines():
        created_match = _CREATION_TIME_RE.search(line)
        if created_match:
            created = created_match.group(1).strip()
            continue
        volume_match = _SHADOW_VOLUME_RE.search(line)
        if volume_match:
            shadows.append((volume_match.group(1), created))
    return shadows


def remove_mount_root(mount_root: Path) -> None:
    """Delete snapshot links under ``mount_root`` and the directory itself."""
    if not mount_root.exists():
        return
    for child in mount_root.iterdir():
        if child.is_symlink():
            # Directory links must be removed with rmdir on Windows
            if os.name == "nt":
                os.rmdir(child)
            else:
                child.unlink()
    shutil.rmtree(mount_root)


class VssMounter:
    """Links Windows volume shadow copies under a mount root."""

    def __init__(self, vssadmin: str = "vssadmin") -> None:
        self.vssadmin = vssadmin

    def list_shadows(self, drive_letter: str) -> List[tuple[str, str]]:
        try:
            result = subprocess.run(
                [self.vssadmin, "list", "shadows", f"/for={drive_letter}:"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise SnapshotError(f"Unable to run {self.vssadmin}: {exc}") from exc
        # vssadmin exits non-zero when the volume simply has no shadow copies
        if result.returncode != 0 and "No items found" not in result.stdout:
            raise SnapshotError(
                f"{self.vssadmin} failed with exit code {result.returncode}: {result.stderr.strip()}"
            )
        return parse_vssadmin_output(result.stdout)

    def mount(self, drive_letter: str, mount_root: Path) -> List[SnapshotMount]:
        shadows = self.list_shadows(drive_letter)
        mount_root.mkdir(parents=True, exist_ok=True)
        mounts: List[SnapshotMount] = []
        for number, (device, created) in enumerate(shadows, start=1):
            snapshot_id = f"{SNAPSHOT_DIR_PREFIX}{number}"
            link = mount_root / snapshot_id
            try:
                os.symlink(f"{device}\\", link, target_is_directory=True)
            except OSError as exc:
                raise SnapshotError(f"Unable to mount {device} at {link}: {exc}") from exc
            LOGGER.info("Mounted %s at %s (created %s)", device, link, created or "unknown")
            mounts.append(SnapshotMount(snapshot_id=snapshot_id, root=link, device=device, created=created))
        return mounts

    def unmount(self, mount_root: Path) -> None:
        remove_mount_root(mount_root)


@contextmanager
def snapshot_session(
    mounter: SnapshotMounter,
    drive_letter: str,
    mount_root: Path,
    *,
    require_elevation: bool = True,
) -> Iterator[List[SnapshotMount]]:
    """
    Mount the drive's snapshots for the duration of a batch.

    The privilege check runs before anything is created on disk. Unmount
    runs on every exit path once mounting has begun.
    """
    if require_elevation and not is_elevated():
        raise EnvironmentCheckError("Administrator rights are required to process volume snapshots")

    try:
        mounts = mounter.mount(drive_letter, mount_root)
        LOGGER.info("Mounted %d snapshot(s) of %s: under %s", len(mounts), drive_letter, mount_root)
        yield mounts
    finally:
        LOGGER.debug("Unmounting snapshots under %s", mount_root)
        mounter.unmount(mount_root)


class SnapshotCorrelator:
    """Mirrors live paths into mounted snapshots and emits the matches as candidates."""

    def __init__(
        self,
        volume_root: Path,
        mounts: Sequence[SnapshotMount],
        mount_root: Path,
        discoverer: Discoverer,
    ) -> None:
        self.volume_root = volume_root
        self.mounts = list(mounts)
        self.mount_root = mount_root
        self.discoverer = discoverer

    def stem(self, live_path: Path) -> Optional[PurePath]:
        """Path relative to the volume root, or None if it lives elsewhere.

        Relative paths are resolved against the working directory first.
        """
        try:
            return Path(live_path).resolve().relative_to(Path(self.volume_root).resolve())
        except ValueError:
            return None

    def correlate(self, live_path: Path) -> Iterator[Candidate]:
        """Yield candidates for ``live_path`` from every snapshot, in mount order."""
        stem = self.stem(live_path)
        if stem is None:
            LOGGER.warning("'%s' is not on volume %s; no snapshot paths to correlate", live_path, self.volume_root)
            return

        is_directory = live_path.is_dir()
        for mount in self.mounts:
            mirrored = mount.root / stem
            provenance = Provenance.snapshot(mount.snapshot_id, self.mount_root)
            if is_directory:
                if not mirrored.is_dir():
                    LOGGER.debug("No %s in %s", stem, mount.snapshot_id)
                    continue
                yield from self.discoverer.iter_candidates(mirrored, provenance)
            else:
                if not mirrored.is_file():
                    LOGGER.debug("No %s in %s", stem, mount.snapshot_id)
                    continue
                yield from self.discoverer.candidates_for_file(mirrored, provenance)
