"""Tests for snapshot mounting, session bracketing and path correlation."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from extractors.exceptions import EnvironmentCheckError, SnapshotError
from extractors.system.prefetch import snapshots as snapshots_module
from extractors.system.prefetch.discovery import Discoverer
from extractors.system.prefetch.models import Candidate, Provenance
from extractors.system.prefetch.snapshots import (
    SnapshotCorrelator,
    SnapshotMount,
    VssMounter,
    parse_vssadmin_output,
    remove_mount_root,
    snapshot_session,
)

VSSADMIN_OUTPUT = """vssadmin 1.1 - Volume Shadow Copy Service administrative command-line tool
(C) Copyright 2001-2013 Microsoft Corp.

Contents of shadow copy set ID: {11111111-2222-3333-4444-555555555555}
   Contained 1 shadow copies at creation time: 3/1/2024 9:15:02 AM
      Shadow Copy ID: {aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee}
         Original Volume: (C:)\\\\?\\Volume{12345678-0000-0000-0000-100000000000}\\
         Shadow Copy Volume: \\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy1
         Originating Machine: WORKSTATION
Contents of shadow copy set ID: {66666666-2222-3333-4444-555555555555}
   Contained 1 shadow copies at creation time: 3/8/2024 9:15:02 AM
      Shadow Copy ID: {ffffffff-bbbb-cccc-dddd-eeeeeeeeeeee}
         Shadow Copy Volume: \\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy4
"""


class FakeMounter:
    """Mounter that materializes snapshot directories under the mount root."""

    def __init__(self, layouts):
        self.layouts = layouts
        self.mounted = False
        self.unmounted = False

    def mount(self, drive_letter, mount_root):
        mounts = []
        for snapshot_id, files in self.layouts.items():
            root = mount_root / snapshot_id
            for relative, content in files.items():
                path = root / relative
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(content)
            root.mkdir(parents=True, exist_ok=True)
            mounts.append(SnapshotMount(snapshot_id=snapshot_id, root=root))
        self.mounted = True
        return mounts

    def unmount(self, mount_root):
        self.unmounted = True
        remove_mount_root(mount_root)


class TestParseVssadmin:
    def test_devices_and_creation_times_in_order(self):
        shadows = parse_vssadmin_output(VSSADMIN_OUTPUT)

        assert shadows == [
            ("\\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy1", "3/1/2024 9:15:02 AM"),
            ("\\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy4", "3/8/2024 9:15:02 AM"),
        ]

    def test_no_items(self):
        assert parse_vssadmin_output("No items found that satisfy the query.\n") == []


class TestVssMounter:
    def test_list_shadows_runs_vssadmin(self):
        completed = MagicMock(returncode=0, stdout=VSSADMIN_OUTPUT, stderr="")
        with patch.object(snapshots_module.subprocess, "run", return_value=completed) as run:
            shadows = VssMounter().list_shadows("C")

        assert run.call_args.args[0] == ["vssadmin", "list", "shadows", "/for=C:"]
        assert len(shadows) == 2

    def test_no_shadows_is_not_an_error(self):
        completed = MagicMock(returncode=1, stdout="No items found that satisfy the query.", stderr="")
        with patch.object(snapshots_module.subprocess, "run", return_value=completed):
            assert VssMounter().list_shadows("C") == []

    def test_failure_raises_snapshot_error(self):
        completed = MagicMock(returncode=2, stdout="", stderr="Access is denied")
        with patch.object(snapshots_module.subprocess, "run", return_value=completed):
            with pytest.raises(SnapshotError, match="Access is denied"):
                VssMounter().list_shadows("C")

    def test_missing_tool_raises_snapshot_error(self):
        with patch.object(snapshots_module.subprocess, "run", side_effect=FileNotFoundError("vssadmin")):
            with pytest.raises(SnapshotError):
                VssMounter().list_shadows("C")

    def test_mount_links_each_shadow(self, tmp_path):
        mounter = VssMounter()
        shadows = [("\\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy1", "t1"), ("\\\\?\\X2", "t2")]
        with patch.object(mounter, "list_shadows", return_value=shadows), patch.object(
            snapshots_module.os, "symlink"
        ) as symlink:
            mounts = mounter.mount("C", tmp_path / "mnt")

        assert [m.snapshot_id for m in mounts] == ["VSS1", "VSS2"]
        assert mounts[0].root == tmp_path / "mnt" / "VSS1"
        assert symlink.call_args_list[0].args[0] == "\\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopy1\\"


class TestSnapshotSession:
    def test_unmounts_after_success(self, tmp_path):
        mounter = FakeMounter({"VSS1": {"a.pf": b"x"}})
        mount_root = tmp_path / "mnt"

        with snapshot_session(mounter, "C", mount_root, require_elevation=False) as mounts:
            assert (mount_root / "VSS1" / "a.pf").exists()
            assert [m.snapshot_id for m in mounts] == ["VSS1"]

        assert mounter.unmounted
        assert not mount_root.exists()

    def test_unmounts_when_batch_raises(self, tmp_path):
        mounter = FakeMounter({"VSS1": {}})
        mount_root = tmp_path / "mnt"

        with pytest.raises(RuntimeError):
            with snapshot_session(mounter, "C", mount_root, require_elevation=False):
                raise RuntimeError("boom")

        assert mounter.unmounted
        assert not mount_root.exists()

    def test_elevation_checked_before_mount(self, tmp_path):
        mounter = FakeMounter({"VSS1": {}})
        with patch.object(snapshots_module, "is_elevated", return_value=False):
            with pytest.raises(EnvironmentCheckError):
                with snapshot_session(mounter, "C", tmp_path / "mnt"):
                    pass

        assert not mounter.mounted
        assert not mounter.unmounted
        assert not (tmp_path / "mnt").exists()

    def test_remove_missing_mount_root_is_noop(self, tmp_path):
        remove_mount_root(tmp_path / "never-created")


class TestSnapshotCorrelator:
    def _setup(self, tmp_path, layouts):
        volume = tmp_path / "volume"
        (volume / "Windows" / "Prefetch").mkdir(parents=True)
        mount_root = tmp_path / "mnt"
        mounts = FakeMounter(layouts).mount("C", mount_root)
        discoverer = Discoverer(stream_lister=lambda p: [])
        return volume, mount_root, SnapshotCorrelator(volume, mounts, mount_root, discoverer)

    def test_directory_mirrored_into_each_snapshot(self, tmp_path):
        volume, mount_root, correlator = self._setup(
            tmp_path,
            {
                "VSS1": {"Windows/Prefetch/A.EXE-1.pf": b"one"},
                "VSS2": {"Other/B.pf": b"two"},
                "VSS3": {"Windows/Prefetch/C.EXE-3.pf": b"three"},
            },
        )

        candidates = list(correlator.correlate(volume / "Windows" / "Prefetch"))

        assert [(c.path.name, c.provenance.tag) for c in candidates] == [
            ("A.EXE-1.pf", "snapshot:VSS1"),
            ("C.EXE-3.pf", "snapshot:VSS3"),
        ]
        assert Path(candidates[0].display_path) == Path("SNAPSHOT/Windows/Prefetch/A.EXE-1.pf")

    def test_single_file_mirrored(self, tmp_path):
        volume, _, correlator = self._setup(
            tmp_path,
            {"VSS1": {"Windows/Prefetch/A.EXE-1.pf": b"one"}, "VSS2": {}},
        )
        live_file = volume / "Windows" / "Prefetch" / "A.EXE-1.pf"
        live_file.write_bytes(b"live")

        candidates = list(correlator.correlate(live_file))

        assert len(candidates) == 1
        assert candidates[0].provenance.snapshot_id == "VSS1"

    def test_path_off_volume_yields_nothing(self, tmp_path):
        _, _, correlator = self._setup(tmp_path, {"VSS1": {}})
        assert list(correlator.correlate(tmp_path / "elsewhere")) == []


class TestDisplayPath:
    def test_snapshot_prefix_replaces_mount_location(self, tmp_path):
        mount_root = tmp_path / "___pfsifterVssMount"
        candidate = Candidate(
            path=mount_root / "VSS3" / "Windows" / "Prefetch" / "X.pf",
            provenance=Provenance.snapshot("VSS3", mount_root),
        )
        assert Path(candidate.display_path) == Path("SNAPSHOT/Windows/Prefetch/X.pf")

    def test_snapshot_stream_suffix(self, tmp_path):
        candidate = Candidate(
            path=tmp_path / "VSS1" / "X.pf",
            provenance=Provenance.snapshot("VSS1", tmp_path).with_stream("ads"),
            data=b"x",
        )
        assert candidate.display_path.endswith("X.pf:ads")
        assert candidate.display_path.startswith("SNAPSHOT")

    def test_live_path_unchanged(self, tmp_path):
        candidate = Candidate(path=tmp_path / "X.pf")
        assert candidate.display_path == str(tmp_path / "X.pf")
