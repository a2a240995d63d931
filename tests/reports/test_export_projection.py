"""Tests for flattening artifacts into export rows."""

import pytest

from core.timestamps import FILETIME_EPOCH, ISO_FORMAT
from reports.projection import (
    EXPORT_FIELDS,
    EXTRA_VOLUMES_NOTE,
    TIMELINE_FIELDS,
    RecordProjector,
    project,
)

from tests.fixtures.prefetch import make_artifact, make_volume


class TestColumns:
    def test_export_column_order(self):
        assert EXPORT_FIELDS[:4] == ["Note", "SourceFilename", "SourceCreated", "SourceModified"]
        assert EXPORT_FIELDS[-3:] == ["Directories", "FilesLoaded", "ParsingError"]
        assert [f for f in EXPORT_FIELDS if f.startswith("PreviousRun")] == [f"PreviousRun{i}" for i in range(7)]

    def test_timeline_columns(self):
        assert TIMELINE_FIELDS == ["RunTime", "ExecutableName"]


class TestRunTimes:
    def test_last_run_and_previous_slots(self):
        artifact = make_artifact(run_count=3)

        record, _ = project(artifact)

        assert record.LastRun == "2024-03-01 12:00:00"
        assert record.PreviousRun0 == "2024-03-01 11:00:00"
        assert record.PreviousRun1 == "2024-03-01 10:00:00"
        assert record.PreviousRun2 == ""
        assert record.PreviousRun6 == ""

    def test_eight_run_times_fill_every_slot(self):
        artifact = make_artifact(run_count=8)

        record, timeline = project(artifact)

        assert record.PreviousRun6 == "2024-03-01 05:00:00"
        assert len(timeline) == 8

    def test_no_run_times(self):
        record, timeline = project(make_artifact(run_count=0, run_times=[]))

        assert record.LastRun == ""
        assert timeline == []


class TestVolumes:
    @pytest.mark.parametrize("count", [0, 1, 2])
    def test_up_to_two_volumes_no_note(self, count):
        volumes = [make_volume(name=f"\\VOLUME{{{i}}}", serial=f"{i:08X}") for i in range(count)]

        record, _ = project(make_artifact(volumes=volumes))

        assert record.Note == ""
        assert record.Volume0Name == (volumes[0].device_name if count > 0 else "")
        assert record.Volume1Serial == (volumes[1].serial_number if count > 1 else "")

    def test_more_than_two_volumes_sets_note(self):
        volumes = [make_volume(name=f"\\VOLUME{{{i}}}") for i in range(3)]

        record, _ = project(make_artifact(volumes=volumes))

        assert record.Note == EXTRA_VOLUMES_NOTE
        assert record.Volume0Name == "\\VOLUME{0}"
        assert record.Volume1Name == "\\VOLUME{1}"

    def test_null_volume_creation_renders_empty(self):
        record, _ = project(make_artifact(volumes=[make_volume(created=FILETIME_EPOCH)]))

        assert record.Volume0Created == ""
        assert record.Volume0Name != ""

    def test_volume_creation_rendered(self):
        record, _ = project(make_artifact())
        assert record.Volume0Created == "2019-05-04 08:30:00"


class TestBlobs:
    def test_directories_and_files_joined(self):
        artifact = make_artifact(filenames=["\\V\\A.DLL", "\\V\\B.EXE"])

        record, _ = project(artifact)

        assert record.FilesLoaded == "\\V\\A.DLL, \\V\\B.EXE"
        assert record.Directories == ", ".join(artifact.directories)
        assert record.ParsingError is False

    def test_partial_artifact_leaves_blobs_empty(self):
        record, _ = project(make_artifact(partial=True))

        assert record.Directories == ""
        assert record.FilesLoaded == ""
        assert record.ParsingError is True


class TestTimeline:
    def test_executable_path_resolved_from_filenames(self):
        artifact = make_artifact("CALC.EXE", run_count=2)

        _, timeline = project(artifact)

        assert [t.RunTime for t in timeline] == ["2024-03-01 12:00:00", "2024-03-01 11:00:00"]
        assert all(t.ExecutableName.endswith("\\SYSTEM32\\CALC.EXE") for t in timeline)

    def test_falls_back_to_bare_name(self):
        _, timeline = project(make_artifact("GHOST.EXE", run_count=1, filenames=["\\V\\OTHER.DLL"]))
        assert timeline[0].ExecutableName == "GHOST.EXE"


class TestFormats:
    def test_iso_projection(self):
        record, _ = project(make_artifact(run_count=1), ISO_FORMAT)
        assert record.LastRun == "2024-03-01T12:00:00+00:00"

    def test_custom_format(self):
        record, _ = RecordProjector(time_format="%d/%m/%Y").project(make_artifact(run_count=1))
        assert record.LastRun == "01/03/2024"

    def test_projection_is_pure(self):
        artifact = make_artifact()
        assert project(artifact) == project(artifact)

    def test_to_dict_matches_columns(self):
        record, _ = project(make_artifact())
        assert list(record.to_dict()) == EXPORT_FIELDS

