"""Tests for keyword classification of referenced paths."""

from extractors.system.prefetch.classifier import (
    TAG_KEYWORD_MATCH,
    TAG_NORMAL,
    TAG_TRACKED_EXECUTABLE,
    Classifier,
    classify,
    classify_file_reference,
    normalize_keywords,
    parse_keywords,
)

from tests.fixtures.prefetch import make_artifact, make_volume


class TestClassify:
    def test_case_insensitive_substring(self):
        assert classify("\\VOLUME{1}\\USERS\\BOB\\APPDATA\\LOCAL\\TEMP", ["temp"]) == TAG_KEYWORD_MATCH
        assert classify("\\VOLUME{1}\\WINDOWS\\SYSTEM32", ["temp"]) == TAG_NORMAL

    def test_empty_keywords_never_match(self):
        assert classify("anything", []) == TAG_NORMAL
        assert classify("anything", [""]) == TAG_NORMAL

    def test_tracked_executable_beats_keyword(self):
        path = "\\VOLUME{1}\\USERS\\BOB\\APPDATA\\LOCAL\\TEMP\\EVIL.EXE"
        assert classify_file_reference(path, "EVIL.EXE", ["temp"]) == TAG_TRACKED_EXECUTABLE

    def test_keyword_when_not_the_executable(self):
        path = "\\VOLUME{1}\\TEMP\\HELPER.DLL"
        assert classify_file_reference(path, "EVIL.EXE", ["temp"]) == TAG_KEYWORD_MATCH

    def test_executable_match_is_suffix_only(self):
        assert classify_file_reference("\\VOLUME{1}\\EVIL.EXE.MUI", "EVIL.EXE", []) == TAG_NORMAL


class TestKeywordParsing:
    def test_parse_keywords(self):
        assert parse_keywords("system32, fonts,,") == ["system32", "fonts"]

    def test_parse_none(self):
        assert parse_keywords(None) == []

    def test_normalize(self):
        assert normalize_keywords([" Temp ", "TMP", ""]) == frozenset({"temp", "tmp"})


class TestClassifier:
    def test_directories_never_tagged_as_executable(self):
        volume = make_volume(directories=("\\VOLUME{1}\\TEMP", "\\VOLUME{1}\\EVIL.EXE"))
        artifact = make_artifact("EVIL.EXE", volumes=[volume])

        tags = Classifier(["temp"]).directories(artifact)

        assert tags == [
            ("\\VOLUME{1}\\TEMP", TAG_KEYWORD_MATCH),
            ("\\VOLUME{1}\\EVIL.EXE", TAG_NORMAL),
        ]

    def test_filenames_tagged_in_order(self):
        artifact = make_artifact(
            "EVIL.EXE",
            filenames=[
                "\\VOLUME{1}\\WINDOWS\\SYSTEM32\\NTDLL.DLL",
                "\\VOLUME{1}\\TMP\\PAYLOAD.DAT",
                "\\VOLUME{1}\\TMP\\EVIL.EXE",
            ],
        )

        tags = [tag for _, tag in Classifier(["TMP"]).filenames(artifact)]

        assert tags == [TAG_NORMAL, TAG_KEYWORD_MATCH, TAG_TRACKED_EXECUTABLE]

    def test_artifact_not_mutated(self):
        artifact = make_artifact()
        before = artifact
        Classifier(["temp"]).filenames(artifact)
        assert artifact == before
