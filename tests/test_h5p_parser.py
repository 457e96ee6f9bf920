"""
H5P package resolver tests
"""

import pytest

from package_viewer.parsers.h5p_parser import parse_h5p
from package_viewer.security.errors import ExtractionErrorCode, ZipExtractionError
from package_viewer.security.zip_extractor import ExtractionLimits


class TestH5PMetadata:
    """Title, library and language resolution"""

    def test_parses_full_package(self, h5p_zip):
        parsed = parse_h5p(h5p_zip)

        assert parsed.metadata.title == "Quiz Content"
        assert parsed.metadata.main_library == "H5P.MultiChoice"
        assert parsed.metadata.language == "en"
        assert parsed.metadata.main_file == "content/index.html"
        assert list(parsed.assets) == [
            "h5p.json",
            "content/content.json",
            "content/index.html",
            "content/images/logo.png",
        ]

    def test_title_falls_back_to_h5p_json(self, zip_builder):
        buffer = zip_builder({"h5p.json": '{"title": "From h5p.json"}'})
        assert parse_h5p(buffer).metadata.title == "From h5p.json"

    def test_title_default_without_metadata(self, zip_builder):
        buffer = zip_builder({"content/index.html": "<html></html>"})
        assert parse_h5p(buffer).metadata.title == "H5P Package"

    def test_non_string_title_is_ignored(self, zip_builder):
        buffer = zip_builder(
            {
                "h5p.json": '{"title": "Fallback"}',
                "content/content.json": '{"title": 42}',
            }
        )
        assert parse_h5p(buffer).metadata.title == "Fallback"

    def test_malformed_json_is_treated_as_absent(self, zip_builder):
        buffer = zip_builder(
            {
                "h5p.json": "{not json",
                "content/content.json": "[1, 2, 3]",
            }
        )
        metadata = parse_h5p(buffer).metadata

        assert metadata.title == "H5P Package"
        assert metadata.main_library is None
        assert metadata.language is None

    @pytest.mark.parametrize(
        "payload",
        [
            '{"title": ' + "1" * 5000 + "}",
            "[" * 100000 + "]" * 100000,
            b"\xff\xfe not utf-8",
        ],
        ids=["oversized-integer", "deep-nesting", "bad-encoding"],
    )
    def test_undecodable_json_is_treated_as_absent(self, zip_builder, payload):
        buffer = zip_builder({"h5p.json": payload, "content/index.html": "<p/>"})
        metadata = parse_h5p(buffer).metadata

        assert metadata.title == "H5P Package"
        assert metadata.main_file == "content/index.html"

    def test_byte_order_mark_is_tolerated(self, zip_builder):
        buffer = zip_builder({"h5p.json": b"\xef\xbb\xbf" + b'{"title": "BOM"}'})
        assert parse_h5p(buffer).metadata.title == "BOM"

    def test_metadata_serializes_with_aliases(self, h5p_zip):
        dumped = parse_h5p(h5p_zip).metadata.model_dump(by_alias=True)
        assert dumped["mainFile"] == "content/index.html"
        assert dumped["mainLibrary"] == "H5P.MultiChoice"


class TestH5PMainFile:
    """Entry point selection"""

    @pytest.mark.parametrize(
        "files,expected",
        [
            (["content/content.html", "content/content.json"], "content/content.html"),
            (["h5p.json", "content/content.json"], "content/content.json"),
            (["other.txt", "h5p.json"], "h5p.json"),
            (["zzz.txt", "aaa.txt"], "zzz.txt"),
        ],
    )
    def test_main_file_priority(self, zip_builder, files, expected):
        buffer = zip_builder([(name, "{}") for name in files])
        assert parse_h5p(buffer).metadata.main_file == expected

    def test_empty_archive_gets_dangling_default(self, zip_builder):
        parsed = parse_h5p(zip_builder([]))

        assert parsed.metadata.main_file == "content/index.html"
        assert parsed.assets == {}


class TestH5PErrors:
    """Extractor failures propagate unchanged"""

    def test_zip_slip_propagates(self, zip_builder):
        buffer = zip_builder({"../evil.js": "alert(1)"})
        with pytest.raises(ZipExtractionError) as exc_info:
            parse_h5p(buffer)
        assert exc_info.value.code is ExtractionErrorCode.ZIP_SLIP_DETECTED

    def test_limits_are_forwarded(self, h5p_zip):
        with pytest.raises(ZipExtractionError) as exc_info:
            parse_h5p(h5p_zip, ExtractionLimits(max_entries=2))
        assert exc_info.value.code is ExtractionErrorCode.TOO_MANY_ENTRIES

    def test_invalid_archive(self):
        with pytest.raises(ZipExtractionError) as exc_info:
            parse_h5p(b"not a zip")
        assert exc_info.value.code is ExtractionErrorCode.INVALID_ARCHIVE
