"""
Safe archive extractor tests
"""

import io
import zipfile
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from package_viewer.security.errors import ExtractionErrorCode, ZipExtractionError
from package_viewer.security.zip_extractor import (
    ExtractionLimits,
    extract,
    is_path_safe,
    normalize_entry_path,
)

SANDBOX = "/tmp/sandbox"


def _raise_code(buffer, limits=None):
    with pytest.raises(ZipExtractionError) as exc_info:
        extract(buffer, SANDBOX, limits)
    return exc_info.value.code


class TestExtract:
    """Successful extraction"""

    def test_extracts_files_in_order(self, zip_builder):
        buffer = zip_builder([("b.txt", "B"), ("a/c.txt", "C"), ("a.txt", "A")])
        entries = extract(buffer, SANDBOX)

        assert [e.path for e in entries] == ["b.txt", "a/c.txt", "a.txt"]
        assert entries[1].data == b"C"
        assert entries[1].size == 1

    def test_skips_directory_entries(self, zip_builder):
        buffer = zip_builder([("folder/", b""), ("folder/file.txt", "x")])
        entries = extract(buffer, SANDBOX)

        assert [e.path for e in entries] == ["folder/file.txt"]

    def test_empty_archive_returns_no_entries(self, zip_builder):
        assert extract(zip_builder([]), SANDBOX) == []

    def test_directory_only_archive_returns_no_entries(self, zip_builder):
        assert extract(zip_builder([("folder/", b"")]), SANDBOX) == []

    def test_normalizes_backslash_paths(self, zip_builder):
        buffer = zip_builder([("folder\\file.txt", "x")])
        entries = extract(buffer, SANDBOX)

        assert entries[0].path == "folder/file.txt"

    def test_collapses_dot_segments(self, zip_builder):
        buffer = zip_builder([("./a/./b//c.txt", "x")])
        entries = extract(buffer, SANDBOX)

        assert entries[0].path == "a/b/c.txt"

    def test_allows_double_dots_inside_names(self, zip_builder):
        buffer = zip_builder([("notes..v2.txt", "x")])
        assert extract(buffer, SANDBOX)[0].path == "notes..v2.txt"

    def test_stored_entries_are_supported(self, zip_builder):
        buffer = zip_builder([("a.txt", "plain")], compression=zipfile.ZIP_STORED)
        assert extract(buffer, SANDBOX)[0].data == b"plain"


class TestZipSlip:
    """Path traversal protection"""

    @pytest.mark.parametrize(
        "name",
        [
            "../../../etc/passwd",
            "/etc/passwd",
            "..\\..\\..\\windows\\system32\\config",
            "safe/../../escape.txt",
            "C:\\Windows\\evil.dll",
            "C:/evil.txt",
            "../evil/",
            "..\\outside\\",
        ],
    )
    def test_rejects_escaping_entries(self, zip_builder, name):
        buffer = zip_builder([("ok.txt", "fine"), (name, "evil")])
        assert _raise_code(buffer) is ExtractionErrorCode.ZIP_SLIP_DETECTED

    def test_rejects_before_reading_entry(self, zip_builder):
        buffer = zip_builder([("../evil.txt", "evil")])
        with patch.object(zipfile.ZipFile, "open", side_effect=AssertionError):
            assert _raise_code(buffer) is ExtractionErrorCode.ZIP_SLIP_DETECTED


class TestLimits:
    """Entry count and decompressed size limits"""

    def test_too_many_entries(self, zip_builder):
        buffer = zip_builder([(f"f{i}.txt", "") for i in range(11)])
        limits = ExtractionLimits(max_entries=10)

        assert _raise_code(buffer, limits) is ExtractionErrorCode.TOO_MANY_ENTRIES

    def test_entry_limit_checked_before_decompression(self, zip_builder):
        buffer = zip_builder([(f"f{i}.txt", "x") for i in range(5)])
        limits = ExtractionLimits(max_entries=4)

        with patch.object(zipfile.ZipFile, "open", side_effect=AssertionError):
            assert _raise_code(buffer, limits) is ExtractionErrorCode.TOO_MANY_ENTRIES

    def test_directories_count_towards_entry_limit(self, zip_builder):
        buffer = zip_builder([("a/", b""), ("b/", b""), ("a/x.txt", "x")])
        limits = ExtractionLimits(max_entries=2)

        assert _raise_code(buffer, limits) is ExtractionErrorCode.TOO_MANY_ENTRIES

    def test_exactly_at_entry_limit_is_accepted(self, zip_builder):
        buffer = zip_builder([(f"f{i}.txt", "x") for i in range(3)])
        entries = extract(buffer, SANDBOX, ExtractionLimits(max_entries=3))
        assert len(entries) == 3

    def test_default_entry_limit(self, zip_builder):
        buffer = zip_builder([(f"f{i}.txt", "") for i in range(10001)])
        assert _raise_code(buffer) is ExtractionErrorCode.TOO_MANY_ENTRIES

    def test_total_size_exceeded_across_entries(self, zip_builder):
        buffer = zip_builder([("a.txt", "x" * 600), ("b.txt", "y" * 600)])
        limits = ExtractionLimits(max_total_bytes=1000)

        assert _raise_code(buffer, limits) is ExtractionErrorCode.SIZE_EXCEEDED

    def test_size_limit_enforced_mid_entry(self, zip_builder):
        # Highly compressible payload: inflates far past the limit
        buffer = zip_builder([("bomb.txt", b"\0" * (2 * 1024 * 1024))])
        limits = ExtractionLimits(max_total_bytes=100 * 1024)

        assert _raise_code(buffer, limits) is ExtractionErrorCode.SIZE_EXCEEDED

    def test_size_exactly_at_limit_is_accepted(self, zip_builder):
        buffer = zip_builder([("a.txt", "x" * 500), ("b.txt", "y" * 500)])
        entries = extract(buffer, SANDBOX, ExtractionLimits(max_total_bytes=1000))
        assert sum(e.size for e in entries) == 1000

    @pytest.mark.parametrize("field", ["max_entries", "max_total_bytes"])
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            ExtractionLimits(**{field: 0})


class TestInvalidArchives:
    """Structural failures"""

    def test_rejects_non_zip_buffer(self):
        assert _raise_code(b"definitely not a zip") is ExtractionErrorCode.INVALID_ARCHIVE

    def test_rejects_empty_buffer(self):
        assert _raise_code(b"") is ExtractionErrorCode.INVALID_ARCHIVE

    def test_corrupt_entry_data_fails_extraction(self, zip_builder):
        buffer = bytearray(
            zip_builder([("hello.txt", "hello world")], compression=zipfile.ZIP_STORED)
        )
        offset = bytes(buffer).index(b"hello world")
        buffer[offset] ^= 0xFF

        assert _raise_code(bytes(buffer)) is ExtractionErrorCode.EXTRACTION_FAILED


class TestPathHelpers:
    """normalize_entry_path / is_path_safe"""

    def test_normalize(self):
        assert normalize_entry_path("a\\b\\..\\c.txt") == "a/c.txt"
        assert normalize_entry_path("./x/./y.txt") == "x/y.txt"

    def test_safe_path_resolves_under_root(self, tmp_path):
        safe, resolved = is_path_safe("a/b.txt", tmp_path)
        assert safe is True
        assert resolved.startswith(str(tmp_path))

    def test_unsafe_paths(self, tmp_path):
        assert is_path_safe("../x", tmp_path)[0] is False
        assert is_path_safe("/abs", tmp_path)[0] is False
        assert is_path_safe("D:evil", tmp_path)[0] is False
