"""Tests for submission-time file validation."""

import pytest

from docmorph.conversion import (
    MAX_FILE_SIZE,
    PDF_OUTPUT_MAX_FILE_SIZE,
    FileTooLarge,
    Format,
    FormatMismatch,
    InputFile,
    UnsupportedFormat,
    validate_file,
)


class TestValidateFile:
    """Test size ceilings and expected-format checks."""

    def test_small_file_passes(self):
        assert validate_file(InputFile("test.txt", b"test")) is None

    def test_exact_ceiling_is_accepted(self):
        validate_file(InputFile("big.txt", b"a" * MAX_FILE_SIZE))

    def test_one_byte_over_is_rejected(self):
        with pytest.raises(FileTooLarge, match="File too large. Maximum size is 10MB"):
            validate_file(InputFile("big.txt", b"a" * (MAX_FILE_SIZE + 1)))

    def test_tighter_route_ceiling_wins(self):
        file = InputFile("big.txt", b"a" * (PDF_OUTPUT_MAX_FILE_SIZE + 1))
        with pytest.raises(FileTooLarge) as exc:
            validate_file(file, max_size=PDF_OUTPUT_MAX_FILE_SIZE)
        assert exc.value.limit == PDF_OUTPUT_MAX_FILE_SIZE
        validate_file(InputFile("ok.txt", b"a" * PDF_OUTPUT_MAX_FILE_SIZE), max_size=PDF_OUTPUT_MAX_FILE_SIZE)

    def test_looser_route_ceiling_does_not_raise_general_limit(self):
        with pytest.raises(FileTooLarge):
            validate_file(InputFile("big.txt", b"a" * (MAX_FILE_SIZE + 1)), max_size=MAX_FILE_SIZE * 2)

    def test_expected_format_matches(self):
        validate_file(InputFile("page.htm", b"<p>x</p>"), expected_format=Format.HTML)

    def test_expected_format_mismatch(self):
        with pytest.raises(FormatMismatch, match="Expected pdf file, got txt"):
            validate_file(InputFile("notes.txt", b"x"), expected_format=Format.PDF)

    def test_expected_format_with_unknown_extension(self):
        with pytest.raises(UnsupportedFormat):
            validate_file(InputFile("notes.xyz", b"x"), expected_format=Format.TXT)
