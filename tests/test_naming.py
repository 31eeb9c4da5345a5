import re

from media_intake.services.naming import (
    SHORT_ID_ALPHABET,
    generate_unique_filename,
    sanitize_filename,
    short_id,
)


def test_sanitize_strips_path_and_symbols():
    assert sanitize_filename("file@name with$symbols& spaced .txt") == "filename_withsymbols_spaced_.txt"
    assert sanitize_filename("/var/tmp/../report 2024.pdf") == "report_2024.pdf"
    assert sanitize_filename("C:\\Users\\me\\photo.png") == "photo.png"


def test_sanitize_collapses_whitespace_runs():
    assert sanitize_filename("a \t\n b.txt") == "a_b.txt"


def test_sanitize_drops_unicode_and_truncates():
    assert sanitize_filename("café.png") == "caf.png"
    assert len(sanitize_filename("x" * 250 + ".txt")) == 100


def test_sanitize_can_return_empty():
    assert sanitize_filename("日本語") == ""
    assert sanitize_filename("dir/") == ""


def test_short_id_shape():
    ident = short_id()
    assert len(ident) == 21
    assert set(ident) <= set(SHORT_ID_ALPHABET)
    assert short_id() != ident


def test_unique_filename_keeps_extension():
    name = generate_unique_filename("my photo.JPG", "image/jpeg")
    assert re.fullmatch(r"my_photo_[A-Za-z0-9_-]{21}\.JPG", name)


def test_unique_filename_falls_back_to_content_type():
    name = generate_unique_filename("README", "application/pdf")
    assert re.fullmatch(r"README_[A-Za-z0-9_-]{21}\.pdf", name)


def test_unique_filename_without_any_extension():
    name = generate_unique_filename("notes.", "application/x-unknown-thing")
    assert re.fullmatch(r"notes_[A-Za-z0-9_-]{21}", name)


def test_unique_filename_empty_basename():
    name = generate_unique_filename("???", "image/png")
    assert re.fullmatch(r"_[A-Za-z0-9_-]{21}\.png", name)


def test_unique_filename_symbols():
    name = generate_unique_filename("file@name with$symbols& spaced .txt", "text/plain")
    assert name.startswith("filename_withsymbols_spaced__")
    assert name.endswith(".txt")
