"""Tests for reading files into SourceFile records."""

import io

import pytest
from pypdf import PdfWriter

from chunklab.errors import ValidationError
from chunklab.ingest import FILE_TYPES, load_source_file, new_file_id


def _blank_pdf(path, pages=2):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)
    path.write_bytes(buffer.getvalue())
    return path


def test_text_file(tmp_path):
    path = tmp_path / "table.csv"
    path.write_text("a,b\n1,2\n")

    source = load_source_file(path)

    assert source.type == "csv"
    assert source.content == "a,b\n1,2\n"
    assert source.size == 8
    assert len(source.id) == 9


def test_pdf_file(tmp_path):
    path = _blank_pdf(tmp_path / "scan.pdf")

    source = load_source_file(path)

    assert source.type == "pdf"
    assert source.name == "scan.pdf"
    assert source.size == path.stat().st_size
    # Blank pages carry no text
    assert source.content == ""


def test_malformed_pdf(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"%PDF-1.4\nnot really a pdf")
    with pytest.raises(ValidationError, match="Could not read broken.pdf"):
        load_source_file(path)


def test_bad_utf8(tmp_path):
    path = tmp_path / "latin.txt"
    path.write_bytes("caf\xe9".encode("latin-1"))
    with pytest.raises(ValidationError, match="Could not read"):
        load_source_file(path)


def test_suffix_is_case_insensitive(tmp_path):
    path = tmp_path / "README.MD"
    path.write_text("# Title")
    assert load_source_file(path).type == "markdown"


def test_unsupported_suffix_lists_supported(tmp_path):
    path = tmp_path / "slides.pptx"
    path.write_bytes(b"PK")
    with pytest.raises(ValidationError, match=r"Supported: .*\.pdf"):
        load_source_file(path)
    assert ".pdf" in FILE_TYPES


def test_file_ids_are_unique():
    ids = {new_file_id() for _ in range(50)}
    assert len(ids) == 50
