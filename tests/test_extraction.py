"""Tests for best-effort text extraction."""
from __future__ import annotations

import io

import PyPDF2
from docx import Document

from SmartPRD.services.extraction import detect_kind, extract_text


def _docx_bytes(*paragraphs: str) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    bio = io.BytesIO()
    doc.save(bio)
    return bio.getvalue()


def _blank_pdf_bytes() -> bytes:
    writer = PyPDF2.PdfWriter()
    writer.add_blank_page(width=200, height=200)
    bio = io.BytesIO()
    writer.write(bio)
    return bio.getvalue()


class TestDetectKind:
    def test_by_extension(self):
        assert detect_kind("PRD.PDF") == "pdf"
        assert detect_kind("brief.docx") == "docx"
        assert detect_kind("notes.md") == "text"
        assert detect_kind("image.png") == "other"

    def test_by_content_type(self):
        assert detect_kind("upload", "application/pdf") == "pdf"
        assert detect_kind("upload", "text/plain") == "text"


class TestExtractText:
    def test_plain_text(self):
        assert extract_text("hello.txt", "text/plain", b"Hello") == "Hello"

    def test_docx_paragraphs(self):
        data = _docx_bytes("Goals", "Ship the MVP")
        assert extract_text("prd.docx", None, data) == "Goals\nShip the MVP"

    def test_broken_pdf_is_not_fatal(self):
        assert extract_text("prd.pdf", "application/pdf", b"definitely not a pdf") is None

    def test_pdf_without_text_layer(self):
        assert extract_text("scan.pdf", "application/pdf", _blank_pdf_bytes()) is None

    def test_unsupported_type(self):
        assert extract_text("logo.png", "image/png", b"\x89PNG") is None

    def test_whitespace_only_is_none(self):
        assert extract_text("empty.txt", "text/plain", b"  \n ") is None
