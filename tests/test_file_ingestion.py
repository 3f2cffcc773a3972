"""Tests for file ingestion."""

import asyncio
import io

import pytest
from docx import Document as DocxDocument

from conftest import ScriptedChatModel
from lexease.api.errors import ExtractionFailure, UnsupportedFileFormat
from lexease.api.file_ingestion import (
    DOCX_MIME,
    OCR_PROMPT,
    PDF_MIME,
    extract_text,
    ingest_file,
    normalize_mime_type,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def make_docx(*paragraphs: str) -> bytes:
    document = DocxDocument()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_extract_plain_text():
    """Text files are decoded as UTF-8, invalid bytes replaced."""
    assert extract_text("Clause 1. Payment.".encode("utf-8"), "text/plain") == "Clause 1. Payment."
    assert "�" in extract_text(b"caf\xff", "text/plain")


def test_extract_docx_paragraphs():
    """DOCX paragraphs are joined with newlines."""
    data = make_docx("RENTAL AGREEMENT", "The tenant shall pay rent monthly.")
    assert extract_text(data, DOCX_MIME) == "RENTAL AGREEMENT\nThe tenant shall pay rent monthly."


def test_extract_pdf_pages_in_order(pdf_factory):
    """PDF page texts come back in page order, separated by a space."""
    text = extract_text(pdf_factory("First page", "Second page"), PDF_MIME)
    assert "First page" in text
    assert "Second page" in text
    assert text.index("First page") < text.index("Second page")


def test_unsupported_type_is_an_explicit_signal():
    with pytest.raises(UnsupportedFileFormat) as exc_info:
        extract_text(b"PK\x03\x04", "application/zip")
    assert exc_info.value.code == "unsupported_file_format"


def test_parser_error_becomes_extraction_failure():
    with pytest.raises(ExtractionFailure):
        extract_text(b"definitely not a docx", DOCX_MIME)


def test_normalize_mime_type():
    """Parameters are stripped and generic types resolved from the extension."""
    assert normalize_mime_type("Text/Plain; charset=utf-8") == "text/plain"
    assert normalize_mime_type("application/octet-stream", "contract.PDF") == PDF_MIME
    assert normalize_mime_type(None, "scan.jpg") == "image/jpeg"
    assert normalize_mime_type("image/jpg") == "image/jpeg"


def test_ingest_text_file():
    result = asyncio.run(ingest_file(b"Party A shall pay.", "application/octet-stream", "terms.txt"))
    assert result.has_content
    assert result.text == "Party A shall pay."
    assert result.mime_type == "text/plain"
    assert result.error is None


def test_ingest_unsupported_file_is_reported_not_raised():
    result = asyncio.run(ingest_file(b"PK\x03\x04", "application/zip", "bundle.zip"))
    assert not result.has_content
    assert result.text == ""
    assert result.error == "unsupported_file_format"
    assert "application/zip" in result.message


def test_ingest_unreadable_docx_is_reported():
    result = asyncio.run(ingest_file(b"garbage", DOCX_MIME, "broken.docx"))
    assert result.text == ""
    assert result.error == "extraction_failure"


def test_ingest_image_without_ocr_keeps_data_uri():
    """With OCR disabled an image is kept as a data URI for later prompts."""
    model = ScriptedChatModel()
    result = asyncio.run(ingest_file(PNG_BYTES, "image/png", "scan.png", model=model, ocr_enabled=False))
    assert result.method == "data_uri"
    assert result.text.startswith("data:image/png;base64,")
    assert model.calls == []


def test_ingest_image_with_ocr_transcribes():
    model = ScriptedChatModel({"Extract the full text content": "```\nLEASE DEED\nRent: 10,000\n```"})
    result = asyncio.run(ingest_file(PNG_BYTES, "image/png", "scan.png", model=model, ocr_enabled=True))

    assert result.method == "ocr"
    assert result.text == "LEASE DEED\nRent: 10,000"
    content = model.calls[0][0].content
    assert content[0] == {"type": "text", "text": OCR_PROMPT}
    assert content[1]["type"] == "image_url"
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")


def test_ingest_pdf_without_text_layer_falls_back_to_transcription(pdf_factory):
    model = ScriptedChatModel({"Extract the full text content": "Scanned agreement text"})
    result = asyncio.run(ingest_file(pdf_factory(""), PDF_MIME, "scan.pdf", model=model, ocr_enabled=True))

    assert result.method == "ocr"
    assert result.text == "Scanned agreement text"
    media = model.calls[0][0].content[1]
    assert media["type"] == "file"
    assert media["mime_type"] == PDF_MIME


def test_ingest_transcription_failure_is_reported():
    model = ScriptedChatModel({"Extract the full text content": RuntimeError("model unavailable")})
    result = asyncio.run(ingest_file(PNG_BYTES, "image/png", "scan.png", model=model, ocr_enabled=True))
    assert result.text == ""
    assert result.error == "extraction_failure"
    assert "model unavailable" in result.message
