"""
File Ingestion (Uploads → Plain Text)
=====================================

Purpose
-------
Converts an uploaded file's bytes into the plain text the analysis, Q&A and
drafting flows work on.

Key Functions
-------------
- guess_ext             : Infer file extension from a filename.
- normalize_mime_type   : Clean a declared MIME type, inferring it from the extension when missing.
- extract_text_from_pdf : Page texts in page order, joined with a space (pypdf).
- extract_text_from_docx: Paragraph texts joined with newlines (python-docx).
- decode_text           : UTF-8 decoding with replacement of invalid bytes.
- extract_text          : Deterministic dispatch on MIME type; raises
                          `UnsupportedFileFormat` / `ExtractionFailure`.
- ingest_file           : Component boundary. Adds model transcription for images
                          and text-less PDFs, never raises, reports problems in an
                          `IngestionResult`.

Callers must treat an `IngestionResult` with empty text as "no content" and
must not start an analysis for it.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Optional

from docx import Document as DocxDocument
from langchain_core.messages import HumanMessage
from pypdf import PdfReader

from lexease.api.errors import ExtractionFailure, LexeaseError, UnsupportedFileFormat
from lexease.api.llm_utilities import lc_text_from_content, strip_code_fences, to_data_url
from lexease.database.config.config import settings

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MSWORD_MIME = "application/msword"
WORD_MIME_TYPES = {DOCX_MIME, MSWORD_MIME}

EXTENSION_MIME_TYPES = {
    ".pdf": PDF_MIME,
    ".docx": DOCX_MIME,
    ".doc": MSWORD_MIME,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

OCR_PROMPT = """Extract the full text content from the attached document.
Preserve the reading order and paragraph breaks. Do not summarize, translate or comment.
Return only the text."""


@dataclass
class IngestionResult:
    """Outcome of ingesting one file."""

    text: str
    mime_type: str
    method: str
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.text and self.text.strip())


def guess_ext(filename: str) -> str:
    """
    Extract the file extension from a filename.

    Args:
        filename (str): Input filename.

    Returns:
        str: Lowercased file extension (e.g., ".pdf").
    """
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def normalize_mime_type(mime_type: str | None, file_name: str | None = None) -> str:
    """Lowercase, strip parameters, and fall back to the extension for generic types."""
    core = (mime_type or "").split(";")[0].strip().lower()
    if core in ("", "application/octet-stream", "binary/octet-stream"):
        return EXTENSION_MIME_TYPES.get(guess_ext(file_name or ""), core)
    if core == "image/jpg":
        return "image/jpeg"
    return core


def extract_text_from_pdf(data: bytes) -> str:
    """
    Extract plain text from all pages of a PDF, in page order.

    Args:
        data (bytes): PDF content.

    Returns:
        str: Page texts joined by a single space.
    """
    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages:
        parts.append((page.extract_text() or "").strip())
    return " ".join(part for part in parts if part)


def extract_text_from_docx(data: bytes) -> str:
    """Raw paragraph text of a DOCX file (formatting is dropped)."""
    document = DocxDocument(io.BytesIO(data))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def decode_text(data: bytes) -> str:
    """Decode bytes as UTF-8 (BOM tolerated, invalid bytes replaced)."""
    return data.decode("utf-8-sig", errors="replace")


def extract_text(data: bytes, mime_type: str) -> str:
    """
    Convert a supported file to text.

    Args:
        data (bytes): File content.
        mime_type (str): Normalized MIME type.

    Returns:
        str: Extracted text (may be empty, e.g. for scanned PDFs).

    Raises:
        UnsupportedFileFormat: No extractor exists for `mime_type`.
        ExtractionFailure: The parser raised.
    """
    if mime_type == PDF_MIME:
        extractor = extract_text_from_pdf
    elif mime_type in WORD_MIME_TYPES:
        extractor = extract_text_from_docx
    elif mime_type.startswith("text/"):
        extractor = decode_text
    else:
        raise UnsupportedFileFormat(mime_type)

    try:
        return extractor(data)
    except Exception as e:
        raise ExtractionFailure(f"Could not read {mime_type} content: {e}") from e


async def transcribe_with_model(model, data: bytes, mime_type: str) -> str:
    """
    OCR-style transcription of binary content by the chat model.

    Args:
        model: LangChain chat model (anything with ``ainvoke``).
        data (bytes): File content.
        mime_type (str): MIME type of the content.

    Returns:
        str: The transcribed text (fidelity is not guaranteed).
    """
    data_url = to_data_url(data, mime_type)
    if mime_type.startswith("image/"):
        media = {"type": "image_url", "image_url": {"url": data_url}}
    else:
        media = {"type": "file", "source_type": "base64", "mime_type": mime_type, "data": data_url.split(",", 1)[1]}
    message = HumanMessage(content=[{"type": "text", "text": OCR_PROMPT}, media])
    response = await model.ainvoke([message])
    return strip_code_fences(lc_text_from_content(response.content))


async def ingest_file(
    data: bytes,
    mime_type: str | None,
    file_name: str = "",
    model=None,
    ocr_enabled: bool | None = None,
) -> IngestionResult:
    """
    Ingest one uploaded file.

    - PDF, DOCX and text go through `extract_text`.
    - Images are transcribed by `model` when OCR is enabled; otherwise they are
      kept as a data URI so later prompts attach them as media.
    - A PDF without a text layer is transcribed when OCR is enabled.
    - Unsupported types and parser errors are logged and reported, not raised.

    Returns:
        IngestionResult
    """
    ocr_enabled = settings.OCR_ENABLED if ocr_enabled is None else ocr_enabled
    mime = normalize_mime_type(mime_type, file_name)

    if mime.startswith("image/"):
        if not ocr_enabled or model is None:
            return IngestionResult(text=to_data_url(data, mime), mime_type=mime, method="data_uri")
        return await _transcribe(model, data, mime, file_name)

    try:
        text = extract_text(data, mime)
    except LexeaseError as e:
        logger.warning("Ingestion of %s (%s) failed: %s", file_name or "<upload>", mime or "unknown", e.message)
        return IngestionResult(text="", mime_type=mime, method="none", error=e.code, message=e.message)

    if mime == PDF_MIME and not text.strip() and ocr_enabled and model is not None:
        logger.info("No text layer in %s, falling back to model transcription", file_name or "<upload>")
        return await _transcribe(model, data, mime, file_name)

    return IngestionResult(text=text, mime_type=mime, method="parser")


async def _transcribe(model, data: bytes, mime: str, file_name: str) -> IngestionResult:
    try:
        text = await transcribe_with_model(model, data, mime)
    except Exception as e:
        logger.error("Transcription of %s failed: %s", file_name or "<upload>", e)
        return IngestionResult(
            text="", mime_type=mime, method="ocr", error=ExtractionFailure.code, message=str(e)
        )
    return IngestionResult(text=text, mime_type=mime, method="ocr")
