"""
Error taxonomy shared by ingestion, analysis, Q&A, drafting and persistence.

Every error carries a stable ``code`` that the router places in the
``{"error": code}`` detail of its HTTP response.
"""

from typing import Optional


class LexeaseError(Exception):
    """Base class for all application errors."""

    code = "lexease_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_detail(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(LexeaseError):
    """A request was rejected before any model or storage call."""

    code = "validation_error"


class UnsupportedFileFormat(LexeaseError):
    """The declared MIME type has no extractor."""

    code = "unsupported_file_format"

    def __init__(self, mime_type: str):
        super().__init__(f"Unsupported file type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class ExtractionFailure(LexeaseError):
    """A parser raised while converting a supported file to text."""

    code = "extraction_failure"


class AnalysisStageFailure(LexeaseError):
    """One of the summary / entities / risks stages failed."""

    code = "analysis_stage_failure"

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage
        self.cause = cause

    def to_detail(self) -> dict:
        return {"error": self.code, "stage": self.stage, "message": self.message}


class AnalysisAlreadyRunning(LexeaseError):
    """An analysis for the same document is still in progress."""

    code = "analysis_already_running"


class TemplateNotFound(LexeaseError):
    """No template is available for the requested type and language."""

    code = "template_not_found"

    def __init__(self, document_type: str, language: str):
        super().__init__(f"No template for '{document_type}' in {language}")
        self.document_type = document_type
        self.language = language


class GenerationFailure(LexeaseError):
    """The model failed or produced no usable output."""

    code = "generation_failure"


class PersistenceFailure(LexeaseError):
    """A storage write was rejected."""

    code = "persistence_failure"


class DocumentNotFound(LexeaseError):
    """No document with the given id is visible to the caller."""

    code = "document_not_found"
