"""
FastAPI Router: Documents • Analysis • Q&A • Drafting
=====================================================

Purpose
-------
Defines the HTTP API for:
- Document library: upload (ingest + store), list, fetch, delete
- Analysis: batch (one response) or streaming (background, partial results
  persisted per stage), with a Server-Sent Events change stream
- Q&A about one document (persisted message log) and general legal Q&A
- Drafting from templates, and template listing

Key Notes
---------
- Input validation via Pydantic models in `lexease.api.models`; wire keys are camelCase.
- Auth cookie: `token` (JWT) whose `sub` is the user id; every route but /ping requires it.
- Application errors (`lexease.api.errors`) become `HTTPException`s with a
  ``{"error": code, "message": ...}`` detail.
- Streaming responses (SSE) are sent as ``data: {json}\\n\\n`` frames.
"""

import asyncio
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from lexease.api.analysis_pipeline import AnalysisPipeline
from lexease.api.drafting_agent import TemplateRepository, draft_document, get_template_repository
from lexease.api.errors import (
    AnalysisAlreadyRunning,
    AnalysisStageFailure,
    DocumentNotFound,
    ExtractionFailure,
    GenerationFailure,
    LexeaseError,
    PersistenceFailure,
    TemplateNotFound,
    UnsupportedFileFormat,
    ValidationError,
)
from lexease.api.file_ingestion import ingest_file
from lexease.api.interactive_qa import answer_general_question, answer_question
from lexease.api.llm_utilities import get_chat_model
from lexease.api.models import (
    AnalysisAccepted,
    AnalysisMode,
    AnalysisRequest,
    Answer,
    DocumentAnalysis,
    DocumentDetails,
    DocumentListItem,
    DraftOut,
    DraftRequest,
    MessageOut,
    QuestionRequest,
    TemplateList,
    UserRole,
)
from lexease.api.notifications import ANALYSIS_IDLE, DocumentEvent, DocumentEventBus
from lexease.api.utils import get_current_user
from lexease.database.config.config import settings
from lexease.database.core.funcs import (
    create_document,
    create_message,
    delete_document,
    get_document,
    get_document_messages,
    get_documents,
)
from lexease.database.core.result_sink import ResultSink, SqlResultSink

logger = logging.getLogger(__name__)

router = APIRouter()
"""Creates the FastAPI router in which we define its routes"""

STATUS_CODES = {
    ValidationError: 422,
    UnsupportedFileFormat: 415,
    ExtractionFailure: 422,
    DocumentNotFound: 404,
    TemplateNotFound: 404,
    AnalysisAlreadyRunning: 409,
    AnalysisStageFailure: 502,
    GenerationFailure: 502,
    PersistenceFailure: 503,
}


def http_error(error: LexeaseError) -> HTTPException:
    """Translate an application error into an HTTPException with a coded detail."""
    status_code = next((STATUS_CODES[cls] for cls in type(error).__mro__ if cls in STATUS_CODES), 500)
    return HTTPException(status_code=status_code, detail=error.to_detail())


def init_app_state(
    state,
    model=None,
    template_repository: Optional[TemplateRepository] = None,
    sink: Optional[ResultSink] = None,
    event_bus: Optional[DocumentEventBus] = None,
) -> None:
    """
    Attach the shared services to `app.state`.

    - event_bus           : per-document change notifications
    - model               : chat model used by analysis, Q&A, drafting and OCR
    - sink                : where analysis results are persisted
    - pipeline            : `AnalysisPipeline` (holds the duplicate-run guard)
    - template_repository : drafting templates, per `TEMPLATE_SOURCE`
    """
    state.event_bus = event_bus if event_bus is not None else DocumentEventBus()
    state.model = model if model is not None else get_chat_model()
    state.sink = sink if sink is not None else SqlResultSink(state.event_bus)
    state.pipeline = AnalysisPipeline(state.model, state.sink, state.event_bus)
    state.template_repository = template_repository if template_repository is not None else get_template_repository()


async def run_streaming_analysis(pipeline: AnalysisPipeline, document_id, document_text: str, user_role: UserRole):
    """Background task body for a run reserved by the route; per-stage problems are recorded on the document."""
    try:
        await pipeline.analyze_streaming(document_id, document_text, user_role, reserved=True)
    except LexeaseError as e:
        logger.error("Streaming analysis of document %s did not start: %s", document_id, e.message)


@router.get("/ping")
async def ping():
    """Liveness check."""
    return {"status": "ok"}


@router.post("/documents", status_code=201, response_model=DocumentDetails)
async def upload_document(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    user_role: UserRole = Form(UserRole.layperson),
    analyze: bool = Form(False),
    user_id: str = Depends(get_current_user),
):
    """Ingest an uploaded file and store it as a new document.

    Form fields:
        file      : the document (PDF, DOCX, text, image)
        user_role : audience for the summary when `analyze` is set
        analyze   : start a streaming analysis right after upload

    Response:
        201: the stored document
        413: file larger than MAX_UPLOAD_BYTES
        415: unsupported file type
        422: empty file, unreadable file, or no text could be extracted
    """
    too_large = HTTPException(
        status_code=413,
        detail={"error": "file_too_large", "message": f"Uploads are limited to {settings.MAX_UPLOAD_BYTES} bytes"},
    )
    if file.size is not None and file.size > settings.MAX_UPLOAD_BYTES:
        raise too_large
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise too_large
    if not data:
        raise http_error(ValidationError("The uploaded file is empty."))

    result = await ingest_file(data, file.content_type, file.filename or "", model=request.app.state.model)
    if result.error:
        status_code = 415 if result.error == UnsupportedFileFormat.code else 422
        raise HTTPException(status_code=status_code, detail={"error": result.error, "message": result.message})
    if not result.has_content:
        raise http_error(ValidationError("No text could be extracted from the uploaded file."))

    try:
        document = await asyncio.to_thread(
            create_document,
            user_id=user_id,
            file_name=file.filename or "upload",
            document_text=result.text,
            mime_type=result.mime_type,
        )
    except LexeaseError as e:
        raise http_error(e) from e

    if analyze:
        request.app.state.pipeline.reserve(document["id"])
        background_tasks.add_task(
            run_streaming_analysis, request.app.state.pipeline, document["id"], result.text, user_role
        )
    return document


@router.get("/documents", response_model=List[DocumentListItem])
def list_documents(user_id: str = Depends(get_current_user)):
    """The current user's documents, newest first (without their text)."""
    return get_documents(user_id=user_id)


@router.get("/documents/{document_id}", response_model=DocumentDetails)
def read_document(document_id: str, user_id: str = Depends(get_current_user)):
    """One document with its analysis and per-stage errors."""
    try:
        return get_document(document_id=document_id, user_id=user_id)
    except LexeaseError as e:
        raise http_error(e) from e


@router.delete("/documents/{document_id}", status_code=204)
def remove_document(document_id: str, user_id: str = Depends(get_current_user)):
    """Delete a document and its Q&A log."""
    try:
        delete_document(document_id=document_id, user_id=user_id)
    except LexeaseError as e:
        raise http_error(e) from e
    return Response(status_code=204)


@router.post("/documents/{document_id}/analysis")
async def analyze_document(
    document_id: str,
    data: AnalysisRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
):
    """Run the summary, entity and risk stages on a stored document.

    Modes:
        - "batch": waits for all stages; 200 with the full analysis, or 502 when
          any stage fails (nothing is saved in that case).
        - "streaming": 202 immediately; stages persist independently in the
          background. Follow progress on /documents/{id}/events.

    Errors:
        404 unknown document, 409 analysis already running, 422 empty document text.
    """
    pipeline: AnalysisPipeline = request.app.state.pipeline
    try:
        document = await asyncio.to_thread(get_document, document_id=document_id, user_id=user_id)
        pipeline.validate_text(document["document_text"])

        if data.mode == AnalysisMode.batch:
            return await pipeline.analyze_batch(document["id"], document["document_text"], data.user_role)

        pipeline.reserve(document["id"])
    except LexeaseError as e:
        raise http_error(e) from e

    background_tasks.add_task(
        run_streaming_analysis, pipeline, document["id"], document["document_text"], data.user_role
    )
    accepted = AnalysisAccepted(document_id=document["id"])
    return JSONResponse(status_code=202, content=accepted.model_dump(by_alias=True, mode="json"))


@router.get("/documents/{document_id}/events")
async def document_events(document_id: str, request: Request, user_id: str = Depends(get_current_user)):
    """Server-Sent Events stream of a document's changes.

    The stream closes after `analysis_completed`. When no analysis is running it
    sends a single `analysis_idle` event and closes.

    Response:
        StreamingResponse with "data: {json}\\n\\n" chunks, one per `DocumentEvent`.
    """
    try:
        document = await asyncio.to_thread(get_document, document_id=document_id, user_id=user_id)
    except LexeaseError as e:
        raise http_error(e) from e

    key = str(document["id"])
    event_bus: DocumentEventBus = request.app.state.event_bus
    queue = event_bus.subscribe(key)
    if not request.app.state.pipeline.is_running(key):
        queue.put_nowait(DocumentEvent(key, ANALYSIS_IDLE))

    async def event_stream():
        async for event in event_bus.listen(key, queue):
            yield f"data: {json.dumps(event.to_dict())}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@router.post("/documents/{document_id}/questions", response_model=Answer)
async def ask_question(
    document_id: str, data: QuestionRequest, request: Request, user_id: str = Depends(get_current_user)
):
    """Answer a question about one document and log both turns."""
    try:
        if not data.question.strip():
            raise ValidationError("Question must not be empty.")
        document = await asyncio.to_thread(get_document, document_id=document_id, user_id=user_id)
        await asyncio.to_thread(create_message, document_id=document["id"], role="user", content=data.question)
        answer = await answer_question(request.app.state.model, document["document_text"], data.question)
        await asyncio.to_thread(create_message, document_id=document["id"], role="assistant", content=answer)
    except LexeaseError as e:
        raise http_error(e) from e
    return Answer(answer=answer)


@router.get("/documents/{document_id}/messages", response_model=List[MessageOut])
def list_messages(document_id: str, user_id: str = Depends(get_current_user)):
    """The document's Q&A log in creation order ([] when empty)."""
    try:
        document = get_document(document_id=document_id, user_id=user_id)
        return get_document_messages(document_id=document["id"])
    except LexeaseError as e:
        raise http_error(e) from e


@router.post("/legal_qa", response_model=Answer)
async def legal_qa(data: QuestionRequest, request: Request, user_id: str = Depends(get_current_user)):
    """General legal question, not tied to a document."""
    try:
        answer = await answer_general_question(request.app.state.model, data.question)
    except LexeaseError as e:
        raise http_error(e) from e
    return Answer(answer=answer)


@router.post("/drafts", response_model=DraftOut)
async def create_draft(data: DraftRequest, request: Request, user_id: str = Depends(get_current_user)):
    """Draft a document from a template.

    Errors:
        404 no template for (documentType, language), 502 generation failed.
    """
    try:
        draft = await draft_document(
            request.app.state.model,
            request.app.state.template_repository,
            data.document_type,
            data.language,
            data.user_inputs,
        )
    except LexeaseError as e:
        raise http_error(e) from e
    return DraftOut(draft_content=draft)


@router.get("/templates", response_model=TemplateList)
def list_templates(request: Request, language: Optional[str] = None, user_id: str = Depends(get_current_user)):
    """Names of the available drafting templates, optionally for one language."""
    repository: TemplateRepository = request.app.state.template_repository
    return TemplateList(templates=repository.list_templates(language))
