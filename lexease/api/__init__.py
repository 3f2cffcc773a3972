"""
API Package: FastAPI Router • Models • Ingestion • Analysis • Q&A • Drafting
===========================================================================

Mission
-------
This package defines LexEase's HTTP interface and the services behind it:
turning uploaded legal documents into text, analyzing them (plain-language
summary, key entities, risky clauses), answering questions about them, and
drafting new documents from templates.

Contents
--------
- fast_api
    FastAPI router with endpoints for:
      • Documents: upload, list, fetch, delete
      • Analysis: batch or streaming, plus an SSE change stream per document
      • Q&A: questions about a document (logged) and general legal questions
      • Drafting: drafts from templates, template listing

- models
    Pydantic data contracts (camelCase on the wire): stage results
    (SummaryResult, EntitiesResult, RisksResult), DocumentAnalysis,
    request/response bodies.

- errors
    Error taxonomy (`LexeaseError` and subclasses) with stable error codes.

- file_ingestion
    Bytes → text: PDF (pypdf), DOCX (python-docx), text; images and scanned
    PDFs via model transcription or data URIs.

- analysis_pipeline
    `AnalysisPipeline`: the three stages run concurrently, in batch or
    streaming mode, persisted through a `ResultSink`.

- notifications
    `DocumentEventBus`: in-process publish/subscribe of document changes.

- interactive_qa
    Single-call Q&A scoped to one document, and general legal Q&A.

- drafting_agent
    Template resolution (bundled catalog or S3) and draft generation.

- llm_utilities
    Chat model construction, multimodal message building, JSON reply parsing.

- utils
    JWT helpers:
      • create_access_token(payload): issues signed JWTs with exp
      • verify_token(token): validates JWTs and extracts the user id
      • get_current_user: FastAPI dependency for the `token` cookie

- aws_bucket_funcs
    S3 helpers (module: aws_bucket_funcs/funcs.py): client, template listing, download.

Resources
---------
- docs_for_drafts/
    Bundled drafting templates, one folder per language.

Operational Notes
-----------------
- Streaming: the change stream sends SSE frames as `data: {json}\n\n`.
- Security: Auth via HttpOnly `token` cookie (JWT). Never log secrets.
"""
