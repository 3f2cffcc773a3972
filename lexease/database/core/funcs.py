"""
Service-layer operations for documents, analysis fields and Q&A messages.

Functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy sessions and transactions automatically. Each function accepts (and
uses) an injected `session: Session` provided by the decorator.

Returned values are plain dicts so callers never hold ORM instances outside of
their session.
"""

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lexease.api.errors import DocumentNotFound
from lexease.database.daos.document_dao import DocumentDao
from lexease.database.daos.document_message_dao import DocumentMessagesDao
from lexease.database.entities.documents import Document
from lexease.database.entities.messages import DocumentMessage
from lexease.database.helpers.transactionManagement import transactional

logger = logging.getLogger(__name__)

STAGES = ("summary", "entities", "risks")

MESSAGE_APPEND_ATTEMPTS = 3


def as_document_id(document_id: str | UUID) -> UUID:
    """Parse a document id, treating malformed ids as unknown documents."""
    if isinstance(document_id, UUID):
        return document_id
    try:
        return UUID(str(document_id))
    except ValueError:
        raise DocumentNotFound(f"Document {document_id} not found") from None


def document_to_dict(document: Document, include_text: bool = True) -> dict:
    """Serialize a Document row for API responses."""
    data = {
        "id": document.id,
        "user_id": document.user_id,
        "file_name": document.file_name,
        "mime_type": document.mime_type,
        "created_at": document.created_at,
        "analysis": {stage: getattr(document, stage) for stage in STAGES},
        "errors": {stage: getattr(document, f"{stage}_error") for stage in STAGES},
    }
    if include_text:
        data["document_text"] = document.document_text
    return data


@transactional
def create_document(
    session: Session, user_id: str, file_name: str, document_text: str, mime_type: str | None = None
) -> dict:
    """
    Persist a freshly ingested document with an empty analysis.

    Returns
    -------
    dict
        The serialized document (see `document_to_dict`).
    """
    document_dao = DocumentDao()
    document = Document(
        document_id=uuid.uuid4(),
        user_id=user_id,
        file_name=file_name,
        document_text=document_text,
        mime_type=mime_type,
        created_at=datetime.now(timezone.utc),
    )
    document_dao.createDocument(session, document)
    session.flush()
    logger.info("Created document %s (%s) for user %s", document.id, file_name, user_id)
    return document_to_dict(document)


@transactional
def get_document(session: Session, document_id: str | UUID, user_id: str | None = None) -> dict:
    """
    Load one document.

    Raises
    ------
    DocumentNotFound
        If the id is unknown or the document belongs to another user.
    """
    document = DocumentDao().fetchDocumentById(session, as_document_id(document_id))
    if document is None or (user_id is not None and document.user_id != user_id):
        raise DocumentNotFound(f"Document {document_id} not found")
    return document_to_dict(document)


@transactional
def get_documents(session: Session, user_id: str) -> list[dict]:
    """List a user's documents, newest first, without their full text."""
    documents = DocumentDao().fetchDocumentsByUserId(session, user_id)
    return [document_to_dict(document, include_text=False) for document in documents]


@transactional
def delete_document(session: Session, document_id: str | UUID, user_id: str) -> None:
    """Delete a document and its Q&A log (explicit user action only)."""
    document_dao = DocumentDao()
    key = as_document_id(document_id)
    document = document_dao.fetchDocumentById(session, key)
    if document is None or document.user_id != user_id:
        raise DocumentNotFound(f"Document {document_id} not found")
    DocumentMessagesDao().deleteMessagesByDocumentId(session, key)
    document_dao.deleteDocument(session, key)
    logger.info("Deleted document %s", key)


@transactional
def update_analysis_fields(session: Session, document_id: str | UUID, fields: dict) -> None:
    """
    Write some analysis columns of one document and nothing else.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session (injected by @transactional).
    document_id : str | UUID
        Target document.
    fields : dict
        Column → value, e.g. ``{"summary": {...}, "summary_error": None}``.

    Raises
    ------
    DocumentNotFound
        If no row matched.
    """
    matched = DocumentDao().updateDocumentFields(session, as_document_id(document_id), fields)
    if not matched:
        raise DocumentNotFound(f"Document {document_id} not found")


def create_message(document_id: str | UUID, role: str, content: str) -> dict:
    """
    Append a message to a document's Q&A log.

    Two concurrent appends can compute the same ``sequence``; the unique
    constraint rejects the second, which is retried in a new transaction.

    Returns
    -------
    dict
        {'id', 'role', 'content', 'timestamp'}
    """
    for attempt in range(1, MESSAGE_APPEND_ATTEMPTS + 1):
        try:
            return _append_message(document_id=document_id, role=role, content=content)
        except IntegrityError:
            if attempt == MESSAGE_APPEND_ATTEMPTS:
                raise
            logger.warning("Sequence clash appending to document %s, retrying (attempt %d)", document_id, attempt)


@transactional
def _append_message(session: Session, document_id: str | UUID, role: str, content: str) -> dict:
    messages_dao = DocumentMessagesDao()
    key = as_document_id(document_id)
    message = DocumentMessage(
        message_id=uuid.uuid4(),
        document_id=key,
        sequence=messages_dao.nextSequence(session, key),
        role=role,
        content=content,
        created_at=datetime.now(timezone.utc),
    )
    messages_dao.createMessage(session, message)
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "timestamp": message.created_at,
    }


@transactional
def get_document_messages(session: Session, document_id: str | UUID) -> list[dict]:
    """Return the Q&A log of a document in creation order (empty list if none)."""
    messages = DocumentMessagesDao().fetchMessagesByDocumentId(session, as_document_id(document_id))
    return [
        {
            "id": message.id,
            "role": message.role,
            "content": message.content,
            "timestamp": message.created_at,
        }
        for message in messages
    ]
