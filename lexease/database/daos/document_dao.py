"""
Document DAO

Purpose
-------
Thin data-access layer for the `Document` ORM entity:
- Create documents
- Query by id and by owner (newest first)
- Field-scoped updates of analysis columns
- Delete

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller (no session
  creation inside the DAO). Transaction boundaries live in the service layer.
- `updateDocumentFields` issues a single ``UPDATE document SET <cols> WHERE id``
  touching only the given columns. Analysis stages running concurrently against
  the same row therefore never overwrite one another's columns.

Error Handling
--------------
- Methods log the failing operation and re-raise.
"""

import logging
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.orm import Session

from lexease.database.entities.documents import Document

logger = logging.getLogger(__name__)

ANALYSIS_COLUMNS = frozenset(
    {"summary", "entities", "risks", "summary_error", "entities_error", "risks_error"}
)
"""Columns that may be changed after a document has been created."""


class DocumentDao:
    """
    Data Access Object (DAO) for managing Document entities.
    """

    def createDocument(self, session: Session, document: Document) -> Document:
        """
        Stage a new document record.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        document : Document
            Document entity instance to be added.
        """
        try:
            session.add(document)
            return document
        except Exception as e:
            logger.error("Error in DocumentDao.createDocument. Error: %s", e)
            raise

    def fetchDocumentById(self, session: Session, document_id: UUID) -> Document | None:
        """Return the document with the given id, or None."""
        try:
            return session.query(Document).filter(Document.id == document_id).one_or_none()
        except Exception as e:
            logger.error("Error in DocumentDao.fetchDocumentById (id=%s). Error: %s", document_id, e)
            raise

    def fetchDocumentsByUserId(self, session: Session, user_id: str) -> list[Document]:
        """
        Fetch all documents owned by a user, most recent first.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        user_id : str
            Owner identifier.

        Returns
        -------
        list[Document]
        """
        try:
            return (
                session.query(Document)
                .filter(Document.user_id == user_id)
                .order_by(desc(Document.created_at))
                .all()
            )
        except Exception as e:
            logger.error("Error in DocumentDao.fetchDocumentsByUserId. Error: %s", e)
            raise

    def updateDocumentFields(self, session: Session, document_id: UUID, fields: dict) -> int:
        """
        Update only the given analysis columns of one document.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        document_id : UUID
            Target document.
        fields : dict
            Column name → new value. Only names in `ANALYSIS_COLUMNS` are accepted.

        Returns
        -------
        int
            Number of rows matched (0 when the document does not exist).

        Raises
        ------
        ValueError
            If `fields` names a column outside `ANALYSIS_COLUMNS`.
        """
        unknown = set(fields) - ANALYSIS_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")
        try:
            values = {getattr(Document, name): value for name, value in fields.items()}
            return (
                session.query(Document)
                .filter(Document.id == document_id)
                .update(values, synchronize_session=False)
            )
        except Exception as e:
            logger.error("Error in DocumentDao.updateDocumentFields (id=%s). Error: %s", document_id, e)
            raise

    def deleteDocument(self, session: Session, document_id: UUID) -> int:
        """Delete one document. Returns the number of rows removed."""
        try:
            return (
                session.query(Document)
                .filter(Document.id == document_id)
                .delete(synchronize_session=False)
            )
        except Exception as e:
            logger.error("Error in DocumentDao.deleteDocument (id=%s). Error: %s", document_id, e)
            raise
