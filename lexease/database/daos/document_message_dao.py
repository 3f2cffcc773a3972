"""
Document Messages DAO

Purpose
-------
Data-access layer for the `DocumentMessage` ORM entity. Provides:
- Message creation (append only)
- Retrieval by document, in log order
- The next free position in a document's log
- Bulk removal when the owning document is deleted

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- Messages are never updated.
"""

import logging
from uuid import UUID

from sqlalchemy import asc, func
from sqlalchemy.orm import Session

from lexease.database.entities.messages import DocumentMessage

logger = logging.getLogger(__name__)


class DocumentMessagesDao:
    """
    Data Access Object (DAO) for the Q&A log of documents.
    """

    def createMessage(self, session: Session, message: DocumentMessage) -> DocumentMessage:
        """Stage a new message and return it."""
        try:
            session.add(message)
            return message
        except Exception as e:
            logger.error("Error in DocumentMessagesDao.createMessage. Error Message: %s", e)
            raise

    def nextSequence(self, session: Session, document_id: UUID) -> int:
        """Return the position the next message of `document_id` should take."""
        try:
            current = (
                session.query(func.max(DocumentMessage.sequence))
                .filter(DocumentMessage.document_id == document_id)
                .scalar()
            )
            return 0 if current is None else current + 1
        except Exception as e:
            logger.error("Error in DocumentMessagesDao.nextSequence. Error Message: %s", e)
            raise

    def fetchMessagesByDocumentId(self, session: Session, document_id: UUID) -> list[DocumentMessage]:
        """
        Fetch all messages of a document in log order.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        document_id : UUID
            Document whose log is read.

        Returns
        -------
        list[DocumentMessage]
        """
        try:
            return (
                session.query(DocumentMessage)
                .filter(DocumentMessage.document_id == document_id)
                .order_by(asc(DocumentMessage.sequence), asc(DocumentMessage.created_at))
                .all()
            )
        except Exception as e:
            logger.error("Error in DocumentMessagesDao.fetchMessagesByDocumentId. Error Message: %s", e)
            raise

    def deleteMessagesByDocumentId(self, session: Session, document_id: UUID) -> int:
        """Remove the whole log of a document."""
        try:
            return (
                session.query(DocumentMessage)
                .filter(DocumentMessage.document_id == document_id)
                .delete(synchronize_session=False)
            )
        except Exception as e:
            logger.error("Error in DocumentMessagesDao.deleteMessagesByDocumentId. Error Message: %s", e)
            raise
