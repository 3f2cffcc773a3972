"""
DocumentMessage ORM Model
=========================

The ``DocumentMessage`` ORM model represents a single question or answer in
the Q&A log of a document. The log is append-only and read back in creation
order.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- Foreign key to ``document.id`` (``document_id``), removed with the document
- Timezone-aware ``created_at`` timestamp (UTC)
- ``sequence`` unique per document, ordering messages created within the same instant
- Sender ``role`` ("user" | "assistant") and text ``content``
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import TEXT, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lexease.database.config.connection_engine import declarativeBase


class DocumentMessage(declarativeBase):
    """
    ORM model for the `document_message` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    document_id : UUID
        Document the message belongs to.
    sequence : int
        Position of the message within the document's log.
    created_at : datetime
        Creation time (UTC).
    role : str
        "user" or "assistant".
    content : str
        Message text.
    """

    __tablename__ = 'document_message'
    __table_args__ = (UniqueConstraint('document_id', 'sequence', name='uq_document_message_sequence'),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    document_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey('document.id', ondelete='CASCADE'), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    role: Mapped[str] = mapped_column(TEXT, nullable=False)
    content: Mapped[str] = mapped_column(TEXT, nullable=False)

    def __init__(self, message_id: UUID, document_id: UUID, sequence: int, role: str, content: str, created_at):
        self.id = message_id
        self.document_id = document_id
        self.sequence = sequence
        self.role = role
        self.content = content
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at

    def __str__(self) -> str:
        return f"Document: id:{self.document_id}, role: {self.role}, message: {self.content}, time_created: {self.created_at}"
