"""
Document ORM Model
==================

The ``Document`` ORM model represents one uploaded legal document and its
analysis, stored in the ``document`` table.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``), portable across PostgreSQL and SQLite
- Owner (``user_id``) taken from the verified access-token subject
- Extracted full text (``document_text``) and original ``file_name``
- Timezone-aware ``created_at`` timestamp (UTC)
- One JSON column per analysis stage (``summary``, ``entities``, ``risks``)
  and one error column per stage. The columns are independently nullable and
  each analysis stage writes only its own pair.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lexease.database.config.connection_engine import declarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(declarativeBase):
    """
    ORM model for the `document` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    user_id : str
        Identifier of the owning user.
    file_name : str
        Original file name as uploaded.
    mime_type : str | None
        Normalized MIME type the text was extracted from.
    document_text : str
        Extracted plain text (or a data URI for OCR-only content).
    created_at : datetime
        Creation time (UTC).
    summary, entities, risks : dict | None
        Stage results, filled as each stage completes.
    summary_error, entities_error, risks_error : str | None
        Stage failure messages, cleared when the stage later succeeds.
    """

    __tablename__ = 'document'

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    mime_type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    document_text: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    summary: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    entities: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    risks: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    summary_error: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    entities_error: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    risks_error: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    def __init__(
        self,
        document_id: UUID,
        user_id: str,
        file_name: str,
        document_text: str,
        created_at,
        mime_type: str | None = None,
    ):
        """
        Initialize a new Document object.

        Parameters
        ----------
        document_id : UUID
            Unique identifier of the document.
        user_id : str
            Owner of the document.
        file_name : str
            Original file name.
        document_text : str
            Extracted text.
        created_at : datetime | str
            Creation timestamp. Accepts datetime or ISO8601 string.
        mime_type : str | None
            MIME type the text was extracted from.
        """
        self.id = document_id
        self.user_id = user_id
        self.file_name = file_name
        self.document_text = document_text
        self.mime_type = mime_type
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at

    def __str__(self) -> str:
        return f"Document: id:{self.id}, user: {self.user_id}, file: {self.file_name}, created: {self.created_at}"
