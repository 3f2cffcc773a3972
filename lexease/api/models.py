"""
Pydantic models used for request/response validation and API data contracts.

Wire format uses camelCase keys (``plainLanguageSummary``, ``riskyClauses``,
``documentType`` ...); Python code uses the snake_case attribute names. Both
are accepted on input.

The analysis stage models double as the schema the model replies are validated
against.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRole(str, Enum):
    """Audience of the summary. Affects only the summary stage."""

    layperson = "layperson"
    lawStudent = "lawStudent"
    lawyer = "lawyer"


class AnalysisMode(str, Enum):
    """How the three analysis stages are coordinated."""

    batch = "batch"
    streaming = "streaming"


class KeyEntity(CamelModel):
    """A key entity found in a document."""

    type: str = Field(..., description="Entity type from an open vocabulary.", examples=["Monetary Amount"])
    value: str = Field(..., description="The entity text as it appears in the document.", examples=["$500"])

    @field_validator("type", "value", mode="before")
    @classmethod
    def _stringify(cls, v):
        return v if isinstance(v, str) else str(v)


class SummaryResult(CamelModel):
    """Output of the summary stage."""

    plain_language_summary: str = Field(..., min_length=1, description="Plain-language summary tailored to the user role.")


class EntitiesResult(CamelModel):
    """Output of the entity-extraction stage."""

    entities: List[KeyEntity] = Field(default_factory=list)


class RisksResult(CamelModel):
    """Output of the risk-flagging stage."""

    risky_clauses: List[str] = Field(default_factory=list, description="Risky or unusual clauses, as free text.")

    @field_validator("risky_clauses", mode="before")
    @classmethod
    def _flatten(cls, v):
        if v is None:
            return []
        return [item if isinstance(item, str) else str(item) for item in v]


class DocumentAnalysis(CamelModel):
    """Analysis of a document. Each part is null until its stage completes."""

    summary: Optional[SummaryResult] = None
    entities: Optional[EntitiesResult] = None
    risks: Optional[RisksResult] = None


class StageErrors(CamelModel):
    """Failure message per stage, null when the stage did not fail."""

    summary: Optional[str] = None
    entities: Optional[str] = None
    risks: Optional[str] = None


class DocumentListItem(CamelModel):
    """A document as shown in the library listing."""

    id: UUID
    file_name: str
    mime_type: Optional[str] = None
    created_at: datetime
    analysis: DocumentAnalysis
    errors: StageErrors


class DocumentDetails(DocumentListItem):
    """A single document, including its text."""

    user_id: str
    document_text: str


class AnalysisRequest(CamelModel):
    """Body of POST /documents/{id}/analysis."""

    user_role: UserRole = UserRole.layperson
    mode: AnalysisMode = AnalysisMode.streaming


class AnalysisAccepted(CamelModel):
    """Reply to a streaming analysis request."""

    document_id: UUID
    status: str = "accepted"


class QuestionRequest(CamelModel):
    """A free-form question."""

    question: str = Field(..., description="The user question.")


class Answer(CamelModel):
    """Answer to a question."""

    answer: str


class MessageOut(CamelModel):
    """One entry of a document's Q&A log."""

    id: UUID
    role: str = Field(..., description="'user' or 'assistant'.")
    content: str
    timestamp: datetime


class DraftRequest(CamelModel):
    """Body of POST /drafts."""

    document_type: str = Field(..., description="Document type label.", examples=["Simple Affidavit"])
    language: str = Field(..., description="Target language.", examples=["English"])
    user_inputs: str = Field(..., description="Free-form details to merge into the template.", examples=["Name: Jane Doe, Age: 30"])


class DraftOut(CamelModel):
    """Generated draft."""

    draft_content: str


class TemplateList(CamelModel):
    """Available drafting templates."""

    templates: List[str]
