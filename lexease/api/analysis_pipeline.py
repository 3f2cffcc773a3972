"""
Document Analysis Pipeline: Summary • Entities • Risks
======================================================

Purpose
-------
Runs the three independent analysis stages over a document's text and hands
their results to a `ResultSink`.

- summary  : plain-language summary, tone chosen by the `UserRole`
- entities : key entities as type/value pairs
- risks    : risky or unusual clauses as free text

Coordination
------------
- ``analyze_batch``     : all stages concurrently, wait for all; any failure
                          raises `AnalysisStageFailure` and nothing is written;
                          success is written as one combined update.
- ``analyze_streaming`` : all stages concurrently and independently; each
                          result (or stage error) is written as soon as it
                          resolves, so a failure never blocks the other stages.

Both modes reject empty text with `ValidationError` before calling the model,
and refuse a second concurrent run for the same document id.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from lexease.api.errors import (
    AnalysisAlreadyRunning,
    AnalysisStageFailure,
    LexeaseError,
    ValidationError,
)
from lexease.api.llm_utilities import build_document_messages, parse_llm_json
from lexease.api.models import DocumentAnalysis, EntitiesResult, RisksResult, SummaryResult, UserRole
from lexease.api.notifications import ANALYSIS_COMPLETED, ANALYSIS_STARTED, DocumentEvent, DocumentEventBus
from lexease.database.core.funcs import STAGES
from lexease.database.core.result_sink import ResultSink

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 300

SUMMARY_PROMPT = """You are an AI legal assistant. Summarize the legal document below in plain, easy-to-understand language.
Tailor the complexity of the summary to the reader:
- layperson: no legal jargon, short sentences, explain what the document means for them in everyday terms.
- lawStudent: name the legal concepts involved and explain them briefly.
- lawyer: concise and technical; focus on obligations, conditions, remedies and anything unusual.

User Role: {user_role}

Return ONLY a valid JSON object of the form {{"plainLanguageSummary": "<summary>"}}. Do not add any text before or after the JSON."""

ENTITIES_PROMPT = """You are an AI assistant who specializes in analyzing legal documents.
Extract the key entities from the legal document below: parties, dates, durations and deadlines, locations and monetary amounts.
Use short entity types such as "Party", "Date", "Duration", "Location", "Monetary Amount". Copy each value exactly as written in the document.

Return ONLY a valid JSON object of the form {"entities": [{"type": "<type>", "value": "<value>"}]}.
Return an empty list if the document contains no such entities."""

RISKS_PROMPT = """You are an AI assistant who specializes in analyzing legal documents for potential risks.
Identify the clauses of the legal document below that appear risky, unusual, or potentially problematic for the reader.
Quote or closely paraphrase each clause and say in a few words why it is risky.

Return ONLY a valid JSON object of the form {"riskyClauses": ["<clause>", "..."]}.
Return an empty list if nothing stands out."""

STAGE_MODELS = {
    "summary": SummaryResult,
    "entities": EntitiesResult,
    "risks": RisksResult,
}


@dataclass
class StageOutcome:
    """What happened to one stage in streaming mode."""

    stage: str
    result: Optional[BaseModel] = None
    error: Optional[str] = None
    persisted: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


class AnalysisPipeline:
    """
    Orchestrates the summary, entity and risk stages for one document at a time.

    Args:
        model: LangChain chat model (anything with ``ainvoke``).
        sink (ResultSink): Where results are persisted.
        event_bus (DocumentEventBus | None): Receives start/completion events;
            defaults to the sink's bus.
    """

    def __init__(self, model, sink: ResultSink, event_bus: Optional[DocumentEventBus] = None):
        self.model = model
        self.sink = sink
        self.event_bus = event_bus if event_bus is not None else sink.event_bus
        self._running: set[str] = set()

    @staticmethod
    def validate_text(document_text: str) -> None:
        """Reject documents without content before any model call."""
        if not document_text or not document_text.strip():
            raise ValidationError("Document text is empty; upload and process a file before analyzing it.")

    def is_running(self, document_id) -> bool:
        return str(document_id) in self._running

    def _publish(self, document_id, event: str) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(DocumentEvent(str(document_id), event))

    def reserve(self, document_id) -> None:
        """
        Mark a run of `document_id` as in progress and announce it.

        Raises:
            AnalysisAlreadyRunning: The document already has a run in progress.
        """
        key = str(document_id)
        if key in self._running:
            raise AnalysisAlreadyRunning(f"Analysis of document {key} is already running")
        self._running.add(key)
        self._publish(key, ANALYSIS_STARTED)

    def release(self, document_id) -> None:
        key = str(document_id)
        self._running.discard(key)
        self._publish(key, ANALYSIS_COMPLETED)

    @asynccontextmanager
    async def _guard(self, document_id, reserved: bool = False):
        if not reserved:
            self.reserve(document_id)
        try:
            yield
        finally:
            self.release(document_id)

    def _stage_messages(self, stage: str, document_text: str, user_role: UserRole):
        if stage == "summary":
            instruction = SUMMARY_PROMPT.format(user_role=user_role.value)
        elif stage == "entities":
            instruction = ENTITIES_PROMPT
        else:
            instruction = RISKS_PROMPT
        return build_document_messages(instruction, document_text)

    async def run_stage(self, stage: str, document_text: str, user_role: UserRole = UserRole.layperson) -> BaseModel:
        """
        Run one stage and validate the reply against its schema.

        Raises:
            AnalysisStageFailure: The model call failed or its reply was unusable.
        """
        try:
            response = await self.model.ainvoke(self._stage_messages(stage, document_text, user_role))
            return STAGE_MODELS[stage].model_validate(parse_llm_json(response))
        except Exception as e:
            message = str(e)[:MAX_ERROR_LENGTH]
            logger.error("Analysis stage '%s' failed: %s", stage, message)
            raise AnalysisStageFailure(stage, message, e) from e

    async def summarize(self, document_text: str, user_role: UserRole | str = UserRole.layperson) -> SummaryResult:
        self.validate_text(document_text)
        return await self.run_stage("summary", document_text, UserRole(user_role))

    async def extract_entities(self, document_text: str) -> EntitiesResult:
        self.validate_text(document_text)
        return await self.run_stage("entities", document_text)

    async def flag_risks(self, document_text: str) -> RisksResult:
        self.validate_text(document_text)
        return await self.run_stage("risks", document_text)

    async def analyze_batch(
        self, document_id, document_text: str, user_role: UserRole | str = UserRole.layperson
    ) -> DocumentAnalysis:
        """
        Run all stages, then persist them in a single write.

        Raises:
            ValidationError: Empty document text.
            AnalysisAlreadyRunning: Another run for `document_id` is in progress.
            AnalysisStageFailure: A stage failed (first failing stage in stage
                order); nothing was persisted.
            PersistenceFailure: The combined write was rejected.
        """
        self.validate_text(document_text)
        role = UserRole(user_role)
        async with self._guard(document_id):
            results = await asyncio.gather(
                *(self.run_stage(stage, document_text, role) for stage in STAGES),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            by_stage = dict(zip(STAGES, results))
            await self.sink.write_analysis(
                document_id, {stage: result.model_dump(by_alias=True) for stage, result in by_stage.items()}
            )
            logger.info("Batch analysis of document %s saved", document_id)
            return DocumentAnalysis(**by_stage)

    async def analyze_streaming(
        self,
        document_id,
        document_text: str,
        user_role: UserRole | str = UserRole.layperson,
        reserved: bool = False,
    ) -> dict[str, StageOutcome]:
        """
        Run all stages, persisting each one as soon as it resolves.

        Args:
            reserved: The caller already called `reserve` for this document;
                the run releases it when done, even if it cannot start.

        Raises:
            ValidationError: Empty document text.
            AnalysisAlreadyRunning: Another run for `document_id` is in progress.

        Returns:
            dict[str, StageOutcome]: Outcome per stage. Stage and persistence
            failures are reported here, never raised.
        """
        try:
            self.validate_text(document_text)
            role = UserRole(user_role)
        except (ValidationError, ValueError):
            if reserved:
                self.release(document_id)
            raise
        async with self._guard(document_id, reserved):
            outcomes = await asyncio.gather(
                *(self._stream_stage(document_id, stage, document_text, role) for stage in STAGES)
            )
        failed = [outcome.stage for outcome in outcomes if not outcome.ok]
        if failed:
            logger.warning("Streaming analysis of document %s finished with failed stages: %s", document_id, failed)
        else:
            logger.info("Streaming analysis of document %s finished", document_id)
        return {outcome.stage: outcome for outcome in outcomes}

    async def _stream_stage(self, document_id, stage: str, document_text: str, role: UserRole) -> StageOutcome:
        try:
            result = await self.run_stage(stage, document_text, role)
        except AnalysisStageFailure as e:
            outcome = StageOutcome(stage=stage, error=e.message)
            try:
                await self.sink.write_stage_error(document_id, stage, e.message)
                outcome.persisted = True
            except LexeaseError as pe:
                logger.error("Could not record failure of stage '%s' for document %s: %s", stage, document_id, pe.message)
            return outcome

        outcome = StageOutcome(stage=stage, result=result)
        try:
            await self.sink.write_stage(document_id, stage, result.model_dump(by_alias=True))
            outcome.persisted = True
        except LexeaseError as e:
            logger.error("Could not persist stage '%s' for document %s: %s", stage, document_id, e.message)
            outcome.error = e.message
        return outcome
