"""
Result sinks: where analysis stages persist their output.

A sink exposes three operations, each an upsert of the fields one writer owns:

- ``write_stage``       : one stage's result (clears that stage's error)
- ``write_stage_error`` : one stage's failure (clears that stage's result)
- ``write_analysis``    : all three results at once (batch mode)

No operation reads the record back or rewrites fields owned by another stage,
so stages may complete and persist in any order.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from lexease.api.errors import PersistenceFailure
from lexease.api.notifications import (
    ANALYSIS_SAVED,
    STAGE_COMPLETED,
    STAGE_FAILED,
    DocumentEvent,
    DocumentEventBus,
)
from lexease.database.core.funcs import STAGES, update_analysis_fields

logger = logging.getLogger(__name__)


def _check_stage(stage: str) -> None:
    if stage not in STAGES:
        raise ValueError(f"Unknown analysis stage: {stage}")


class ResultSink(ABC):
    """Abstract destination for analysis results."""

    def __init__(self, event_bus: Optional[DocumentEventBus] = None):
        self.event_bus = event_bus

    def _notify(self, document_id, event: str, stage: str | None = None, detail: str | None = None) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(DocumentEvent(str(document_id), event, stage, detail))

    async def write_stage(self, document_id, stage: str, payload: dict) -> None:
        _check_stage(stage)
        await self._write(document_id, {stage: payload, f"{stage}_error": None})
        self._notify(document_id, STAGE_COMPLETED, stage)

    async def write_stage_error(self, document_id, stage: str, message: str) -> None:
        _check_stage(stage)
        await self._write(document_id, {stage: None, f"{stage}_error": message})
        self._notify(document_id, STAGE_FAILED, stage, message)

    async def write_analysis(self, document_id, analysis: dict) -> None:
        fields = {}
        for stage in STAGES:
            fields[stage] = analysis[stage]
            fields[f"{stage}_error"] = None
        await self._write(document_id, fields)
        self._notify(document_id, ANALYSIS_SAVED)

    @abstractmethod
    async def _write(self, document_id, fields: dict) -> None:
        """Apply a field-scoped update to one document."""


class SqlResultSink(ResultSink):
    """Persists through `update_analysis_fields`, off the event loop."""

    async def _write(self, document_id, fields: dict) -> None:
        try:
            await asyncio.to_thread(update_analysis_fields, document_id=document_id, fields=fields)
        except SQLAlchemyError as e:
            logger.error("Persisting %s for document %s failed: %s", sorted(fields), document_id, e)
            raise PersistenceFailure(str(e)) from e


class InMemoryResultSink(ResultSink):
    """Dict-backed sink with the same field semantics, for tests and tooling."""

    def __init__(self, event_bus: Optional[DocumentEventBus] = None):
        super().__init__(event_bus)
        self.records: dict[str, dict] = {}

    async def _write(self, document_id, fields: dict) -> None:
        self.records.setdefault(str(document_id), {}).update(fields)
