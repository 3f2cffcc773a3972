"""
Document change notifications (in-process publish/subscribe).

The result sink publishes one `DocumentEvent` per persisted write and the
analysis pipeline brackets every run with ``analysis_started`` /
``analysis_completed``. Clients subscribe per document id; the router exposes
the stream as Server-Sent Events so a UI can render partial results without
polling. A subscriber that arrives while no run is in progress gets a single
``analysis_idle`` event and the stream ends.

Publishing never blocks: a subscriber whose queue is full loses the event (and
can always re-read the document).
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

ANALYSIS_STARTED = "analysis_started"
STAGE_COMPLETED = "stage_completed"
STAGE_FAILED = "stage_failed"
ANALYSIS_SAVED = "analysis_saved"
ANALYSIS_COMPLETED = "analysis_completed"
ANALYSIS_IDLE = "analysis_idle"

TERMINAL_EVENTS = (ANALYSIS_COMPLETED, ANALYSIS_IDLE)


@dataclass
class DocumentEvent:
    document_id: str
    event: str
    stage: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class DocumentEventBus:
    """Fan-out of `DocumentEvent`s to per-document subscriber queues."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, document_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[str(document_id)].add(queue)
        return queue

    def unsubscribe(self, document_id: str, queue: asyncio.Queue) -> None:
        key = str(document_id)
        queues = self._subscribers.get(key)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[key]

    def subscriber_count(self, document_id: str) -> int:
        return len(self._subscribers.get(str(document_id), ()))

    def publish(self, event: DocumentEvent) -> None:
        """Deliver `event` to every current subscriber of its document."""
        for queue in list(self._subscribers.get(str(event.document_id), ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for document %s: subscriber queue full", event.event, event.document_id)

    def stream(self, document_id: str, until: tuple[str, ...] = TERMINAL_EVENTS) -> AsyncIterator[DocumentEvent]:
        """
        Subscribe now and return an iterator over the document's events.

        Events published after this call are delivered even if iteration
        starts later. Iteration ends after an event named in `until`.
        """
        return self.listen(document_id, self.subscribe(document_id), until)

    async def listen(
        self, document_id: str, queue: asyncio.Queue, until: tuple[str, ...] = TERMINAL_EVENTS
    ) -> AsyncIterator[DocumentEvent]:
        """Drain an existing subscription, removing it when the iterator closes."""
        try:
            while True:
                event = await queue.get()
                yield event
                if event.event in until:
                    break
        finally:
            self.unsubscribe(document_id, queue)
