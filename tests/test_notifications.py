"""Tests for the document event bus."""

import asyncio

from lexease.api.notifications import (
    ANALYSIS_COMPLETED,
    ANALYSIS_IDLE,
    ANALYSIS_STARTED,
    STAGE_COMPLETED,
    DocumentEvent,
    DocumentEventBus,
)


def test_publish_without_subscribers_is_a_no_op():
    DocumentEventBus().publish(DocumentEvent("doc-1", STAGE_COMPLETED, "summary"))


def test_events_only_reach_subscribers_of_that_document():
    async def scenario():
        bus = DocumentEventBus()
        mine = bus.subscribe("doc-1")
        other = bus.subscribe("doc-2")
        bus.publish(DocumentEvent("doc-1", STAGE_COMPLETED, "summary"))
        return mine.qsize(), other.qsize(), mine.get_nowait()

    mine_size, other_size, event = asyncio.run(scenario())
    assert (mine_size, other_size) == (1, 0)
    assert event.to_dict() == {"document_id": "doc-1", "event": STAGE_COMPLETED, "stage": "summary", "detail": None}


def test_stream_ends_at_analysis_completed_and_unsubscribes():
    async def scenario():
        bus = DocumentEventBus()
        received = []

        async def consume():
            async for event in bus.stream("doc-1"):
                received.append(event.event)

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        assert bus.subscriber_count("doc-1") == 1

        for name in (ANALYSIS_STARTED, STAGE_COMPLETED, ANALYSIS_COMPLETED, STAGE_COMPLETED):
            bus.publish(DocumentEvent("doc-1", name))
        await asyncio.wait_for(consumer, timeout=1)
        return received, bus.subscriber_count("doc-1")

    received, remaining = asyncio.run(scenario())
    assert received == [ANALYSIS_STARTED, STAGE_COMPLETED, ANALYSIS_COMPLETED]
    assert remaining == 0


def test_full_queue_drops_events_instead_of_blocking():
    async def scenario():
        bus = DocumentEventBus(max_queue_size=1)
        queue = bus.subscribe("doc-1")
        bus.publish(DocumentEvent("doc-1", ANALYSIS_STARTED))
        bus.publish(DocumentEvent("doc-1", STAGE_COMPLETED))
        return queue.qsize(), queue.get_nowait().event

    assert asyncio.run(scenario()) == (1, ANALYSIS_STARTED)


def test_stream_subscribes_before_iteration_starts():
    async def scenario():
        bus = DocumentEventBus()
        events = bus.stream("doc-1")
        count_before_iteration = bus.subscriber_count("doc-1")
        bus.publish(DocumentEvent("doc-1", ANALYSIS_COMPLETED))
        first = await asyncio.wait_for(events.__anext__(), timeout=1)
        await events.aclose()
        return count_before_iteration, first.event, bus.subscriber_count("doc-1")

    assert asyncio.run(scenario()) == (1, ANALYSIS_COMPLETED, 0)


def test_idle_event_ends_the_stream():
    async def scenario():
        bus = DocumentEventBus()
        queue = bus.subscribe("doc-1")
        queue.put_nowait(DocumentEvent("doc-1", ANALYSIS_IDLE))
        received = [event.event async for event in bus.listen("doc-1", queue)]
        return received, bus.subscriber_count("doc-1")

    assert asyncio.run(scenario()) == ([ANALYSIS_IDLE], 0)
