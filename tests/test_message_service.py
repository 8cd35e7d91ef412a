"""Tests for message ingress, claiming, reprocessing and the worker loop."""
from __future__ import annotations

import asyncio

import pytest

from agentdesk.agents.rules_agent import RulesAgent
from agentdesk.config import OrchestratorSettings
from agentdesk.core.models import (
    AgentDefinition,
    Message,
    MessageDirection,
    MessageStatus,
)
from agentdesk.core.work_queue import WorkQueue
from agentdesk.orchestration.message_service import MessageService, MessageWorker
from agentdesk.orchestration.orchestrator import Orchestrator
from agentdesk.services.delivery import LoggingDeliveryGateway


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


GREETER = AgentDefinition(
    id="greeter",
    name="Greeter",
    type="rules",
    config={"rules": [{"id": "hi", "pattern": r"\bhello\b", "response": "Hi there!"}]},
)


@pytest.fixture
def queue() -> WorkQueue:
    return WorkQueue()


@pytest.fixture
async def service(gateway, queue) -> MessageService:
    gateway.add_agent(GREETER)
    orchestrator = Orchestrator(
        gateway=gateway,
        agent_catalog={"rules": RulesAgent},
        delivery=LoggingDeliveryGateway(),
        settings=OrchestratorSettings(),
    )
    await orchestrator.initialize()
    return MessageService(orchestrator=orchestrator, gateway=gateway, queue=queue)


def _replies(gateway):
    return [m for m in gateway.messages_for("contact-1") if m.direction is MessageDirection.OUTGOING]


@pytest.mark.anyio
async def test_create_incoming_message_saves_and_queues(service, gateway, queue) -> None:
    message = await service.create_incoming_message("contact-1", "hello", {"channel": "sms"})

    assert message.id
    assert message.status is MessageStatus.PENDING
    assert message.is_from_customer
    assert message.metadata == {"channel": "sms"}
    assert len(queue) == 1
    assert await queue.get(timeout=0.1) == message.id


@pytest.mark.anyio
async def test_message_is_processed_once_even_when_submitted_twice(service, gateway) -> None:
    message = await gateway.save_message(Message(contact_id="contact-1", content="hello"))

    first, second = await asyncio.gather(
        service.process_incoming(message),
        service.process_incoming(message),
    )

    outcomes = sorted([first.success, second.success])
    assert outcomes == [False, True]
    skipped = first if not first.success else second
    assert "already being processed" in skipped.message
    assert len(_replies(gateway)) == 1


@pytest.mark.anyio
async def test_reprocess_resets_status_and_runs_again(service, gateway) -> None:
    message = await gateway.save_message(Message(contact_id="contact-1", content="hello"))
    await service.process_incoming(message)
    assert not (await service.process_incoming(message)).success

    result = await service.reprocess_message(message.id)

    assert result.success
    assert len(_replies(gateway)) == 2
    assert (await gateway.get_message_by_id(message.id)).status is MessageStatus.READ


@pytest.mark.anyio
async def test_reprocess_unknown_message(service) -> None:
    result = await service.reprocess_message("missing")
    assert not result.success
    assert "Message not found" in result.message


@pytest.mark.anyio
async def test_failed_status_update_is_idempotent(gateway) -> None:
    message = await gateway.save_message(Message(contact_id="contact-1", content="x"))

    first = await gateway.update_message_status(message.id, MessageStatus.FAILED)
    second = await gateway.update_message_status(message.id, MessageStatus.FAILED)

    assert first.status is second.status is MessageStatus.FAILED
    assert gateway.status_log == [(message.id, MessageStatus.FAILED)]


@pytest.mark.anyio
async def test_terminal_message_cannot_be_claimed(gateway) -> None:
    message = await gateway.save_message(
        Message(contact_id="contact-1", content="x", status=MessageStatus.SENT)
    )
    assert not await gateway.claim_message(message.id)
    assert not await gateway.claim_message("missing")


@pytest.mark.anyio
async def test_worker_drains_queue(service, gateway, queue) -> None:
    worker = MessageWorker(service, queue, poll_interval=0.05)
    await worker.start()
    assert worker.running
    try:
        await service.create_incoming_message("contact-1", "hello")
        await service.create_incoming_message("contact-1", "hello again")
        await asyncio.wait_for(queue.join(), timeout=2)
    finally:
        await worker.stop()

    assert not worker.running
    assert worker.processed_count == 2
    assert [reply.content for reply in _replies(gateway)] == ["Hi there!", "Hi there!"]
    assert all(reply.status is MessageStatus.SENT for reply in _replies(gateway))


@pytest.mark.anyio
async def test_worker_skips_unknown_ids(service, queue) -> None:
    worker = MessageWorker(service, queue, poll_interval=0.05)
    await worker.start()
    try:
        await queue.submit("does-not-exist")
        await asyncio.wait_for(queue.join(), timeout=2)
    finally:
        await worker.stop()

    assert worker.processed_count == 1
    assert worker.last_error is None
