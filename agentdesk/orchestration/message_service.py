"""Inbound message handling: ingress, claiming, reprocessing and the worker loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from agentdesk.core.errors import MessageNotFoundError
from agentdesk.core.models import (
    Message,
    MessageDirection,
    MessageStatus,
    ProcessResult,
)
from agentdesk.core.work_queue import WorkQueue
from agentdesk.orchestration.orchestrator import Orchestrator
from agentdesk.services.gateways import PersistenceGateway

logger = logging.getLogger(__name__)


class MessageService:
    """Front door for customer messages.

    Saving a message only enqueues its id; the orchestrator runs later in a
    :class:`MessageWorker`. Before any processing the message is claimed
    with the gateway's atomic pending to processing transition, so a message
    submitted twice or seen by two workers is orchestrated once.
    """

    def __init__(
        self,
        *,
        orchestrator: Orchestrator,
        gateway: PersistenceGateway,
        queue: WorkQueue,
    ) -> None:
        self._orchestrator = orchestrator
        self._gateway = gateway
        self._queue = queue

    async def create_incoming_message(
        self,
        contact_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        """Persist a customer message and hand its id to the work queue."""
        message = await self._gateway.save_message(
            Message(
                contact_id=contact_id,
                content=content,
                direction=MessageDirection.INCOMING,
                is_from_customer=True,
                is_sent=True,
                status=MessageStatus.PENDING,
                metadata=dict(metadata or {}),
            )
        )
        await self._queue.submit(message.id)
        logger.info("Queued incoming message %s from contact %s", message.id, contact_id)
        return message

    async def process_incoming(self, message: Message) -> ProcessResult:
        """Claim ``message`` and run it through the orchestrator."""
        if not await self._gateway.claim_message(message.id):
            logger.info("Message %s is already being processed; skipping", message.id)
            return ProcessResult.failure(f"Message {message.id} is already being processed")

        claimed = await self._gateway.get_message_by_id(message.id) or message
        return await self._orchestrator.process_message(claimed)

    async def process_by_id(self, message_id: str) -> ProcessResult:
        message = await self._gateway.get_message_by_id(message_id)
        if message is None:
            logger.warning("Message %s not found", message_id)
            return ProcessResult.failure(str(MessageNotFoundError(message_id)))
        return await self.process_incoming(message)

    async def reprocess_message(self, message_id: str) -> ProcessResult:
        """Reset a message to pending and process it again.

        This is the only retry path; nothing is retried automatically.
        """
        message = await self._gateway.update_message_status(message_id, MessageStatus.PENDING)
        if message is None:
            logger.warning("Cannot reprocess unknown message %s", message_id)
            return ProcessResult.failure(str(MessageNotFoundError(message_id)))
        logger.info("Reprocessing message %s", message_id)
        return await self.process_incoming(message)


class MessageWorker:
    """Supervised background task draining the work queue."""

    def __init__(self, service: MessageService, queue: WorkQueue, *, poll_interval: float = 0.5) -> None:
        self._service = service
        self._queue = queue
        self.poll_interval = poll_interval
        self._runner: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()
        self._started_event = asyncio.Event()
        self.processed_count = 0
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    async def start(self) -> None:
        """Start the worker loop."""
        if self._runner is not None:
            return
        self._stop_event.clear()
        self._started_event.clear()
        self._runner = asyncio.create_task(self._run_safe())
        await self._started_event.wait()

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current message to finish."""
        if self._runner is None:
            return
        self._stop_event.set()
        await self._runner
        self._runner = None

    async def _run_safe(self) -> None:
        self._started_event.set()
        logger.info("Message worker started")
        while not self._stop_event.is_set():
            message_id = await self._queue.get(timeout=self.poll_interval)
            if message_id is None:
                continue
            try:
                result = await self._service.process_by_id(message_id)
                logger.info(
                    "Processed message %s: success=%s %s",
                    message_id,
                    result.success,
                    result.message,
                )
            except Exception as exc:  # noqa: BLE001
                self.last_error = str(exc)
                logger.exception("Worker failed on message %s", message_id)
            finally:
                self.processed_count += 1
                self._queue.task_done()
        logger.info("Message worker stopped")
