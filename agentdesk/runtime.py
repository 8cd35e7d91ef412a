"""Application runtime composition helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Type

from agentdesk.agents.base import Agent
from agentdesk.agents.classifier_agent import ClassifierAgent
from agentdesk.agents.llm_agent import LLMAgent
from agentdesk.agents.rules_agent import RulesAgent
from agentdesk.config import Config
from agentdesk.core.work_queue import WorkQueue
from agentdesk.orchestration.message_service import MessageService, MessageWorker
from agentdesk.orchestration.orchestrator import Orchestrator
from agentdesk.services.completion import CompletionService
from agentdesk.services.delivery import HttpDeliveryGateway, LoggingDeliveryGateway
from agentdesk.services.gateways import (
    CompletionClient,
    DeliveryGateway,
    MemoryService,
    PersistenceGateway,
)
from agentdesk.services.llm_pool import LLMPool
from agentdesk.services.memory import LLMMemoryService

logger = logging.getLogger(__name__)

AGENT_CATALOG: Dict[str, Type[Agent]] = {
    "llm": LLMAgent,
    "rules": RulesAgent,
    "classifier": ClassifierAgent,
}


def build_llm_pool(config: Config) -> LLMPool:
    pool = LLMPool()

    if config.openai:
        pool.register_openai(config.openai.default_model, config.openai, default=True)

    # Register Azure OpenAI if configured
    if config.azure_openai:
        pool.register_azure_openai(config.azure_openai.deployment_name, config.azure_openai)

    return pool


@dataclass
class Runtime:
    """Everything one host process needs, wired together."""

    config: Config
    gateway: PersistenceGateway
    orchestrator: Orchestrator
    messages: MessageService
    worker: MessageWorker
    queue: WorkQueue
    llm_pool: Optional[LLMPool] = None

    async def initialize(self, *, start_worker: bool = True) -> None:
        """Load agents from the gateway and start draining the queue."""
        await self.orchestrator.initialize()
        if start_worker:
            await self.worker.start()

    async def reset(self) -> None:
        """Reload the agent registry from the gateway."""
        await self.orchestrator.reset()
        await self.orchestrator.initialize()

    async def close(self) -> None:
        await self.worker.stop()
        await self.orchestrator.reset()
        if self.llm_pool is not None:
            await self.llm_pool.aclose()


def build_runtime(
    config: Config,
    *,
    gateway: PersistenceGateway,
    completion: Optional[CompletionClient] = None,
    memory: Optional[MemoryService] = None,
    delivery: Optional[DeliveryGateway] = None,
) -> Runtime:
    """Compose a runtime from ``config``.

    Explicit collaborators win over the ones derived from ``config``. Without
    an LLM provider there is no completion client, so only rules agents can
    be registered and memory extraction is off.
    """
    pool: Optional[LLMPool] = None
    if completion is None:
        pool = build_llm_pool(config)
        if config.openai:
            completion = CompletionService(
                pool, default_model=config.openai.default_model, timeout=config.openai.timeout
            )
        elif config.azure_openai:
            completion = CompletionService(pool, default_model=config.azure_openai.deployment_name)
        else:
            logger.warning("No LLM provider configured; llm and classifier agents are unavailable")
            pool = None

    if memory is None and completion is not None:
        memory = LLMMemoryService(
            completion,
            model=config.openai.relevance_model if config.openai else None,
        )

    if delivery is None:
        if config.delivery.url:
            delivery = HttpDeliveryGateway(config.delivery.url, timeout=config.delivery.timeout)
        else:
            logger.warning("AGENTDESK_DELIVERY_URL not set; responses are only logged")
            delivery = LoggingDeliveryGateway()

    orchestrator = Orchestrator(
        gateway=gateway,
        agent_catalog=AGENT_CATALOG,
        completion=completion,
        memory=memory,
        delivery=delivery,
        settings=config.orchestrator,
        relevance_model=config.openai.relevance_model if config.openai else None,
    )
    queue = WorkQueue()
    service = MessageService(orchestrator=orchestrator, gateway=gateway, queue=queue)
    return Runtime(
        config=config,
        gateway=gateway,
        orchestrator=orchestrator,
        messages=service,
        worker=MessageWorker(service, queue),
        queue=queue,
        llm_pool=pool,
    )
