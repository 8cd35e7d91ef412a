"""Orchestrator responsible for registering agents and running the agent chain."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Dict, List, Mapping, Optional, Type

from agentdesk.agents.base import Agent
from agentdesk.agents.scoring import AgentScore, score_agents
from agentdesk.config import OrchestratorSettings
from agentdesk.core.errors import (
    AgentConfigurationError,
    ContactNotFoundError,
    UnsupportedAgentTypeError,
)
from agentdesk.core.models import (
    NO_RESULT,
    AgentDefinition,
    AgentType,
    MemoryContext,
    Message,
    MessageDirection,
    MessageStatus,
    OrchestrationContext,
    ProcessResult,
)
from agentdesk.services.gateways import (
    CompletionClient,
    DeliveryGateway,
    MemoryService,
    PersistenceGateway,
)

logger = logging.getLogger(__name__)


class Orchestrator:
    """Own the agent registry and drive one message through the agent chain."""

    def __init__(
        self,
        *,
        gateway: PersistenceGateway,
        agent_catalog: Mapping[str, Type[Agent]],
        completion: Optional[CompletionClient] = None,
        memory: Optional[MemoryService] = None,
        delivery: Optional[DeliveryGateway] = None,
        settings: Optional[OrchestratorSettings] = None,
        relevance_model: Optional[str] = None,
    ) -> None:
        self._gateway = gateway
        self._agent_catalog = agent_catalog
        self._completion = completion
        self._memory = memory
        self._delivery = delivery
        self.settings = settings or OrchestratorSettings()
        self._relevance_model = relevance_model
        self._agents: Dict[str, Agent] = {}
        self._lock = asyncio.Lock()

    @property
    def agents(self) -> List[Agent]:
        """Registered agents in registration order."""
        return list(self._agents.values())

    async def initialize(self) -> None:
        """Register every active agent definition stored in the gateway.

        Fails closed: the first definition with an unsupported type or an
        invalid config aborts initialization with the configuration error.
        """
        definitions = await self._gateway.get_active_agents()
        for definition in definitions:
            try:
                await self.register_agent(definition)
            except AgentConfigurationError as exc:
                logger.error("Failed to register agent %s: %s", definition.id, exc)
                raise
        logger.info("Orchestrator initialized with %d agents", len(self._agents))

    async def register_agent(self, definition: AgentDefinition) -> Agent:
        """Create (or replace) the agent for ``definition`` and initialize it."""
        agent = self._build_agent(definition)
        if not agent.validate():
            raise AgentConfigurationError(f"Agent '{definition.id}' failed validation")
        await agent.initialize()
        async with self._lock:
            replaced = definition.id in self._agents
            self._agents[definition.id] = agent
        logger.info(
            "%s agent %s (%s, type=%s)",
            "Replaced" if replaced else "Registered",
            agent.name,
            agent.agent_id,
            agent.agent_type,
        )
        return agent

    async def remove_agent(self, agent_id: str) -> bool:
        async with self._lock:
            removed = self._agents.pop(agent_id, None)
        return removed is not None

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    async def reset(self) -> None:
        """Drop every registered agent; ``initialize`` may be called again."""
        async with self._lock:
            self._agents.clear()

    def select_entry_agent(self) -> Optional[Agent]:
        """Highest-priority enabled classifier, else highest-priority enabled agent.

        Ties keep registration order.
        """
        enabled = [agent for agent in self._agents.values() if agent.enabled]
        classifiers = [a for a in enabled if a.agent_type == AgentType.CLASSIFIER.value]
        for candidates in (classifiers, enabled):
            if candidates:
                return max(candidates, key=lambda agent: agent.priority.rank)
        return None

    def rank_agents(self, content: str) -> List[AgentScore]:
        """Keyword-score every registered agent against ``content``, best first."""
        return score_agents(content, [agent.definition for agent in self._agents.values()])

    async def process_message(self, message: Message) -> ProcessResult:
        """Run the full pipeline for one inbound message.

        Never raises; an unexpected error marks the message failed and comes
        back as a ``success=False`` result.
        """
        try:
            if not message.status.is_terminal and message.status is not MessageStatus.PROCESSING:
                await self._gateway.update_message_status(message.id, MessageStatus.PENDING)

            contact = await self._gateway.get_contact_by_id(message.contact_id)
            if contact is None:
                raise ContactNotFoundError(message.contact_id)
            history = await self._gateway.get_message_history(
                message.contact_id, self.settings.history_limit
            )

            context = OrchestrationContext(
                message=message,
                contact=contact,
                history=history,
                agents=[agent.definition for agent in self._agents.values()],
                memory=await self._load_memory(message),
            )

            entry = self.select_entry_agent()
            if entry is None:
                logger.warning("No enabled agents available for message %s", message.id)
                result = ProcessResult.failure("No enabled agents available to process message")
            else:
                result = await self.run_chain(entry.agent_id, context)

            if result.success and self.settings.save_responses and result.response:
                await self._save_response(message, context, result)

            final_status = MessageStatus.READ if result.success else MessageStatus.FAILED
            await self._gateway.update_message_status(message.id, final_status)
            return result
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing message %s", message.id)
            await self._mark_failed(message.id)
            return ProcessResult.failure(f"Error processing message: {exc}")

    async def run_chain(self, entry_agent_id: str, context: OrchestrationContext) -> ProcessResult:
        """Walk the agent chain starting at ``entry_agent_id``.

        Every attempted agent counts towards ``max_agent_iterations``. A
        declined step moves to the fallback agent when one is configured;
        an unknown or disabled target ends the chain.
        """
        limit = self.settings.max_agent_iterations
        fallback_id = self.settings.fallback_agent_id
        result: Optional[ProcessResult] = None
        current_id: Optional[str] = entry_agent_id
        iterations = 0

        while current_id is not None and iterations < limit:
            agent = self._agents.get(current_id)
            if agent is None or not agent.enabled:
                logger.warning("Agent %s is not registered or disabled; ending chain", current_id)
                break
            iterations += 1

            if not await agent.should_process(context):
                logger.info("[%s] Declined message %s", agent.name, context.message.id)
                if fallback_id and fallback_id != current_id:
                    current_id = fallback_id
                    continue
                break

            result = await agent.process(context)
            logger.info(
                "[%s] Step %d/%d: success=%s confidence=%.2f next=%s",
                agent.name,
                iterations,
                limit,
                result.success,
                result.confidence,
                result.next_action,
            )
            current_id = result.next_action
        else:
            if current_id is not None:
                logger.warning(
                    "Chain for message %s stopped after %d agent iterations",
                    context.message.id,
                    limit,
                )

        return result if result is not None else NO_RESULT

    async def _load_memory(self, message: Message) -> MemoryContext:
        if self._memory is None:
            return MemoryContext()
        stored = await self._memory.process_message_memory(
            message.content, message.contact_id, message.id
        )
        if stored.stored:
            logger.info("Stored %d memories for contact %s", stored.memory_count, message.contact_id)
        found = await self._memory.retrieve_memories(message.contact_id, message.content)
        return MemoryContext(
            context=self._memory.format_memory_context(found),
            memories=list(found.memories),
        )

    async def _save_response(
        self, original: Message, context: OrchestrationContext, result: ProcessResult
    ) -> Message:
        agent = self._agents.get(result.agent_id)
        attribution = agent.name if agent else "AI Assistant"
        response = await self._gateway.save_message(
            Message(
                contact_id=original.contact_id,
                content=result.response or "",
                direction=MessageDirection.OUTGOING,
                is_ai_response=True,
                is_from_customer=False,
                is_sent=False,
                status=MessageStatus.PENDING,
                agent_id=result.agent_id or None,
                agent_name=attribution,
                original_message_id=original.id,
                confidence=result.confidence,
                processing_details=result.message,
            )
        )
        logger.info("Saved response %s for message %s", response.id, original.id)

        if self.settings.update_contact_timestamp:
            try:
                await self._gateway.update_contact_last_contact(original.contact_id)
            except Exception as exc:  # noqa: BLE001
                logger.error("Could not update last contact of %s: %s", original.contact_id, exc)

        await self._deliver(response, context.contact.contact_info, attribution)
        return response

    async def _deliver(self, response: Message, contact_info: str, attribution: str) -> None:
        if self._delivery is None:
            logger.warning("No delivery gateway configured; response %s left pending", response.id)
            return
        if not contact_info:
            logger.error("Contact %s has no contact info; cannot deliver", response.contact_id)
            await self._mark_failed(response.id)
            return

        try:
            delivery = await self._delivery.send(contact_info, response.content, attribution)
        except Exception as exc:  # noqa: BLE001
            logger.error("Delivery of response %s raised: %s", response.id, exc)
            await self._mark_failed(response.id)
            return

        if delivery.success:
            await self._gateway.update_message(
                response.id, status=MessageStatus.SENT, is_sent=True
            )
            logger.info("Response %s sent to %s", response.id, contact_info)
        else:
            logger.error("Delivery of response %s failed: %s", response.id, delivery.error)
            await self._mark_failed(response.id)

    async def _mark_failed(self, message_id: str) -> None:
        try:
            await self._gateway.update_message_status(message_id, MessageStatus.FAILED)
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not mark message %s failed: %s", message_id, exc)

    def _build_agent(self, definition: AgentDefinition) -> Agent:
        agent_cls = self._resolve_agent_class(definition.type)
        kwargs = {}
        params = inspect.signature(agent_cls.__init__).parameters
        if "completion" in params:
            if self._completion is None:
                raise AgentConfigurationError(
                    f"Agent '{definition.id}' of type '{definition.type}' needs a completion client"
                )
            kwargs["completion"] = self._completion
        if "relevance_model" in params and self._relevance_model:
            kwargs["relevance_model"] = self._relevance_model
        return agent_cls(definition, **kwargs)

    def _resolve_agent_class(self, agent_type: str) -> Type[Agent]:
        if agent_type not in self._agent_catalog:
            raise UnsupportedAgentTypeError(agent_type)
        return self._agent_catalog[agent_type]
