"""Base agent definition used by the orchestrator."""
from __future__ import annotations

import abc
import logging
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from agentdesk.core.errors import AgentConfigurationError
from agentdesk.core.models import (
    AgentDefinition,
    AgentResult,
    Message,
    OrchestrationContext,
    Priority,
    ProcessResult,
)

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class Agent(abc.ABC):
    """Abstract agent: a cheap gate, a decision step and a hand-off envelope.

    Agents keep no per-message state; everything they need arrives in the
    :class:`OrchestrationContext`, so one instance serves concurrent messages.
    """

    #: ``ProcessResult.message`` used when ``generate_response`` reports failure.
    failure_message = "Agent failed to process the message"

    def __init__(self, definition: AgentDefinition) -> None:
        self.definition = definition

    @property
    def agent_id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def agent_type(self) -> str:
        return self.definition.type

    @property
    def priority(self) -> Priority:
        return self.definition.priority

    @property
    def enabled(self) -> bool:
        return self.definition.enabled

    async def initialize(self) -> None:
        """Hook executed once when the agent is registered."""
        return None

    def validate(self) -> bool:
        """Structural sanity check run before registration."""
        return bool(self.agent_id and self.name and self.agent_type)

    @abc.abstractmethod
    async def should_process(self, context: OrchestrationContext) -> bool:
        """Read-only gate deciding whether this agent takes the current step."""

    @abc.abstractmethod
    async def generate_response(
        self, message: Message, context: OrchestrationContext
    ) -> AgentResult:
        """Produce a decision or a reply without mutating ``context``."""

    async def process(self, context: OrchestrationContext) -> ProcessResult:
        """Run ``generate_response`` and wrap it into a hand-off envelope.

        Never raises: any error becomes a ``success=False`` result with zero
        confidence.
        """
        logger.info("[%s] Processing message %s", self.name, context.message.id)
        try:
            result = await self.generate_response(context.message, context)
        except Exception as exc:  # noqa: BLE001
            logger.exception("[%s] Error processing message %s", self.name, context.message.id)
            return ProcessResult.failure(f"Error: {exc}", agent_id=self.agent_id)

        if not result.success:
            return ProcessResult(
                success=False,
                message=self.failure_message,
                data=result,
                agent_id=self.agent_id,
                confidence=0.0,
            )

        return ProcessResult(
            success=True,
            message=self.describe(result),
            data=result,
            next_action=result.next_agent_id,
            agent_id=self.agent_id,
            confidence=result.confidence,
        )

    def describe(self, result: AgentResult) -> str:
        """Human-readable explanation attached to a successful result."""
        return result.response

    def _load_config(self, config_cls: Type[ConfigT]) -> ConfigT:
        try:
            return config_cls.model_validate(self.definition.config or {})
        except ValidationError as exc:
            raise AgentConfigurationError(
                f"Invalid {self.agent_type} config for agent '{self.agent_id}': {exc}"
            ) from exc

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.agent_id!r} name={self.name!r}>"
