"""LLM-powered agent that answers customers using a completion service."""
from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import BaseModel, Field

from agentdesk.agents.base import Agent
from agentdesk.core.models import AgentDefinition, AgentResult, Message, OrchestrationContext
from agentdesk.core.signals import DEFAULT_RELEVANCE, extract_score
from agentdesk.services.gateways import CompletionClient, CompletionOptions

logger = logging.getLogger(__name__)

RELEVANCE_SYSTEM_PROMPT = (
    "You are a relevance evaluation tool. Respond with only a number between 0 and 1."
)
APOLOGY = "I apologize, but I encountered an error processing your request."

# LLM replies are treated as authoritative once generated.
RESPONSE_CONFIDENCE = 0.9

_LABEL_PREFIX = re.compile(r"^(?:AI:|Assistant:)\s*", re.IGNORECASE)


class LLMAgentConfig(BaseModel):
    model: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    system_prompt: str = "You are a helpful assistant."
    relevance_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    always_respond: bool = False
    relevance_model: Optional[str] = None
    history_turns: int = Field(default=5, ge=0, le=5)


class LLMAgent(Agent):
    """General-purpose responder gated by an LLM-estimated relevance score."""

    failure_message = "Failed to generate response"

    def __init__(
        self,
        definition: AgentDefinition,
        completion: CompletionClient,
        *,
        relevance_model: Optional[str] = None,
    ) -> None:
        super().__init__(definition)
        self.settings = self._load_config(LLMAgentConfig)
        self._completion = completion
        self.model_name = self.settings.model or definition.model
        self.relevance_model = self.settings.relevance_model or relevance_model

    async def should_process(self, context: OrchestrationContext) -> bool:
        if not self.enabled:
            return False
        if self.settings.always_respond:
            return True
        relevance = await self.check_relevance(context.message)
        logger.info(
            "[%s] Relevance %.2f (threshold %.2f)",
            self.name,
            relevance,
            self.settings.relevance_threshold,
        )
        return relevance >= self.settings.relevance_threshold

    async def check_relevance(self, message: Message) -> float:
        """Rate how well ``message`` fits this agent on a 0-1 scale.

        Never raises; any failure or unparseable reply yields 0.5.
        """
        prompt = (
            "You are evaluating whether a message is relevant for an AI assistant "
            "with the following characteristics:\n"
            f"- Name: {self.name}\n"
            f"- Description: {self.description or 'General assistant'}\n\n"
            f'The message is: "{message.content}"\n\n'
            "On a scale from 0 to 1, how relevant is this message for this assistant?\n"
            "Respond with only a number between 0 and 1."
        )
        try:
            reply = await self._completion.complete(
                prompt,
                CompletionOptions(
                    model=self.relevance_model,
                    temperature=0.3,
                    max_tokens=10,
                    system_prompt=RELEVANCE_SYSTEM_PROMPT,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("[%s] Error checking relevance: %s", self.name, exc)
            return DEFAULT_RELEVANCE
        return extract_score(reply, DEFAULT_RELEVANCE)

    async def generate_response(
        self, message: Message, context: OrchestrationContext
    ) -> AgentResult:
        prompt = self.build_prompt(message, context)
        try:
            reply = await self._completion.complete(
                prompt,
                CompletionOptions(
                    model=self.model_name,
                    temperature=self.settings.temperature,
                    max_tokens=self.settings.max_tokens,
                    system_prompt=self.settings.system_prompt,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("[%s] Error generating response: %s", self.name, exc)
            return AgentResult(
                success=False,
                response=APOLOGY,
                confidence=0.0,
                metadata={"error": str(exc)},
            )

        text = self.clean_response(reply)
        return AgentResult(
            success=True,
            response=text,
            confidence=RESPONSE_CONFIDENCE,
            metadata={
                "model": self.model_name,
                "agent_name": self.name,
                "prompt_length": len(prompt),
                "response_length": len(text),
            },
        )

    def build_prompt(self, message: Message, context: OrchestrationContext) -> str:
        """Concatenate contact profile, memory, recent history and the new message."""
        sections = []

        contact = context.contact
        last_contact = contact.last_contact.isoformat() if contact.last_contact else "Never"
        sections.append(
            "Customer Information:\n"
            f"Name: {contact.name or 'Unknown'}\n"
            f"Contact Info: {contact.contact_info or 'Not provided'}\n"
            f"Last Contact: {last_contact}"
        )

        if context.memory.context.strip():
            sections.append(f"MEMORY INFORMATION:\n{context.memory.context.strip()}")

        turns = self.settings.history_turns
        history = [m for m in context.history if m.id != message.id]
        recent = history[-turns:] if turns else []
        if recent:
            lines = ["Previous conversation:"]
            for previous in recent:
                sender = "Customer" if previous.is_from_customer else "Assistant"
                lines.append(f"{sender}: {previous.content}")
            sections.append("\n".join(lines))

        sections.append(f"Customer's latest message: {message.content}")
        sections.append("Please provide a helpful, friendly, and concise response:")
        return "\n\n".join(sections)

    @staticmethod
    def clean_response(text: str) -> str:
        return _LABEL_PREFIX.sub("", text.strip(), count=1).strip()
