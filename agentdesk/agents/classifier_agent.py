"""Classifier agent that categorizes messages and routes them to the next agent."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from agentdesk.agents.base import Agent
from agentdesk.core.errors import AgentConfigurationError
from agentdesk.core.models import AgentDefinition, AgentResult, Message, OrchestrationContext
from agentdesk.core.signals import parse_classification
from agentdesk.services.gateways import CompletionClient, CompletionOptions

logger = logging.getLogger(__name__)

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a text classification tool. "
    "Respond only with the category and confidence score as requested."
)

# Confidence reported whenever the default category is chosen.
DEFAULT_CATEGORY_CONFIDENCE = 0.5


class Category(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    next_agent_id: Optional[str] = Field(default=None, alias="nextAgentId")

    model_config = {"populate_by_name": True}


class ClassifierAgentConfig(BaseModel):
    categories: List[Category] = Field(default_factory=list)
    default_category_id: Optional[str] = None
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    model: Optional[str] = None


class ClassifierAgent(Agent):
    """Maps a message onto one configured category and hands off to its agent.

    Ambiguous or low-confidence classifications fall back to the default
    category so the chain always has somewhere to go.
    """

    failure_message = "Failed to classify message"

    def __init__(self, definition: AgentDefinition, completion: CompletionClient) -> None:
        super().__init__(definition)
        self.settings = self._load_config(ClassifierAgentConfig)
        self._completion = completion
        self._categories: List[Category] = list(self.settings.categories)
        if not self._categories:
            raise AgentConfigurationError(
                f"Classifier agent '{self.agent_id}' requires at least one category"
            )

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    async def should_process(self, context: OrchestrationContext) -> bool:
        return self.enabled

    async def generate_response(
        self, message: Message, context: OrchestrationContext
    ) -> AgentResult:
        try:
            name, confidence = await self.classify(message.content)
        except Exception as exc:  # noqa: BLE001
            logger.warning("[%s] Classification failed: %s", self.name, exc)
            default = self.default_category
            return AgentResult(
                success=False,
                response="I encountered an error while classifying your message.",
                confidence=0.0,
                metadata={
                    "error": str(exc),
                    "category_id": default.id,
                    "category_name": default.name,
                    "is_default": True,
                },
            )

        matched = self._find_category(name)
        threshold = self.settings.confidence_threshold
        if matched is None or confidence < threshold:
            default = self.default_category
            logger.info(
                "[%s] Using default category %s (raw=%r confidence=%.2f threshold=%.2f)",
                self.name,
                default.name,
                name,
                confidence,
                threshold,
            )
            return self._classified(default, DEFAULT_CATEGORY_CONFIDENCE, is_default=True)

        logger.info("[%s] Message classified as %s (%.2f)", self.name, matched.name, confidence)
        return self._classified(matched, confidence, is_default=False)

    async def classify(self, text: str) -> Tuple[str, float]:
        """Ask the completion service for a ``(category_name, confidence)`` pair."""
        names = [category.name for category in self._categories]
        prompt = (
            f"Classify the following message into one of these categories: {', '.join(names)}\n\n"
            f'Message: "{text}"\n\n'
            "Respond with only the category name, followed by the confidence score (0-1) "
            'separated by a pipe. For example: "category|0.95"'
        )
        reply = await self._completion.complete(
            prompt,
            CompletionOptions(
                model=self.settings.model or self.definition.model,
                temperature=0.3,
                max_tokens=50,
                system_prompt=CLASSIFICATION_SYSTEM_PROMPT,
            ),
        )
        return parse_classification(reply, names)

    def describe(self, result: AgentResult) -> str:
        return f"Message classified as {result.metadata.get('category_name', 'unknown')}"

    @property
    def default_category(self) -> Category:
        if self.settings.default_category_id:
            for category in self._categories:
                if category.id == self.settings.default_category_id:
                    return category
        return self._categories[0]

    def add_category(self, category: Category) -> None:
        self._categories.append(category)

    def remove_category(self, category_id: str) -> bool:
        if len(self._categories) == 1 and self._categories[0].id == category_id:
            raise AgentConfigurationError("Cannot remove the last category of a classifier")
        before = len(self._categories)
        self._categories = [c for c in self._categories if c.id != category_id]
        return len(self._categories) < before

    def set_default_category(self, category_id: str) -> bool:
        if any(category.id == category_id for category in self._categories):
            self.settings = self.settings.model_copy(update={"default_category_id": category_id})
            return True
        return False

    def _find_category(self, name: str) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in self._categories:
            if category.name.lower() == wanted:
                return category
        return None

    def _classified(self, category: Category, confidence: float, *, is_default: bool) -> AgentResult:
        return AgentResult(
            success=True,
            response=f"I've classified this as {category.name}.",
            confidence=confidence,
            metadata={
                "category_id": category.id,
                "category_name": category.name,
                "is_default": is_default,
            },
            next_agent_id=category.next_agent_id,
        )
