"""Rules-based agent answering messages that match configured patterns."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from agentdesk.agents.base import Agent
from agentdesk.agents.call_parser import call_request_from_match, parse_call_request
from agentdesk.core.errors import AgentConfigurationError
from agentdesk.core.models import AgentDefinition, AgentResult, Message, OrchestrationContext

logger = logging.getLogger(__name__)

ResponseFn = Callable[["re.Match[str]", OrchestrationContext], str]

CALL_ACTION = "call"


class RuleConfig(BaseModel):
    id: str = Field(..., min_length=1)
    pattern: str = Field(..., min_length=1)
    name: str = ""
    response: str = ""
    priority: int = 0
    enabled: bool = True
    action: Optional[str] = None


class RulesAgentConfig(BaseModel):
    rules: List[RuleConfig] = Field(default_factory=list)
    fallback_message: str = "I don't have a specific response for that."


@dataclass(slots=True)
class Rule:
    """A pattern plus the reply it produces.

    ``response`` is either static text or a callable receiving the regex match
    and the orchestration context.
    """

    id: str
    pattern: Union[str, "re.Pattern[str]"]
    response: Union[str, ResponseFn] = ""
    name: str = ""
    priority: int = 0
    enabled: bool = True
    action: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            try:
                self.pattern = re.compile(self.pattern, re.IGNORECASE)
            except re.error as exc:
                raise AgentConfigurationError(f"Rule '{self.id}' has an invalid pattern: {exc}") from exc

    @classmethod
    def from_config(cls, config: RuleConfig) -> Rule:
        return cls(
            id=config.id,
            pattern=config.pattern,
            response=config.response,
            name=config.name or config.id,
            priority=config.priority,
            enabled=config.enabled,
            action=config.action,
        )

    def search(self, content: str) -> Optional["re.Match[str]"]:
        return self.pattern.search(content)

    def render(self, match: "re.Match[str]", context: OrchestrationContext) -> str:
        if callable(self.response):
            return self.response(match, context)
        return self.response


class RulesAgent(Agent):
    """Deterministic agent: the first enabled rule (by priority) that matches wins."""

    failure_message = "No matching rules found"

    def __init__(self, definition: AgentDefinition, rules: Optional[Iterable[Rule]] = None) -> None:
        super().__init__(definition)
        self.settings = self._load_config(RulesAgentConfig)
        self._rules: List[Rule] = [Rule.from_config(rule) for rule in self.settings.rules]
        self._rules.extend(rules or ())
        self._sort_rules()

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    async def should_process(self, context: OrchestrationContext) -> bool:
        if not self.enabled:
            return False
        rule, _ = self._find_matching_rule(context.message.content)
        return rule is not None

    async def generate_response(
        self, message: Message, context: OrchestrationContext
    ) -> AgentResult:
        rule, match = self._find_matching_rule(message.content)
        if rule is None or match is None:
            return AgentResult(
                success=False,
                response=self.settings.fallback_message,
                confidence=0.0,
                metadata={"matched_rule": None},
            )

        metadata = {"matched_rule": rule.id, "rule_name": rule.name, "groups": list(match.groups())}
        try:
            response = rule.render(match, context)
            if rule.action == CALL_ACTION:
                call = call_request_from_match(match)
                if not call.ok:
                    call = parse_call_request(message.content)
                metadata["call"] = call.as_dict() if call.ok else {"type": "call", "error": call.error}
                if not response and call.ok:
                    response = f"Calling {', '.join(call.contacts)} with message: {call.message}"
        except Exception as exc:  # noqa: BLE001
            logger.exception("[%s] Error generating response for rule %s", self.name, rule.id)
            return AgentResult(
                success=False,
                response="I encountered an error processing your request with my rule system.",
                confidence=0.0,
                metadata={"error": str(exc), "matched_rule": rule.id},
            )

        logger.info("[%s] Rule %s matched message %s", self.name, rule.id, message.id)
        return AgentResult(
            success=True,
            response=response.strip(),
            confidence=1.0,
            metadata=metadata,
        )

    def describe(self, result: AgentResult) -> str:
        return f"Matched rule {result.metadata.get('rule_name') or result.metadata.get('matched_rule')}"

    def add_rule(self, rule: Rule) -> None:
        self._rules.append(rule)
        self._sort_rules()

    def remove_rule(self, rule_id: str) -> bool:
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.id != rule_id]
        return len(self._rules) < before

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        for rule in self._rules:
            if rule.id == rule_id:
                rule.enabled = enabled
                return True
        return False

    def _sort_rules(self) -> None:
        # list.sort is stable, so equal priorities keep their configured order.
        self._rules.sort(key=lambda rule: rule.priority, reverse=True)

    def _find_matching_rule(
        self, content: str
    ) -> Tuple[Optional[Rule], Optional["re.Match[str]"]]:
        for rule in self._rules:
            if not rule.enabled:
                continue
            match = rule.search(content)
            if match is not None:
                return rule, match
        return None, None
