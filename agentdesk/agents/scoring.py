"""Keyword scoring of agent definitions against message content."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from agentdesk.core.models import AgentDefinition, Priority

BASE_SCORE = 0.5
KEYWORD_BONUS = 0.1
PRIORITY_BONUS = {Priority.HIGH: 0.2, Priority.MEDIUM: 0.1, Priority.LOW: 0.0}


@dataclass(frozen=True, slots=True)
class AgentScore:
    agent: AgentDefinition
    score: float
    matched_keywords: tuple


def agent_keywords(agent: AgentDefinition) -> List[str]:
    """Space-separated lowercase words longer than three characters.

    Words are taken from the name and then the description. Repeats are kept,
    so a word that appears in both counts twice when it matches.
    """
    words = f"{agent.name} {agent.description}".lower().split(" ")
    return [word for word in words if len(word) > 3]


def score_agent(content: str, agent: AgentDefinition) -> AgentScore:
    text = content.lower()
    matched = tuple(keyword for keyword in agent_keywords(agent) if keyword in text)
    score = BASE_SCORE + KEYWORD_BONUS * len(matched) + PRIORITY_BONUS[agent.priority]
    return AgentScore(agent=agent, score=round(min(score, 1.0), 4), matched_keywords=matched)


def score_agents(content: str, agents: Iterable[AgentDefinition]) -> List[AgentScore]:
    """Score every agent and return them best first; ties keep input order."""
    scored = [score_agent(content, agent) for agent in agents]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored
