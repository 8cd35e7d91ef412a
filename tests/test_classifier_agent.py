"""Tests for the classifier agent."""
from __future__ import annotations

import pytest

from agentdesk.agents.classifier_agent import Category, ClassifierAgent
from agentdesk.core.errors import AgentConfigurationError, CompletionError
from agentdesk.core.models import AgentDefinition


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _classifier(completion, categories, **config) -> ClassifierAgent:
    definition = AgentDefinition(
        id="classifier-1",
        name="Triage",
        type="classifier",
        config={"categories": categories, **config},
    )
    return ClassifierAgent(definition, completion)


@pytest.mark.anyio
async def test_confident_match_routes_to_category_agent(make_completion, make_context) -> None:
    completion = make_completion("billing|0.9")
    agent = _classifier(
        completion,
        [{"id": "cat-billing", "name": "billing", "nextAgentId": "llm-billing"}],
        confidence_threshold=0.7,
    )
    context = make_context("Why was I charged twice?")

    result = await agent.generate_response(context.message, context)

    assert result.success
    assert result.next_agent_id == "llm-billing"
    assert result.confidence == pytest.approx(0.9)
    assert result.metadata["is_default"] is False
    assert "Why was I charged twice?" in completion.calls[0][0]
    assert completion.calls[0][1].temperature == 0.3

    processed = await agent.process(context)
    assert processed.next_action == "llm-billing"
    assert processed.message == "Message classified as billing"


@pytest.mark.anyio
@pytest.mark.parametrize("reply", ["A|0.0", "B|0.69", "A"])
async def test_low_confidence_always_uses_default(make_completion, make_context, reply) -> None:
    agent = _classifier(
        make_completion(reply),
        [{"id": "a", "name": "A"}, {"id": "b", "name": "B", "next_agent_id": "agent-b"}],
        default_category_id="b",
    )
    context = make_context("something vague")

    result = await agent.generate_response(context.message, context)

    assert result.success
    assert result.metadata["category_id"] == "b"
    assert result.metadata["is_default"] is True
    assert result.confidence == 0.5
    assert result.next_agent_id == "agent-b"


@pytest.mark.anyio
async def test_unknown_category_falls_back_to_first_category(make_completion, make_context) -> None:
    agent = _classifier(
        make_completion("shipping|0.99"),
        [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
    )
    context = make_context("where is my parcel")

    result = await agent.generate_response(context.message, context)

    assert result.metadata["category_id"] == "a"
    assert result.metadata["is_default"] is True


@pytest.mark.anyio
async def test_completion_error_yields_zero_confidence(make_completion, make_context) -> None:
    agent = _classifier(
        make_completion(default=CompletionError("provider down")),
        [{"id": "a", "name": "A"}],
    )
    context = make_context("hello")

    result = await agent.generate_response(context.message, context)
    assert not result.success
    assert result.confidence == 0.0
    assert result.metadata["is_default"] is True

    processed = await agent.process(context)
    assert not processed.success
    assert processed.confidence == 0.0


@pytest.mark.anyio
async def test_classifier_always_processes_when_enabled(make_completion, make_context) -> None:
    agent = _classifier(make_completion(), [{"id": "a", "name": "A"}])
    assert await agent.should_process(make_context("anything"))


def test_classifier_requires_categories(make_completion) -> None:
    with pytest.raises(AgentConfigurationError):
        _classifier(make_completion(), [])


def test_category_management(make_completion) -> None:
    agent = _classifier(make_completion(), [{"id": "a", "name": "A"}])
    agent.add_category(Category(id="b", name="B"))

    assert agent.set_default_category("b")
    assert not agent.set_default_category("missing")
    assert agent.default_category.id == "b"
    assert agent.remove_category("a")
    with pytest.raises(AgentConfigurationError):
        agent.remove_category("b")
