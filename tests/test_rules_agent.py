"""Tests for the rules agent and call-request parsing."""
from __future__ import annotations

import pytest

from agentdesk.agents.call_parser import parse_call_request, split_contact_names
from agentdesk.agents.rules_agent import Rule, RulesAgent
from agentdesk.core.errors import AgentConfigurationError
from agentdesk.core.models import AgentDefinition


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _agent(rules, **config) -> RulesAgent:
    return RulesAgent(
        AgentDefinition(id="rules-1", name="Rules", type="rules", config={"rules": rules, **config})
    )


@pytest.mark.anyio
async def test_tied_priorities_keep_configured_order(make_context) -> None:
    agent = _agent(
        [
            {"id": "low", "pattern": "refund", "response": "low", "priority": 5},
            {"id": "first", "pattern": "refund", "response": "first", "priority": 10},
            {"id": "second", "pattern": "money", "response": "second", "priority": 10},
        ]
    )
    context = make_context("I want a refund of my money")

    result = await agent.generate_response(context.message, context)

    assert [rule.id for rule in agent.rules] == ["first", "second", "low"]
    assert result.success
    assert result.response == "first"
    assert result.metadata["matched_rule"] == "first"
    assert result.confidence == 1.0


@pytest.mark.anyio
async def test_call_rule_extracts_contacts_and_message(make_context) -> None:
    agent = _agent(
        [{"id": "call", "pattern": r"call\s+(.+?)\s+and\s+say\s+(.+)", "action": "call"}]
    )
    context = make_context("call Manish and Aadidev and say we have job vacancy")

    assert await agent.should_process(context)
    result = await agent.process(context)

    assert result.success
    assert result.confidence == 1.0
    call = result.data.metadata["call"]
    assert call == {
        "type": "call",
        "contacts": ["Manish", "Aadidev"],
        "message": "we have job vacancy",
    }
    assert result.response == "Calling Manish, Aadidev with message: we have job vacancy"
    assert result.message == "Matched rule call"


@pytest.mark.anyio
async def test_no_match_returns_fallback_with_zero_confidence(make_context) -> None:
    agent = _agent(
        [{"id": "greet", "pattern": r"\bhello\b", "response": "Hi!"}],
        fallback_message="Sorry, no rule for that.",
    )
    context = make_context("what are your opening hours?")

    assert not await agent.should_process(context)
    result = await agent.generate_response(context.message, context)
    assert not result.success
    assert result.confidence == 0.0
    assert result.response == "Sorry, no rule for that."

    processed = await agent.process(context)
    assert not processed.success
    assert processed.message == "No matching rules found"
    assert processed.confidence == 0.0


@pytest.mark.anyio
async def test_disabled_rules_are_skipped_and_callable_responses_render(make_context) -> None:
    agent = _agent([{"id": "static", "pattern": "order", "response": "static", "priority": 9}])
    agent.add_rule(
        Rule(id="dynamic", pattern=r"order\s+#?(\d+)", response=lambda m, ctx: f"Order {m.group(1)}")
    )
    assert agent.set_rule_enabled("static", False)
    context = make_context("where is order #42?")

    result = await agent.generate_response(context.message, context)

    assert result.response == "Order 42"
    assert result.metadata["groups"] == ["42"]


@pytest.mark.anyio
async def test_failing_response_callable_becomes_error_result(make_context) -> None:
    def explode(match, context):
        raise RuntimeError("template broke")

    agent = _agent([])
    agent.add_rule(Rule(id="boom", pattern="boom", response=explode))
    context = make_context("boom")

    result = await agent.generate_response(context.message, context)

    assert not result.success
    assert result.confidence == 0.0
    assert "template broke" in result.metadata["error"]


def test_invalid_pattern_is_a_configuration_error() -> None:
    with pytest.raises(AgentConfigurationError):
        _agent([{"id": "bad", "pattern": "(unclosed"}])


def test_remove_rule() -> None:
    agent = _agent([{"id": "a", "pattern": "a"}, {"id": "b", "pattern": "b"}])
    assert agent.remove_rule("a")
    assert not agent.remove_rule("missing")
    assert [rule.id for rule in agent.rules] == ["b"]


@pytest.mark.parametrize(
    ("text", "contacts", "message"),
    [
        ("call Ravi, Sita and Mohan and say the meeting moved", ["Ravi", "Sita", "Mohan"], "the meeting moved"),
        ("please phone Priya to tell her the parcel arrived", ["Priya"], "her the parcel arrived"),
        ("dial Omar and say the car is here", ["Omar"], "the car is here"),
    ],
)
def test_parse_call_request_patterns(text, contacts, message) -> None:
    call = parse_call_request(text)
    assert call.ok
    assert call.contacts == contacts
    assert call.message == message


def test_parse_call_request_without_call_phrase() -> None:
    call = parse_call_request("what time is it")
    assert not call.ok
    assert call.error


def test_split_contact_names() -> None:
    assert split_contact_names("Ann, Bob, and Cy") == ["Ann", "Bob", "Cy"]
