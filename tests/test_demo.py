"""Smoke tests for the CLI demo, runtime composition and configuration."""
from __future__ import annotations

import pytest

from agentdesk import demo
from agentdesk.config import Config, DeliveryConfig
from agentdesk.core.models import MessageStatus
from agentdesk.runtime import AGENT_CATALOG, build_runtime
from agentdesk.services.delivery import HttpDeliveryGateway, LoggingDeliveryGateway
from agentdesk.services.in_memory import InMemoryGateway


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio
async def test_demo_answers_without_llm_credentials() -> None:
    replies = await demo.main(["hello there", "call Manish and Aadidev and say we have job vacancy"])

    assert [reply.content for reply in replies] == [
        "Hello! How can I help you today?",
        "Calling Manish, Aadidev with message: we have job vacancy",
    ]
    assert all(reply.status is MessageStatus.SENT for reply in replies)


def test_build_runtime_picks_delivery_from_config() -> None:
    runtime = build_runtime(Config(), gateway=InMemoryGateway())
    assert isinstance(runtime.orchestrator._delivery, LoggingDeliveryGateway)
    assert runtime.llm_pool is None

    configured = build_runtime(
        Config(delivery=DeliveryConfig(url="https://example.test/send")),
        gateway=InMemoryGateway(),
    )
    assert isinstance(configured.orchestrator._delivery, HttpDeliveryGateway)
    assert set(AGENT_CATALOG) == {"llm", "rules", "classifier"}


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4.1")
    monkeypatch.setenv("AGENTDESK_MAX_AGENT_ITERATIONS", "5")
    monkeypatch.setenv("AGENTDESK_FALLBACK_AGENT_ID", "general")
    monkeypatch.setenv("AGENTDESK_SAVE_RESPONSES", "false")
    monkeypatch.delenv("AZURE_OPENAI_KEY", raising=False)
    monkeypatch.delenv("AGENTDESK_DELIVERY_URL", raising=False)

    config = Config.from_env()

    assert config.openai.api_key == "sk-test"
    assert config.openai.default_model == "gpt-4.1"
    assert config.azure_openai is None
    assert config.orchestrator.max_agent_iterations == 5
    assert config.orchestrator.fallback_agent_id == "general"
    assert config.orchestrator.save_responses is False
    assert config.orchestrator.update_contact_timestamp is True
    assert config.delivery.url is None

    runtime = build_runtime(config, gateway=InMemoryGateway())
    assert runtime.llm_pool is not None
    assert runtime.llm_pool.resolve("anything") == "gpt-4.1"
