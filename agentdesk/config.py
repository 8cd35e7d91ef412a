"""Configuration management for the orchestration engine."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class OpenAIConfig:
    """OpenAI-compatible completion service configuration."""

    api_key: str
    base_url: Optional[str] = None
    default_model: str = "gpt-4o"
    relevance_model: str = "gpt-4o-mini"
    max_concurrent: int = 50
    timeout: float = 30.0


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI service configuration."""

    api_key: str
    endpoint: str
    api_version: str = "2024-02-15-preview"
    deployment_name: str = "gpt-4"
    max_concurrent: int = 50


@dataclass(frozen=True)
class OrchestratorSettings:
    """Tunables for the agent chain and response handling."""

    max_agent_iterations: int = 3
    fallback_agent_id: Optional[str] = None
    save_responses: bool = True
    update_contact_timestamp: bool = True
    history_limit: int = 20


@dataclass(frozen=True)
class DeliveryConfig:
    """Outbound send-message endpoint."""

    url: Optional[str] = None
    timeout: float = 30.0


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    openai: Optional[OpenAIConfig] = None
    azure_openai: Optional[AzureOpenAIConfig] = None
    orchestrator: OrchestratorSettings = field(default_factory=OrchestratorSettings)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        openai_config = None
        openai_key = os.getenv("OPENAI_API_KEY")
        if openai_key:
            openai_config = OpenAIConfig(
                api_key=openai_key,
                base_url=os.getenv("OPENAI_BASE_URL") or None,
                default_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
                relevance_model=os.getenv("OPENAI_RELEVANCE_MODEL", "gpt-4o-mini"),
                max_concurrent=int(os.getenv("OPENAI_MAX_CONCURRENT", "50")),
                timeout=float(os.getenv("OPENAI_TIMEOUT", "30")),
            )

        azure_config = None
        azure_key = os.getenv("AZURE_OPENAI_KEY")
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        if azure_key and azure_endpoint:
            azure_config = AzureOpenAIConfig(
                api_key=azure_key,
                endpoint=azure_endpoint,
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
                deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4"),
                max_concurrent=int(os.getenv("AZURE_OPENAI_MAX_CONCURRENT", "50")),
            )

        orchestrator = OrchestratorSettings(
            max_agent_iterations=int(os.getenv("AGENTDESK_MAX_AGENT_ITERATIONS", "3")),
            fallback_agent_id=os.getenv("AGENTDESK_FALLBACK_AGENT_ID") or None,
            save_responses=_env_bool("AGENTDESK_SAVE_RESPONSES", True),
            update_contact_timestamp=_env_bool("AGENTDESK_UPDATE_CONTACT_TIMESTAMP", True),
            history_limit=int(os.getenv("AGENTDESK_HISTORY_LIMIT", "20")),
        )

        delivery = DeliveryConfig(
            url=os.getenv("AGENTDESK_DELIVERY_URL") or None,
            timeout=float(os.getenv("AGENTDESK_DELIVERY_TIMEOUT", "30")),
        )

        return cls(
            openai=openai_config,
            azure_openai=azure_config,
            orchestrator=orchestrator,
            delivery=delivery,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


def configure_logging(level: str = "INFO") -> None:
    """Install a basic console handler for scripts and the demo."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
