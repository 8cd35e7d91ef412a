"""Exception types raised by the orchestration engine."""
from __future__ import annotations


class AgentDeskError(Exception):
    """Base class for every error raised by agentdesk."""


class AgentConfigurationError(AgentDeskError):
    """An agent definition is missing fields or carries an invalid config."""


class UnsupportedAgentTypeError(AgentConfigurationError, KeyError):
    """No agent class is registered in the catalog for the requested type."""

    def __init__(self, agent_type: str) -> None:
        super().__init__(f"Unsupported agent type: '{agent_type}'")
        self.agent_type = agent_type

    def __str__(self) -> str:
        return self.args[0]


class ContactNotFoundError(AgentDeskError):
    """The contact owning a message does not exist."""

    def __init__(self, contact_id: str) -> None:
        super().__init__(f"Contact not found: {contact_id}")
        self.contact_id = contact_id


class MessageNotFoundError(AgentDeskError):
    """A message id could not be resolved by the persistence gateway."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message not found: {message_id}")
        self.message_id = message_id


class CompletionError(AgentDeskError):
    """The completion service failed or timed out."""
