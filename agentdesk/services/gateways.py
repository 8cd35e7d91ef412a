"""Interfaces of the collaborators the orchestrator depends on."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from agentdesk.core.models import (
    AgentDefinition,
    Contact,
    Message,
    MessageStatus,
    MemoryQueryResult,
    MemoryStoreResult,
)


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    """Per-call knobs passed to the completion service."""

    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1000
    system_prompt: str = "You are a helpful assistant."


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    success: bool
    error: Optional[str] = None


@runtime_checkable
class CompletionClient(Protocol):
    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        """Return the model's text reply; raise on provider failure."""


@runtime_checkable
class PersistenceGateway(Protocol):
    """Read/write operations against agents, contacts and messages."""

    async def get_active_agents(self) -> List[AgentDefinition]: ...

    async def get_contact_by_id(self, contact_id: str) -> Optional[Contact]: ...

    async def get_message_history(self, contact_id: str, limit: int = 20) -> List[Message]:
        """Return the latest ``limit`` messages in chronological order."""

    async def get_message_by_id(self, message_id: str) -> Optional[Message]: ...

    async def save_message(self, message: Message) -> Message:
        """Persist ``message`` and return it with its assigned id."""

    async def update_message(self, message_id: str, **fields: object) -> Optional[Message]: ...

    async def update_message_status(
        self, message_id: str, status: MessageStatus
    ) -> Optional[Message]: ...

    async def claim_message(self, message_id: str) -> bool:
        """Atomically move a message from pending to processing.

        Returns ``False`` when the message is unknown or not pending, i.e.
        another worker already owns it.
        """

    async def update_contact_last_contact(self, contact_id: str) -> Contact: ...


@runtime_checkable
class MemoryService(Protocol):
    async def process_message_memory(
        self, content: str, contact_id: str, message_id: Optional[str] = None
    ) -> MemoryStoreResult: ...

    async def retrieve_memories(self, contact_id: str, query: str) -> MemoryQueryResult: ...

    def format_memory_context(self, result: MemoryQueryResult) -> str: ...


@runtime_checkable
class DeliveryGateway(Protocol):
    async def send(self, contact_info: str, text: str, attribution: str) -> DeliveryResult: ...
