"""Dict-backed persistence gateway for local runs, the demo and tests."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import fields, replace
from typing import Dict, Iterable, List, Optional, Tuple

from agentdesk.core.errors import ContactNotFoundError
from agentdesk.core.models import AgentDefinition, Contact, Message, MessageStatus, utcnow

logger = logging.getLogger(__name__)

_MESSAGE_FIELDS = frozenset(f.name for f in fields(Message))


class InMemoryGateway:
    """Implements ``PersistenceGateway`` on plain dicts.

    Values are copied on the way in and out so callers cannot mutate stored
    rows behind the gateway's back. ``claim_message`` is guarded by a lock,
    which makes it atomic for every task sharing this instance.
    """

    def __init__(
        self,
        *,
        agents: Iterable[AgentDefinition] = (),
        contacts: Iterable[Contact] = (),
        messages: Iterable[Message] = (),
    ) -> None:
        self._agents: Dict[str, AgentDefinition] = {agent.id: agent for agent in agents}
        self._contacts: Dict[str, Contact] = {contact.id: replace(contact) for contact in contacts}
        self._messages: Dict[str, Message] = {}
        self._lock = asyncio.Lock()
        self.status_log: List[Tuple[str, MessageStatus]] = []
        for message in messages:
            stored = replace(message, id=message.id or str(uuid.uuid4()))
            self._messages[stored.id] = stored

    def add_agent(self, agent: AgentDefinition) -> None:
        self._agents[agent.id] = agent

    def add_contact(self, contact: Contact) -> None:
        self._contacts[contact.id] = replace(contact)

    def messages_for(self, contact_id: str) -> List[Message]:
        """All stored messages of a contact in insertion order."""
        return [replace(m) for m in self._messages.values() if m.contact_id == contact_id]

    async def get_active_agents(self) -> List[AgentDefinition]:
        enabled = [agent for agent in self._agents.values() if agent.enabled]
        return sorted(enabled, key=lambda agent: agent.priority.rank, reverse=True)

    async def get_contact_by_id(self, contact_id: str) -> Optional[Contact]:
        contact = self._contacts.get(contact_id)
        return replace(contact) if contact else None

    async def get_message_history(self, contact_id: str, limit: int = 20) -> List[Message]:
        history = sorted(
            (m for m in self._messages.values() if m.contact_id == contact_id),
            key=lambda m: m.timestamp,
        )
        return [replace(m) for m in history[-limit:]] if limit > 0 else []

    async def get_message_by_id(self, message_id: str) -> Optional[Message]:
        message = self._messages.get(message_id)
        return replace(message) if message else None

    async def save_message(self, message: Message) -> Message:
        stored = replace(message, id=message.id or str(uuid.uuid4()))
        self._messages[stored.id] = stored
        logger.debug("Saved message %s for contact %s", stored.id, stored.contact_id)
        return replace(stored)

    async def update_message(self, message_id: str, **values: object) -> Optional[Message]:
        unknown = set(values) - _MESSAGE_FIELDS
        if unknown:
            raise ValueError(f"Unknown message fields: {sorted(unknown)}")
        message = self._messages.get(message_id)
        if message is None:
            return None
        for name, value in values.items():
            setattr(message, name, value)
        return replace(message)

    async def update_message_status(
        self, message_id: str, status: MessageStatus
    ) -> Optional[Message]:
        message = self._messages.get(message_id)
        if message is None:
            logger.warning("Cannot update status of unknown message %s", message_id)
            return None
        if message.status is status:
            return replace(message)
        message.status = status
        if status in (MessageStatus.SENT, MessageStatus.DELIVERED):
            message.is_sent = True
        self.status_log.append((message_id, status))
        return replace(message)

    async def claim_message(self, message_id: str) -> bool:
        async with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.status is not MessageStatus.PENDING:
                return False
            message.status = MessageStatus.PROCESSING
            self.status_log.append((message_id, MessageStatus.PROCESSING))
            return True

    async def update_contact_last_contact(self, contact_id: str) -> Contact:
        contact = self._contacts.get(contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)
        contact.last_contact = utcnow()
        return replace(contact)
