"""Shared test infrastructure.

Provides:
- make_completion: factory for a scripted ``CompletionClient``
- make_context: factory for an ``OrchestrationContext`` around one message
- contact / gateway: an in-memory gateway seeded with one contact
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple, Union

import pytest

from agentdesk.core.models import Contact, Message, MemoryContext, OrchestrationContext
from agentdesk.services.gateways import CompletionOptions
from agentdesk.services.in_memory import InMemoryGateway

Reply = Union[str, BaseException, Callable[[str, CompletionOptions], str]]


class ScriptedCompletion:
    """Returns queued replies in order; exceptions in the queue are raised.

    Once the queue is empty the ``default`` reply is returned for every call.
    """

    def __init__(self, *replies: Reply, default: Optional[Reply] = "") -> None:
        self.replies: List[Reply] = list(replies)
        self.default = default
        self.calls: List[Tuple[str, CompletionOptions]] = []

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        self.calls.append((prompt, options))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(prompt, options)
        return reply


@pytest.fixture
def make_completion() -> Callable[..., ScriptedCompletion]:
    return ScriptedCompletion


@pytest.fixture
def contact() -> Contact:
    return Contact(id="contact-1", name="Ada Lovelace", contact_info="+15550100")


@pytest.fixture
def gateway(contact: Contact) -> InMemoryGateway:
    return InMemoryGateway(contacts=[contact])


@pytest.fixture
def make_context(contact: Contact) -> Callable[..., OrchestrationContext]:
    def _make(
        content: str,
        *,
        history: Optional[List[Message]] = None,
        memory: str = "",
        **message_fields: Any,
    ) -> OrchestrationContext:
        message = Message(contact_id=contact.id, content=content, id="msg-1", **message_fields)
        return OrchestrationContext(
            message=message,
            contact=contact,
            history=list(history or []),
            memory=MemoryContext(context=memory),
        )

    return _make
