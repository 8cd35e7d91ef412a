"""CLI demonstration of a rules agent answering queued customer messages."""
from __future__ import annotations

import asyncio
from typing import List, NoReturn

from agentdesk.config import Config, configure_logging
from agentdesk.core.models import AgentDefinition, Contact, Message, MessageDirection
from agentdesk.runtime import build_runtime
from agentdesk.services.delivery import LoggingDeliveryGateway
from agentdesk.services.in_memory import InMemoryGateway

DEMO_AGENT = AgentDefinition(
    id="rules-demo",
    name="Front Desk",
    type="rules",
    description="Answers greetings and places calls",
    config={
        "rules": [
            {
                "id": "call",
                "name": "Call request",
                "pattern": r"call\s+(.+?)\s+and\s+say\s+(.+)",
                "action": "call",
                "priority": 10,
            },
            {
                "id": "greeting",
                "name": "Greeting",
                "pattern": r"\b(hello|hi|hey)\b",
                "response": "Hello! How can I help you today?",
                "priority": 1,
            },
        ]
    },
)

DEMO_CONTACT = Contact(id="contact-1", name="Ada", contact_info="+15550100")


async def main(messages: List[str]) -> List[Message]:
    gateway = InMemoryGateway(agents=[DEMO_AGENT], contacts=[DEMO_CONTACT])
    delivery = LoggingDeliveryGateway()
    runtime = build_runtime(Config(), gateway=gateway, delivery=delivery)
    await runtime.initialize()

    try:
        for content in messages:
            incoming = await runtime.messages.create_incoming_message(DEMO_CONTACT.id, content)
            print(f"Queued message {incoming.id}: {content!r}")
        await runtime.queue.join()
    finally:
        await runtime.close()

    replies = [
        message
        for message in gateway.messages_for(DEMO_CONTACT.id)
        if message.direction is MessageDirection.OUTGOING
    ]
    for reply in replies:
        print(f"{reply.agent_name} replied ({reply.status.value}): {reply.content}")
    return replies


def run() -> NoReturn:
    configure_logging("INFO")
    asyncio.run(main(["hello there", "call Manish and Aadidev and say we have job vacancy"]))
    raise SystemExit(0)


if __name__ == "__main__":
    run()
