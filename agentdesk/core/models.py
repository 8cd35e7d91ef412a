"""Core data models shared across orchestrator components."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .signals import clamp


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentType(str, Enum):
    """Concrete agent variants known to the engine."""

    LLM = "llm"
    RULES = "rules"
    CLASSIFIER = "classifier"
    ROUTER = "router"
    QA = "qa"
    CUSTOM = "custom"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class MessageDirection(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class MessageStatus(str, Enum):
    """Delivery lifecycle of a message."""

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    READ = "read"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {MessageStatus.SENT, MessageStatus.DELIVERED, MessageStatus.FAILED, MessageStatus.READ}
)


class AgentDefinition(BaseModel):
    """Stored configuration of an agent, validated when loaded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="Catalog key, e.g. 'llm' or 'rules'")
    description: str = ""
    priority: Priority = Priority.HIGH
    enabled: bool = True
    model: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)


@dataclass(slots=True, kw_only=True)
class Contact:
    id: str
    name: str = ""
    contact_info: str = ""
    last_contact: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, kw_only=True)
class Message:
    """A customer message or a generated response.

    ``id`` is empty until the persistence gateway assigns one on save.
    """

    contact_id: str
    content: str
    id: str = ""
    timestamp: datetime = field(default_factory=utcnow)
    direction: MessageDirection = MessageDirection.INCOMING
    is_ai_response: bool = False
    is_from_customer: bool = True
    is_sent: bool = False
    is_viewed: bool = False
    status: MessageStatus = MessageStatus.PENDING
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    original_message_id: Optional[str] = None
    confidence: Optional[float] = None
    processing_details: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class MemoryType(str, Enum):
    PERSONAL_INFO = "personal_info"
    PREFERENCE = "preference"
    CONTEXT = "context"
    FACT = "fact"


@dataclass(slots=True, kw_only=True)
class Memory:
    """A durable fact about a contact extracted from past messages."""

    user_id: str
    content: str
    id: Optional[str] = None
    message_id: Optional[str] = None
    memory_type: str = MemoryType.FACT.value
    importance: float = 0.5
    memory_data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class MemoryStoreResult:
    stored: bool = False
    memory_count: int = 0


@dataclass(slots=True)
class MemoryQueryResult:
    memories: List[Memory] = field(default_factory=list)
    user_name: Optional[str] = None


@dataclass(slots=True)
class MemoryContext:
    """Formatted memory block plus the raw memories it was built from."""

    context: str = ""
    memories: List[Memory] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class OrchestrationContext:
    """Per-invocation bundle handed to every agent in the chain."""

    message: Message
    contact: Contact
    history: List[Message] = field(default_factory=list)
    agents: List[AgentDefinition] = field(default_factory=list)
    memory: MemoryContext = field(default_factory=MemoryContext)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class AgentResult:
    """Output of an agent's decision or generation step."""

    success: bool
    response: str = ""
    confidence: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)
    next_agent_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp(self.confidence))


@dataclass(frozen=True, slots=True, kw_only=True)
class ProcessResult:
    """Hand-off envelope produced by ``Agent.process``."""

    success: bool
    message: str = ""
    data: Any = None
    next_action: Optional[str] = None
    agent_id: str = ""
    confidence: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp(self.confidence))

    @classmethod
    def failure(cls, message: str, *, agent_id: str = "", data: Any = None) -> ProcessResult:
        return cls(success=False, message=message, data=data, agent_id=agent_id, confidence=0.0)

    @property
    def response(self) -> Optional[str]:
        """Response text carried in ``data``, if any."""
        if isinstance(self.data, AgentResult):
            return self.data.response or None
        if isinstance(self.data, dict):
            return self.data.get("response") or None
        return None


# Returned whenever the chain loop ran without any agent producing a result:
# a declined entry agent with no fallback, or an unknown entry agent id.
NO_RESULT = ProcessResult(success=False, message="No agent processed the message")
