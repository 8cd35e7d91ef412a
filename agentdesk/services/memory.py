"""Per-contact long-term memory extracted from customer messages by an LLM."""
from __future__ import annotations

import json
import logging
import re
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional

from agentdesk.core.models import Memory, MemoryQueryResult, MemoryStoreResult
from agentdesk.core.signals import clamp
from agentdesk.services.gateways import CompletionClient, CompletionOptions

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You are a system that extracts important information from conversations for memory storage. "
    "Analyze the given message and extract any important information about the user that should "
    "be remembered for future conversations.\n\n"
    "Output a JSON array of objects with these fields:\n"
    "- content: a brief description of the memory (for search/retrieval)\n"
    "- memory_data: structured data related to the memory (key-value pairs)\n\n"
    "Only extract actual information. If no clear memories should be stored, return an empty array []."
)

PREFERENCE_KEYWORDS = (
    "preference", "like", "enjoy", "favorite", "prefer", "want", "wish",
    "choice", "me", "my", "myself", "i am", "personal",
)
LOCATION_KEYWORDS = ("where", "location", "city", "live", "from", "country", "address", "place")

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_WORD = re.compile(r"[a-z0-9']+")
_STOPWORDS = frozenset(
    {"the", "and", "for", "you", "are", "was", "with", "this", "that", "what", "have", "your"}
)


def _words(text: str) -> set:
    return {word for word in _WORD.findall(text.lower()) if len(word) > 2 and word not in _STOPWORDS}


def is_preference_query(query: str) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in PREFERENCE_KEYWORDS)


def is_location_query(query: str) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in LOCATION_KEYWORDS)


class LLMMemoryService:
    """Implements ``MemoryService`` with an LLM extractor and an in-process store.

    None of the public coroutines raise: extraction or storage problems are
    logged and reported as "nothing stored" or "nothing found".
    """

    def __init__(
        self,
        completion: CompletionClient,
        *,
        model: Optional[str] = None,
        max_results: int = 5,
    ) -> None:
        self._completion = completion
        self.model = model
        self.max_results = max_results
        self._memories: Dict[str, List[Memory]] = defaultdict(list)

    def memories_for(self, contact_id: str) -> List[Memory]:
        return list(self._memories.get(contact_id, ()))

    async def process_message_memory(
        self, content: str, contact_id: str, message_id: Optional[str] = None
    ) -> MemoryStoreResult:
        try:
            memories = await self.extract_memories(content, contact_id)
            for memory in memories:
                memory.message_id = message_id
            stored = self.store_memories(memories)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error processing memory for contact %s: %s", contact_id, exc)
            return MemoryStoreResult(stored=False, memory_count=0)
        return MemoryStoreResult(stored=bool(stored), memory_count=len(stored))

    async def extract_memories(self, content: str, contact_id: str) -> List[Memory]:
        try:
            reply = await self._completion.complete(
                content,
                CompletionOptions(
                    model=self.model,
                    temperature=0.0,
                    max_tokens=1024,
                    system_prompt=EXTRACTION_SYSTEM_PROMPT,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Memory extraction failed for contact %s: %s", contact_id, exc)
            return []

        items = self._parse_items(reply)
        memories = []
        for item in items:
            if not isinstance(item, dict) or not item.get("content"):
                continue
            data = item.get("memory_data")
            if not isinstance(data, dict):
                continue
            memories.append(
                Memory(
                    user_id=contact_id,
                    content=str(item["content"]),
                    memory_type=str(item.get("memory_type") or "fact"),
                    importance=clamp(item.get("importance", 0.5)),
                    memory_data=data,
                )
            )
        return memories

    def store_memories(self, memories: List[Memory]) -> List[str]:
        ids = []
        for memory in memories:
            memory.id = memory.id or str(uuid.uuid4())
            self._memories[memory.user_id].append(memory)
            ids.append(memory.id)
        if ids:
            logger.info("Stored %d memories", len(ids))
        return ids

    async def retrieve_memories(self, contact_id: str, query: str) -> MemoryQueryResult:
        stored = self._memories.get(contact_id, [])
        if not stored:
            return MemoryQueryResult()

        query_words = _words(query)
        scored = []
        for memory in stored:
            text = f"{memory.content} {json.dumps(memory.memory_data)}"
            overlap = len(query_words & _words(text))
            if overlap:
                scored.append((overlap, memory.importance, memory))
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        matches = [memory for _, _, memory in scored]

        if not matches and is_preference_query(query):
            matches = list(stored)
        elif not matches and is_location_query(query):
            location_words = set(LOCATION_KEYWORDS)
            matches = [m for m in stored if _words(m.content) & location_words]

        matches = matches[: self.max_results]
        logger.debug("Found %d memories for contact %s", len(matches), contact_id)
        return MemoryQueryResult(memories=matches)

    def format_memory_context(self, result: MemoryQueryResult) -> str:
        if not result.memories:
            return ""
        lines = ["User information based on previous conversations:\n\n"]
        for index, memory in enumerate(result.memories, start=1):
            lines.append(f"{index}. {memory.content}\n")
            if memory.memory_data:
                lines.append(f"   Details: {json.dumps(memory.memory_data)}\n")
            lines.append("\n")
        return "".join(lines)

    @staticmethod
    def _parse_items(reply: str) -> List[Any]:
        content = reply.strip()
        if "```json" in content:
            content = content.split("```json")[1].split("```")[0].strip()
        match = _JSON_ARRAY.search(content)
        if not match:
            return []
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            logger.warning("Could not parse extracted memories: %s", exc)
            return []
        return parsed if isinstance(parsed, list) else []
