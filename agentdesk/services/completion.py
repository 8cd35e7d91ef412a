"""Chat-completion service backed by the shared LLM pool."""
from __future__ import annotations

import asyncio
import logging
import time

from agentdesk.core.errors import CompletionError
from agentdesk.services.gateways import CompletionOptions
from agentdesk.services.llm_pool import LLMPool

logger = logging.getLogger(__name__)


class CompletionService:
    """Single-turn completions: one system prompt, one user prompt, text back."""

    def __init__(self, pool: LLMPool, *, default_model: str = "gpt-4o", timeout: float = 30.0) -> None:
        self._pool = pool
        self.default_model = default_model
        self.timeout = timeout

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        model = options.model or self.default_model
        start_time = time.monotonic()
        try:
            async with self._pool.acquire(model) as client:
                response = await asyncio.wait_for(
                    client.chat.completions.create(
                        model=model,
                        messages=[
                            {"role": "system", "content": options.system_prompt},
                            {"role": "user", "content": prompt},
                        ],
                        temperature=options.temperature,
                        max_tokens=options.max_tokens,
                    ),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError as exc:
            logger.error("Completion with %s timed out after %.1fs", model, self.timeout)
            raise CompletionError(f"Completion timed out after {self.timeout}s") from exc
        except Exception as exc:  # noqa: BLE001
            logger.error("Completion with %s failed: %s", model, exc)
            raise CompletionError(str(exc)) from exc

        latency_ms = int((time.monotonic() - start_time) * 1000)
        content = response.choices[0].message.content or ""
        logger.info("Completion with %s succeeded: latency=%dms chars=%d", model, latency_ms, len(content))
        return content
