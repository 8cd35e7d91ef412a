"""LLM client pool for shared model access with concurrency control."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from agentdesk.config import AzureOpenAIConfig, OpenAIConfig


class LLMPool:
    """Manages shared LLM clients with concurrency limiting.

    Clients are registered under a model name. ``acquire`` falls back to the
    ``default`` registration for model names that were not registered
    explicitly, so one OpenAI client can serve every model an agent asks for.
    """

    def __init__(self, default: Optional[str] = None) -> None:
        self._clients: Dict[str, Any] = {}
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._initialized: Dict[str, bool] = {}
        self._default = default

    def register_openai(self, name: str, config: OpenAIConfig, *, default: bool = False) -> None:
        """Register an OpenAI (or OpenAI-compatible) endpoint."""
        self._register(name, config, config.max_concurrent, default=default)

    def register_azure_openai(
        self, name: str, config: AzureOpenAIConfig, *, default: bool = False
    ) -> None:
        """Register an Azure OpenAI model configuration."""
        self._register(name, config, config.max_concurrent, default=default)

    def register_client(
        self, name: str, client: Any, *, max_concurrent: int = 50, default: bool = False
    ) -> None:
        """Register an already constructed client."""
        self._register(name, client, max_concurrent, default=default)
        self._initialized[name] = True

    def _register(self, name: str, client: Any, max_concurrent: int, *, default: bool) -> None:
        self._clients[name] = client
        self._semaphores[name] = asyncio.Semaphore(max_concurrent)
        self._initialized[name] = False
        if default or self._default is None:
            self._default = name

    def __len__(self) -> int:
        return len(self._clients)

    def resolve(self, model_name: str) -> str:
        if model_name in self._clients:
            return model_name
        if self._default is not None and self._default in self._clients:
            return self._default
        raise KeyError(f"Model '{model_name}' not registered in LLM pool")

    @asynccontextmanager
    async def acquire(self, model_name: str) -> AsyncIterator[Any]:
        """Acquire access to a model client with concurrency control."""
        name = self.resolve(model_name)
        semaphore = self._semaphores[name]
        await semaphore.acquire()

        try:
            # Lazy initialization on first use
            if not self._initialized[name]:
                self._initialize_client(name)

            yield self._clients[name]
        finally:
            semaphore.release()

    def _initialize_client(self, name: str) -> None:
        """Lazy initialization of the actual client."""
        config = self._clients[name]

        if isinstance(config, AzureOpenAIConfig):
            self._clients[name] = AsyncAzureOpenAI(
                api_key=config.api_key,
                api_version=config.api_version,
                azure_endpoint=config.endpoint,
            )
        elif isinstance(config, OpenAIConfig):
            self._clients[name] = AsyncOpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.timeout,
            )
        self._initialized[name] = True

    async def aclose(self) -> None:
        """Close every client that was actually created."""
        for name, client in self._clients.items():
            if self._initialized.get(name) and hasattr(client, "close"):
                await client.close()
