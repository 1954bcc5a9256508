"""AI provider abstraction for automation message generation."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from fieldops.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Completion text plus the model that produced it."""

    content: str
    model: str
    total_tokens: int = 0


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        """Send a chat completion request."""
        pass


class OpenAIProvider(AIProvider):
    """OpenAI chat completions over httpx."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        base_url: str = "https://api.openai.com/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = base_url
        self.transport = transport

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": model,
                    "messages": [
                        {"role": m.role, "content": m.content} for m in messages
                    ],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()

        total_tokens = data.get("usage", {}).get("total_tokens", 0)
        logger.debug("OpenAI completion used %d tokens (%s)", total_tokens, model)
        return ChatResponse(
            content=data["choices"][0]["message"].get("content") or "",
            model=model,
            total_tokens=total_tokens,
        )


def get_provider() -> AIProvider | None:
    """Provider configured from settings, or None when no API key is set."""
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAIProvider(
        settings.OPENAI_API_KEY,
        default_model=settings.AI_MODEL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
