"""Async client for an OpenAI-compatible chat completions API."""

import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

from mailbot.executors.prompt_builder import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"


class ClassifierResponseError(Exception):
    """The provider answered 2xx but without ``choices[0].message.content``."""


class ChatMessage(BaseModel):
    role: str = "assistant"
    content: str


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Raw response from /chat/completions (non-streaming).

    Only ``choices[0].message.content`` feeds the decision pipeline.
    """

    id: str = ""
    model: str = ""
    choices: list[ChatChoice] = Field(min_length=1)
    usage: ChatUsage = Field(default_factory=ChatUsage)


class OpenAIClient:
    """Async HTTP client that turns a prompt into raw LM text.

    ``classify`` matches the orchestrator's classifier signature, so a
    bound method can be passed straight to ``decide``.

    Usage::

        async with OpenAIClient(api_key) as client:
            outcome = await decide(snapshot, client.classify, rules=rules)
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
    ) -> None:
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )

    async def __aenter__(self) -> "OpenAIClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        system: str,
        prompt: str,
        *,
        temperature: float = 0.0,
    ) -> ChatCompletionResponse:
        """Send one chat completion request.

        Raises:
            httpx.HTTPStatusError: On non-2xx response.
            httpx.HTTPError: On network failure.
            ClassifierResponseError: If the body is not a chat completion.
        """
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }

        response = await self._client.post("/chat/completions", json=payload)
        response.raise_for_status()

        try:
            raw = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ClassifierResponseError(f"Unexpected chat completion body: {exc}") from exc

        logger.debug(
            "OpenAI %s: %d prompt tokens, %d completion tokens",
            raw.model or self._model,
            raw.usage.prompt_tokens,
            raw.usage.completion_tokens,
        )
        return raw

    async def classify(self, prompt: str) -> str:
        """Return the raw content of the first choice for ``prompt``."""
        raw = await self.complete(SYSTEM_PROMPT, prompt, temperature=0.0)
        return raw.choices[0].message.content
