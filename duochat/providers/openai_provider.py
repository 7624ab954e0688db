"""OpenAI ChatGPT provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from duochat.models import ModelResponse
from duochat.providers.base import NO_RESPONSE_TEXT, AIProvider, ProviderError, status_code_of

logger = logging.getLogger(__name__)

_TIMEOUT_STATUS = 504


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self._config.system_prompt:
            messages.append({"role": "system", "content": self._config.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=self._messages(prompt),
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(
                self._config.name,
                f"Request timed out after {self._config.timeout_sec}s",
                _TIMEOUT_STATUS,
            ) from exc
        except Exception as exc:
            logger.error("ChatGPT API error: %s", exc)
            raise ProviderError(self._config.name, str(exc), status_code_of(exc)) from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message.content else NO_RESPONSE_TEXT

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("ChatGPT: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
