"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from duochat.models import ModelResponse
from duochat.providers.base import NO_RESPONSE_TEXT, AIProvider, ProviderError, status_code_of

logger = logging.getLogger(__name__)

_TIMEOUT_STATUS = 504


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    messages=[{"role": "user", "content": prompt}],
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
            logger.error("Claude API error: %s", exc)
            raise ProviderError(self._config.name, str(exc), status_code_of(exc)) from exc

        latency = time.monotonic() - start

        text_blocks = [b.text for b in (response.content or []) if getattr(b, "type", None) == "text"]
        content = "\n".join(text_blocks) if text_blocks else NO_RESPONSE_TEXT

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Claude: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
