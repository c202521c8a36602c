"""OpenAI executor using openai SDK with native async.

Also serves OpenAI-compatible endpoints (xAI Grok, Gemini's OpenAI endpoint)
through ExecutorConfig.base_url.
"""

import asyncio
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import ExecutorConfig
from mentora_ai.builders.base import Prompt
from mentora_ai.executors.base import ExecutorError, PromptExecutor
from mentora_ai.models import Role

logger = logging.getLogger(__name__)


def build_messages(prompt: Prompt) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if prompt.system_instruction:
        messages.append({"role": "system", "content": prompt.system_instruction})
    for entry in prompt.contents:
        role = "assistant" if entry.role == Role.MODEL else "user"
        messages.append({"role": role, "content": entry.text})
    return messages


class OpenAIPromptExecutor(PromptExecutor):
    """OpenAI (or compatible) executor via openai SDK."""

    def __init__(self, config: ExecutorConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ExecutorError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    async def _generate(self, prompt: Prompt) -> str:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": build_messages(prompt),
            "max_completion_tokens": self._config.max_tokens,
        }
        if prompt.schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": prompt.schema.__name__,
                    "schema": prompt.schema.model_json_schema(),
                },
            }

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**kwargs),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ExecutorError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ExecutorError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        usage = response.usage
        if usage:
            # prompt_tokens includes cached tokens; completion_tokens includes reasoning
            cached = usage.prompt_tokens_details.cached_tokens if usage.prompt_tokens_details else 0
            reasoning = (
                usage.completion_tokens_details.reasoning_tokens if usage.completion_tokens_details else 0
            )
            self._accumulate(
                prompt=(usage.prompt_tokens or 0) - (cached or 0),
                cached=cached,
                candidates=(usage.completion_tokens or 0) - (reasoning or 0),
                thoughts=reasoning,
                total=usage.total_tokens,
            )

        logger.info(
            "OpenAI %s (%s): %.2fs, %s tokens",
            prompt.schema.__name__ if prompt.schema else "text",
            self._config.model,
            latency,
            usage.total_tokens if usage else None,
        )

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content or not choice.message.content.strip():
            raise ExecutorError(self._config.name, "Empty response from model")

        return choice.message.content
