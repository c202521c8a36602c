"""Anthropic Claude executor using anthropic SDK with native async.

Structured output is obtained by forcing a single tool call whose input
schema is the prompt's pydantic schema.
"""

import asyncio
import logging
import os
import time
from typing import Any

import anthropic as anthropic_sdk

from config.config_loader import ExecutorConfig
from mentora_ai.builders.base import START_PLACEHOLDER, Prompt
from mentora_ai.executors.base import ExecutorError, PromptExecutor
from mentora_ai.models import Role

logger = logging.getLogger(__name__)

OUTPUT_TOOL_NAME = "record_output"


def build_messages(prompt: Prompt) -> list[dict[str, str]]:
    messages = [
        {"role": "assistant" if entry.role == Role.MODEL else "user", "content": entry.text}
        for entry in prompt.contents
    ]
    # Messages API requires the first turn to come from the user
    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": START_PLACEHOLDER})
    return messages


class AnthropicPromptExecutor(PromptExecutor):
    """Anthropic Claude executor via anthropic SDK."""

    def __init__(self, config: ExecutorConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ExecutorError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    async def _generate(self, prompt: Prompt) -> str | dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": build_messages(prompt),
        }
        if prompt.system_instruction:
            kwargs["system"] = prompt.system_instruction
        if prompt.schema is not None:
            kwargs["tools"] = [
                {
                    "name": OUTPUT_TOOL_NAME,
                    "description": f"Record the {prompt.schema.__name__} result.",
                    "input_schema": prompt.schema.model_json_schema(),
                }
            ]
            kwargs["tool_choice"] = {"type": "tool", "name": OUTPUT_TOOL_NAME}

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ExecutorError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ExecutorError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        usage = response.usage
        if usage:
            self._accumulate(
                prompt=usage.input_tokens,
                cached=getattr(usage, "cache_read_input_tokens", None),
                candidates=usage.output_tokens,
            )

        logger.info(
            "Anthropic %s: %.2fs, %s tokens",
            prompt.schema.__name__ if prompt.schema else "text",
            latency,
            usage.input_tokens + usage.output_tokens if usage else None,
        )

        if not response.content:
            raise ExecutorError(self._config.name, "Empty response content")

        if prompt.schema is not None:
            for block in response.content:
                if block.type == "tool_use" and block.name == OUTPUT_TOOL_NAME:
                    return dict(block.input)
            raise ExecutorError(self._config.name, "No structured output in response")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ExecutorError(self._config.name, "No text blocks in response")
        return "\n".join(text_blocks)
