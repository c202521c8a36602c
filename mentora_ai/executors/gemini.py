"""Gemini executor using google-genai SDK with native async and JSON-schema output."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ExecutorConfig
from mentora_ai.builders.base import Prompt
from mentora_ai.executors.base import ExecutorError, PromptExecutor

logger = logging.getLogger(__name__)


class GeminiPromptExecutor(PromptExecutor):
    """Google Gemini executor via google-genai SDK."""

    def __init__(self, config: ExecutorConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ExecutorError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def _build_config(self, prompt: Prompt) -> genai_types.GenerateContentConfig:
        structured = prompt.schema is not None
        return genai_types.GenerateContentConfig(
            system_instruction=prompt.system_instruction,
            response_mime_type="application/json" if structured else "text/plain",
            response_json_schema=prompt.schema.model_json_schema() if structured else None,
            max_output_tokens=self._config.max_tokens,
        )

    async def _generate(self, prompt: Prompt) -> str:
        contents = [
            genai_types.Content(role=entry.role.value, parts=[genai_types.Part(text=entry.text)])
            for entry in prompt.contents
        ]

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=contents,
                    config=self._build_config(prompt),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ExecutorError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ExecutorError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        usage = response.usage_metadata
        if usage:
            self._accumulate(
                prompt=usage.prompt_token_count,
                cached=usage.cached_content_token_count,
                tool_use=usage.tool_use_prompt_token_count,
                candidates=usage.candidates_token_count,
                thoughts=usage.thoughts_token_count,
                total=usage.total_token_count,
            )

        logger.info(
            "Gemini %s: %.2fs, %s tokens",
            prompt.schema.__name__ if prompt.schema else "text",
            latency,
            usage.total_token_count if usage else None,
        )

        if not response.text or not response.text.strip():
            raise ExecutorError(self._config.name, "Empty response from model")

        return response.text
