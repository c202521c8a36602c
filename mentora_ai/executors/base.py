"""Abstract base for prompt executors, with per-turn token accounting and retry."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from config.config_loader import ExecutorConfig
from mentora_ai.builders.base import Prompt
from mentora_ai.models import TokenUsage

logger = logging.getLogger(__name__)


class ExecutorError(Exception):
    """Raised when an executor call fails."""

    def __init__(self, executor_name: str, message: str) -> None:
        self.executor_name = executor_name
        super().__init__(f"[{executor_name}] {message}")


def _count(value: int | None) -> int:
    if not value or value < 0:
        return 0
    return int(value)


class TokenTracker:
    """Accumulates token usage across every call made during one turn."""

    def __init__(self) -> None:
        self._usage = TokenUsage()

    def get_token_usage(self) -> TokenUsage:
        return replace(self._usage)

    def reset_token_usage(self) -> None:
        self._usage = TokenUsage()

    def _accumulate(
        self,
        *,
        prompt: int | None = 0,
        cached: int | None = 0,
        tool_use: int | None = 0,
        candidates: int | None = 0,
        thoughts: int | None = 0,
        total: int | None = 0,
    ) -> None:
        input_tokens = _count(prompt) + _count(cached) + _count(tool_use)
        output_tokens = _count(candidates)
        thought_tokens = _count(thoughts)

        self._usage.input += input_tokens
        self._usage.output += output_tokens
        self._usage.cached += _count(cached)
        self._usage.thoughts += thought_tokens
        self._usage.total += max(_count(total), input_tokens + output_tokens + thought_tokens)


class PromptExecutor(TokenTracker, ABC):
    """Runs a Prompt against one LLM backend.

    Subclasses implement _generate(); execute() wraps it with retry and
    structured-output validation.
    """

    def __init__(self, config: ExecutorConfig) -> None:
        super().__init__()
        self._config = config

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    @abstractmethod
    async def _generate(self, prompt: Prompt) -> str | dict[str, Any]:
        """Make one raw call and record its token usage.

        Returns:
            Response text, or an already-decoded JSON object for SDKs that
            return structured output natively.

        Raises:
            ExecutorError: On API failure, timeout, or empty response.
        """
        ...

    async def execute(self, prompt: Prompt) -> Any:
        """Run the prompt, retrying transient failures with exponential backoff.

        Returns:
            A validated instance of prompt.schema, or plain text when the
            prompt has no schema.

        Raises:
            ExecutorError: When every attempt failed.
        """
        attempts = max(self._config.max_retries, 1)
        last_error: ExecutorError | None = None

        for attempt in range(1, attempts + 1):
            try:
                raw = await self._generate(prompt)
                return self._parse(prompt, raw)
            except ExecutorError as exc:
                last_error = exc
            except Exception as exc:
                last_error = ExecutorError(self.name(), f"Unexpected {type(exc).__name__}: {exc}")
                last_error.__cause__ = exc

            if attempt < attempts:
                delay = self._config.retry_base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "%s attempt %d/%d failed (%s), retrying in %.2fs",
                    self.name(),
                    attempt,
                    attempts,
                    last_error,
                    delay,
                )
                await asyncio.sleep(delay)

        raise ExecutorError(
            self.name(), f"Prompt execution failed after {attempts} attempts: {last_error}"
        ) from last_error

    def _parse(self, prompt: Prompt, raw: str | dict[str, Any]) -> Any:
        if prompt.schema is None:
            if not isinstance(raw, str):
                return json.dumps(raw)
            return raw

        try:
            if isinstance(raw, str):
                return prompt.schema.model_validate_json(raw)
            return prompt.schema.model_validate(raw)
        except ValidationError as exc:
            first = exc.errors()[0]["msg"] if exc.errors() else "unknown error"
            raise ExecutorError(self.name(), f"Schema validation failed: {first}") from exc
