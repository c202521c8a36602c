"""Prompt container and helpers shared by all stage builders."""

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel

from mentora_ai.builders.schemas import StageResponse
from mentora_ai.models import HistoryEntry, Role

START_PLACEHOLDER = "[please start]"


@dataclass(frozen=True)
class Prompt:
    """A prompt ready for an executor.

    schema is None for free-text output; otherwise the executor must return
    an instance of that pydantic model.
    """

    contents: tuple[HistoryEntry, ...]
    system_instruction: str | None = None
    schema: type[BaseModel] | None = None


def build_contents(history: Sequence[HistoryEntry]) -> tuple[HistoryEntry, ...]:
    """Ensure the contents end with a user turn (Gemini rejects model-last contents)."""
    contents = tuple(history)
    if not contents or contents[-1].role != Role.USER:
        contents += (HistoryEntry(role=Role.USER, text=START_PLACEHOLDER),)
    return contents


def format_stage_response(response: StageResponse) -> str:
    """Join the main message and the follow-up question with a blank line."""
    return f"{response.response_message}\n\n{response.concise_question}"
