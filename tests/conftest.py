"""Shared pytest fixtures."""

from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest
from pydantic import BaseModel

from config.config_loader import AppConfig, DefaultsConfig, DialogueConfig, ExecutorConfig
from mentora_ai.builders.base import Prompt
from mentora_ai.executors.base import PromptExecutor
from mentora_ai.models import DialogueStage, DialogueState, Role
from mentora_ai.orchestrator import MentoraOrchestrator
from mentora_ai.state import add_to_history, create_initial_state, transition_to, update_principle, update_stance


def classify(intent: str, stance: str | None = None, reasoning: str | None = None, confidence: float = 0.9) -> dict:
    """Classifier output as the LLM would return it."""
    return {
        "thought_process": f"Detected {intent}",
        "detected_intent": intent,
        "confidence_score": confidence,
        "extracted_data": {"stance": stance, "reasoning": reasoning},
    }


def reply(message: str, question: str = "What do you think?") -> dict:
    """Response-generator output as the LLM would return it."""
    return {
        "thought_process": "plan",
        "response_message": message,
        "concise_question": question,
    }


class ScriptedExecutor(PromptExecutor):
    """Test double PromptExecutor.

    Replays queued responses in order. Dicts go through the real schema
    validation in PromptExecutor; exceptions are raised. Every prompt is
    recorded in .prompts. Each call adds 10 input and 5 output tokens.
    """

    def __init__(self, responses: Iterable[Any] = (), max_retries: int = 1) -> None:
        super().__init__(
            ExecutorConfig(
                name="scripted",
                sdk="test",
                model="scripted-model",
                api_key_env="TEST_API_KEY",
                timeout_sec=5,
                max_tokens=1024,
                max_retries=max_retries,
                retry_base_delay=0.0,
            )
        )
        self._responses = list(responses)
        self.prompts: list[Prompt] = []

    def queue(self, *responses: Any) -> None:
        self._responses.extend(responses)

    @property
    def remaining(self) -> int:
        return len(self._responses)

    async def _generate(self, prompt: Prompt) -> str | dict[str, Any]:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError("ScriptedExecutor ran out of responses")
        response = self._responses.pop(0)
        self._accumulate(prompt=10, candidates=5)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, BaseModel):
            return response.model_dump()
        return response


@pytest.fixture
def dialogue_config() -> DialogueConfig:
    return DialogueConfig(max_loops=3, min_loops_for_closure=1, closing_message="Goodbye and thanks!")


@pytest.fixture
def scripted_executor() -> ScriptedExecutor:
    return ScriptedExecutor()


@pytest.fixture
def orchestrator(scripted_executor: ScriptedExecutor, dialogue_config: DialogueConfig) -> MentoraOrchestrator:
    return MentoraOrchestrator(scripted_executor, dialogue_config)


@pytest.fixture
def topic() -> str:
    return "Should autonomous cars prioritize passengers over pedestrians?"


def make_state(
    topic: str,
    stage: DialogueStage,
    *,
    loop_count: int = 0,
    principles: Iterable[str] = (),
    summary: str | None = None,
) -> DialogueState:
    """Build a valid state at the given stage with a V1 stance and a short history."""
    state = create_initial_state(topic)
    state = add_to_history(state, Role.MODEL, "What is your initial view?")
    if stage == DialogueStage.ASKING_STANCE:
        return transition_to(state, DialogueStage.ASKING_STANCE)

    state = add_to_history(state, Role.USER, "Passengers first, they bought the car.")
    state = update_stance(state, "Passengers first", "They bought the car")
    state = add_to_history(state, Role.MODEL, "Case: a bus of children crosses the road. Does your view hold?")
    for statement in principles:
        state = update_principle(state, statement, "TR_COMPLETE")
    state = replace(
        state,
        stage=stage,
        loop_count=loop_count,
        summary=summary,
        discussion_satisfied=summary is not None,
    )
    if summary is not None:
        state = add_to_history(state, Role.MODEL, summary)
    return state


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    executor_cfg = ExecutorConfig(
        name="gemini",
        sdk="google-genai",
        model="gemini-2.5-flash",
        api_key_env="GEMINI_API_KEY",
        timeout_sec=60,
        max_tokens=8192,
    )
    return AppConfig(
        defaults=DefaultsConfig(
            executor="gemini",
            state_dir=tmp_path / "conversations",
            transcript_dir=tmp_path / "output",
        ),
        dialogue=DialogueConfig(),
        executors={"gemini": executor_cfg},
        available_executors={"gemini"},
    )
