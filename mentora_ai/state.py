"""State transition helpers. Every function returns a new DialogueState."""

import logging
import time
from dataclasses import replace

from mentora_ai.errors import InvalidTransitionError, StateInvariantError
from mentora_ai.models import (
    TERMINAL_STAGES,
    DialogueStage,
    DialogueState,
    HistoryEntry,
    PrincipleVersion,
    Role,
    StanceVersion,
    SubState,
)

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[DialogueStage, frozenset[DialogueStage]] = {
    DialogueStage.AWAITING_START: frozenset({DialogueStage.ASKING_STANCE}),
    DialogueStage.ASKING_STANCE: frozenset({DialogueStage.CASE_CHALLENGE}),
    DialogueStage.CASE_CHALLENGE: frozenset({DialogueStage.PRINCIPLE_REASONING}),
    DialogueStage.PRINCIPLE_REASONING: frozenset(
        {DialogueStage.CASE_CHALLENGE, DialogueStage.CLOSURE}
    ),
    DialogueStage.CLOSURE: frozenset({DialogueStage.ENDED}),
    DialogueStage.ENDED: frozenset(),
    DialogueStage.ABORTED: frozenset(),
}

# Stages at which a stance must already have been captured
_STANCE_REQUIRED = frozenset(
    {
        DialogueStage.CASE_CHALLENGE,
        DialogueStage.PRINCIPLE_REASONING,
        DialogueStage.CLOSURE,
        DialogueStage.ENDED,
    }
)

_NO_STANCE_TEXT = "No previous stance recorded"
_NO_PRINCIPLE_TEXT = "No previous principle recorded"


def _now_ms() -> int:
    return int(time.time() * 1000)


def create_initial_state(topic: str) -> DialogueState:
    return DialogueState(topic=topic)


def create_stance_version(position: str, reason: str, version: int) -> StanceVersion:
    return StanceVersion(version=version, position=position, reason=reason, established_at=_now_ms())


def create_principle_version(
    statement: str,
    classification: str | None,
    version: int,
) -> PrincipleVersion:
    return PrincipleVersion(
        version=version,
        statement=statement,
        classification=classification,
        established_at=_now_ms(),
    )


def add_to_history(state: DialogueState, role: Role, text: str) -> DialogueState:
    return replace(
        state,
        conversation_history=state.conversation_history + (HistoryEntry(role=role, text=text),),
    )


def update_stance(state: DialogueState, position: str, reason: str) -> DialogueState:
    """Append the next stance version; the new version becomes current."""
    stance = create_stance_version(position, reason, len(state.stance_history) + 1)
    return replace(state, stance_history=state.stance_history + (stance,))


def update_principle(
    state: DialogueState,
    statement: str,
    classification: str | None = None,
) -> DialogueState:
    principle = create_principle_version(statement, classification, len(state.principle_history) + 1)
    return replace(state, principle_history=state.principle_history + (principle,))


def can_transition(source: DialogueStage, target: DialogueStage) -> bool:
    if source == target:
        return source not in TERMINAL_STAGES
    if target == DialogueStage.ABORTED:
        return source not in TERMINAL_STAGES
    return target in _ALLOWED_TRANSITIONS[source]


def transition_to(
    state: DialogueState,
    stage: DialogueStage,
    sub_state: SubState = SubState.MAIN,
) -> DialogueState:
    """Move to a stage, validating against the transition table.

    Raises:
        InvalidTransitionError: If the move is not allowed.
    """
    if not can_transition(state.stage, stage):
        raise InvalidTransitionError(f"Cannot transition from {state.stage.value} to {stage.value}")
    if state.stage != stage:
        logger.info("Stage transition: %s -> %s", state.stage.value, stage.value)
    return replace(state, stage=stage, sub_state=sub_state)


def increment_loop(state: DialogueState) -> DialogueState:
    return replace(state, loop_count=state.loop_count + 1)


def last_model_message(state: DialogueState) -> str:
    for entry in reversed(state.conversation_history):
        if entry.role == Role.MODEL:
            return entry.text
    return ""


def format_stance_history(history: tuple[StanceVersion, ...]) -> str:
    if not history:
        return _NO_STANCE_TEXT
    return "\n".join(f"V{s.version}: {s.position} (reason: {s.reason})" for s in history)


def format_principle_history(history: tuple[PrincipleVersion, ...]) -> str:
    if not history:
        return _NO_PRINCIPLE_TEXT
    return "\n".join(
        f"V{p.version}: {p.statement}" + (f" ({p.classification})" if p.classification else "")
        for p in history
    )


def check_invariants(state: DialogueState) -> None:
    """Raise StateInvariantError if the state is internally inconsistent."""
    if state.loop_count < 0:
        raise StateInvariantError(f"loop_count must be >= 0, got {state.loop_count}")

    for expected, stance in enumerate(state.stance_history, start=1):
        if stance.version != expected:
            raise StateInvariantError(
                f"Stance versions must be contiguous: expected V{expected}, got V{stance.version}"
            )
    for expected, principle in enumerate(state.principle_history, start=1):
        if principle.version != expected:
            raise StateInvariantError(
                f"Principle versions must be contiguous: expected V{expected}, got V{principle.version}"
            )

    if state.stage in _STANCE_REQUIRED and not state.stance_history:
        raise StateInvariantError(f"Stage {state.stage.value} requires an established stance")


def set_summary(state: DialogueState, summary: str) -> DialogueState:
    """Record the closure summary; the discussion is considered satisfied from here on."""
    return replace(state, summary=summary, discussion_satisfied=True)
