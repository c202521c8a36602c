"""Load-run-save turn processing on top of a StateStore."""

import logging
from dataclasses import dataclass, field
from typing import Any

from config.config_loader import DialogueConfig
from mentora_ai.errors import GenerationError, InvalidTransitionError, StateInvariantError
from mentora_ai.executors.base import ExecutorError
from mentora_ai.models import DialogueStage, DialogueState, TokenUsage
from mentora_ai.orchestrator import MentoraOrchestrator
from mentora_ai.store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class TurnOutcome:
    message: str
    state: DialogueState
    ended: bool
    usage: TokenUsage = field(default_factory=TokenUsage)


class ConversationService:
    """Runs one turn at a time: load (with ownership check), orchestrate, save.

    State is saved only when the orchestrator succeeds, so a failed turn
    leaves the stored conversation exactly as it was. Turns for the same
    conversation must be serialized by the caller.
    """

    def __init__(
        self,
        store: StateStore,
        orchestrator: MentoraOrchestrator,
        default_config: DialogueConfig | None = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._default_config = default_config or DialogueConfig()

    def create_conversation(self, conversation_id: str, owner_id: str, topic: str) -> DialogueState:
        state = self._orchestrator.initialize_session(topic)
        self._store.create(conversation_id, owner_id, state)
        return state

    async def process_turn(
        self,
        conversation_id: str,
        user_id: str,
        message: str,
        topic_context: str = "",
        config: DialogueConfig | None = None,
    ) -> TurnOutcome:
        """Process one student message.

        Raises:
            ConversationNotFoundError, UnauthorizedError, ConversationEndedError:
                Propagated unchanged.
            GenerationError: On any LLM or validation failure. Nothing is saved.
        """
        state = self._store.load_state(conversation_id, user_id)
        effective = config or self._default_config

        try:
            if state.stage == DialogueStage.AWAITING_START:
                # The first message only triggers the opening question
                result = await self._orchestrator.start_conversation(state, topic_context, effective)
            else:
                result = await self._orchestrator.process_student_input(
                    state, message, topic_context, effective
                )
        except (ExecutorError, InvalidTransitionError, StateInvariantError) as exc:
            logger.error("Turn failed for conversation %s: %s", conversation_id, exc)
            raise GenerationError() from exc

        self._store.save_state(conversation_id, user_id, result.new_state)
        logger.info(
            "Conversation %s: stage %s, loop %d, %d tokens",
            conversation_id,
            result.new_state.stage.value,
            result.new_state.loop_count,
            result.usage.total,
        )
        return TurnOutcome(
            message=result.message,
            state=result.new_state,
            ended=result.ended,
            usage=result.usage,
        )

    def abort_conversation(self, conversation_id: str, user_id: str) -> DialogueState:
        state = self._store.load_state(conversation_id, user_id)
        aborted = self._orchestrator.abort(state)
        self._store.save_state(conversation_id, user_id, aborted)
        return aborted


def extract_conversation_summary(state: DialogueState) -> dict[str, Any]:
    """Compact view of a conversation for dashboards and status lines."""
    stance = state.current_stance
    principle = state.current_principle
    return {
        "stage": state.stage.value,
        "currentStance": (
            {"version": stance.version, "position": stance.position, "reason": stance.reason}
            if stance
            else None
        ),
        "principleCount": len(state.principle_history),
        "currentPrinciple": (
            {
                "version": principle.version,
                "statement": principle.statement,
                "classification": principle.classification,
            }
            if principle
            else None
        ),
        "loopCount": state.loop_count,
        "discussionSatisfied": state.discussion_satisfied,
        "summary": state.summary,
    }
