"""Dispatches each student turn to the handler for the current stage."""

import logging

from config.config_loader import DialogueConfig
from mentora_ai.errors import ConversationEndedError, UnknownStageError
from mentora_ai.executors.base import PromptExecutor
from mentora_ai.handlers.asking_stance import AskingStanceHandler
from mentora_ai.handlers.awaiting_start import AwaitingStartHandler
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.handlers.case_challenge import CaseChallengeHandler
from mentora_ai.handlers.closure import ClosureHandler
from mentora_ai.handlers.principle_reasoning import PrincipleReasoningHandler
from mentora_ai.models import TERMINAL_STAGES, DialogueStage, DialogueState, Role, StageResult
from mentora_ai.registry import StageHandlerRegistry
from mentora_ai.state import add_to_history, create_initial_state, transition_to

logger = logging.getLogger(__name__)


class MentoraOrchestrator:
    """Runs the four-stage Socratic dialogue against a PromptExecutor.

    The orchestrator is stateless between calls: every method takes the
    current DialogueState and returns a new one. It never retries; retry
    belongs to the executor.
    """

    def __init__(self, executor: PromptExecutor, config: DialogueConfig | None = None) -> None:
        self._executor = executor
        self._config = config or DialogueConfig()
        self._registry = StageHandlerRegistry()
        for handler in (
            AwaitingStartHandler(),
            AskingStanceHandler(),
            CaseChallengeHandler(),
            PrincipleReasoningHandler(),
            ClosureHandler(),
        ):
            self._registry.register(handler)

    @property
    def registry(self) -> StageHandlerRegistry:
        return self._registry

    def register_handler(self, handler: StageHandler) -> None:
        self._registry.register(handler)

    def initialize_session(self, topic: str) -> DialogueState:
        return create_initial_state(topic)

    async def start_conversation(
        self,
        state: DialogueState,
        topic_context: str = "",
        config: DialogueConfig | None = None,
    ) -> StageResult:
        """Produce the opening question. No student message is involved."""
        if state.stage != DialogueStage.AWAITING_START:
            raise ValueError(f"Conversation already started (stage: {state.stage.value})")
        self._executor.reset_token_usage()
        return await self._dispatch(state, "", topic_context, config)

    async def process_student_input(
        self,
        state: DialogueState,
        message: str,
        topic_context: str = "",
        config: DialogueConfig | None = None,
    ) -> StageResult:
        """Append the student's message and run the current stage's handler.

        Raises:
            ConversationEndedError: If the state is ENDED or ABORTED.
            UnknownStageError: If no handler is registered for the stage.
            ExecutorError: Propagated unchanged from the handler.
        """
        if state.stage in TERMINAL_STAGES:
            raise ConversationEndedError(f"Conversation has already {state.stage.value}")

        self._executor.reset_token_usage()
        state = add_to_history(state, Role.USER, message)
        return await self._dispatch(state, message, topic_context, config)

    async def _dispatch(
        self,
        state: DialogueState,
        message: str,
        topic_context: str,
        config: DialogueConfig | None,
    ) -> StageResult:
        handler = self._registry.get(state.stage)
        if handler is None:
            raise UnknownStageError(f"No handler registered for stage: {state.stage.value}")

        logger.debug("Dispatching %s/%s to %s", state.stage.value, state.sub_state.value, type(handler).__name__)
        context = StageContext(
            executor=self._executor,
            state=state,
            student_message=message,
            config=config or self._config,
            topic_context=topic_context,
        )
        return await handler.handle(context)

    @staticmethod
    def is_ended(state: DialogueState) -> bool:
        return state.stage in TERMINAL_STAGES

    @staticmethod
    def abort(state: DialogueState) -> DialogueState:
        """Move a live conversation to ABORTED. Terminal states are returned unchanged."""
        if state.stage in TERMINAL_STAGES:
            return state
        return transition_to(state, DialogueStage.ABORTED)
