"""Stage 1: establish the student's initial stance (V1)."""

import logging

from mentora_ai.builders.asking_stance import build_stance_clarify, build_stance_classifier
from mentora_ai.builders.case_challenge import build_case_challenge
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.models import DialogueStage, Role, StageResult, SubState
from mentora_ai.state import last_model_message, transition_to, update_stance

logger = logging.getLogger(__name__)


class AskingStanceHandler(StageHandler):
    stage = DialogueStage.ASKING_STANCE

    async def handle(self, context: StageContext) -> StageResult:
        state = context.state
        classification = await context.executor.execute(
            build_stance_classifier(
                state.conversation_history,
                topic=state.topic,
                current_question=last_model_message(state),
                user_input=context.student_message,
            )
        )
        intent = classification.detected_intent
        logger.debug("AskingStance intent: %s (%.2f)", intent, classification.confidence_score)

        if intent == "TR_V1_ESTABLISHED":
            extracted = classification.extracted_data
            state = update_stance(
                state,
                position=extracted.stance or context.student_message,
                reason=extracted.reasoning or "",
            )
            stance = state.current_stance
            message = await self._generate(
                context,
                build_case_challenge(
                    state.conversation_history,
                    current_stance=stance.position,
                    current_reason=stance.reason,
                    loop_count=state.loop_count,
                    language=context.config.response_language,
                ),
            )
            return self._reply(context, transition_to(state, DialogueStage.CASE_CHALLENGE), message)

        # TR_CLARIFY
        attempts = 1 + sum(
            1 for entry in state.conversation_history[:-1] if entry.role == Role.USER
        )
        message = await self._generate(
            context,
            build_stance_clarify(
                state.conversation_history,
                topic=state.topic,
                user_input=context.student_message,
                attempts=attempts,
                language=context.config.response_language,
            ),
        )
        return self._reply(context, transition_to(state, self.stage, SubState.CLARIFY), message)
