"""Stage 2: pressure-test the stance with concrete cases."""

import logging

from mentora_ai.builders.case_challenge import build_case_classifier, build_case_clarify, build_case_scaffold
from mentora_ai.builders.principle_reasoning import build_principle_reasoning
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.models import DialogueStage, StageResult, SubState
from mentora_ai.state import format_stance_history, last_model_message, transition_to, update_stance

logger = logging.getLogger(__name__)


class CaseChallengeHandler(StageHandler):
    stage = DialogueStage.CASE_CHALLENGE

    async def handle(self, context: StageContext) -> StageResult:
        state = context.state
        stance = state.current_stance
        current_case = last_model_message(state)
        language = context.config.response_language

        classification = await context.executor.execute(
            build_case_classifier(
                state.conversation_history,
                previous_stance=stance.position,
                current_case=current_case,
                user_input=context.student_message,
                loop_count=state.loop_count,
            )
        )
        intent = classification.detected_intent
        logger.debug("CaseChallenge intent: %s (%.2f)", intent, classification.confidence_score)

        if intent == "TR_CASE_COMPLETED":
            message = await self._generate(
                context,
                build_principle_reasoning(
                    state.conversation_history,
                    topic=state.topic,
                    current_stance=stance.position,
                    current_reason=stance.reason,
                    stance_history=format_stance_history(state.stance_history),
                    language=language,
                ),
            )
            return self._reply(context, transition_to(state, DialogueStage.PRINCIPLE_REASONING), message)

        if intent == "TR_SCAFFOLD":
            revised = (classification.extracted_data.stance or "").strip()
            if revised and revised != stance.position:
                state = update_stance(
                    state,
                    position=revised,
                    reason=classification.extracted_data.reasoning or stance.reason,
                )
                logger.info("Stance updated to V%d", state.current_stance.version)
            message = await self._generate(
                context,
                build_case_scaffold(
                    state.conversation_history,
                    current_stance=stance.position,
                    user_input=context.student_message,
                    language=language,
                ),
            )
            return self._reply(context, transition_to(state, self.stage, SubState.SCAFFOLD), message)

        # TR_CLARIFY
        message = await self._generate(
            context,
            build_case_clarify(
                state.conversation_history,
                current_case=current_case,
                user_input=context.student_message,
                language=language,
            ),
        )
        return self._reply(context, transition_to(state, self.stage, SubState.CLARIFY), message)
