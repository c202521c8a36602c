"""Stage 4: present the summary and wait for the student's confirmation."""

import logging

from mentora_ai.builders.base import format_stage_response
from mentora_ai.builders.closure import build_closure_classifier, build_closure_summary
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.models import DialogueStage, StageResult, SubState
from mentora_ai.state import last_model_message, set_summary, transition_to

logger = logging.getLogger(__name__)


class ClosureHandler(StageHandler):
    stage = DialogueStage.CLOSURE

    async def handle(self, context: StageContext) -> StageResult:
        state = context.state
        presented = state.summary or last_model_message(state)

        classification = await context.executor.execute(
            build_closure_classifier(
                state.conversation_history,
                generated_summary=presented,
                user_input=context.student_message,
            )
        )
        intent = classification.detected_intent
        logger.debug("Closure intent: %s (%.2f)", intent, classification.confidence_score)

        if intent == "TR_CONFIRM":
            # Fixed closing line, no LLM call
            return self._reply(
                context,
                transition_to(state, DialogueStage.ENDED),
                context.config.closing_message,
                ended=True,
            )

        stance = state.current_stance
        principle = state.current_principle
        correction = (classification.extracted_data.reasoning or "").strip() or context.student_message
        response = await self._respond(
            context,
            build_closure_summary(
                state.conversation_history,
                stance_v1=state.stance_history[0].position,
                stance_final=stance.position,
                key_reasoning=principle.statement if principle else stance.reason,
                correction=correction,
                language=context.config.response_language,
            ),
        )
        message = format_stage_response(response)
        state = set_summary(state, response.response_message)
        return self._reply(context, transition_to(state, self.stage, SubState.CLARIFY), message)
