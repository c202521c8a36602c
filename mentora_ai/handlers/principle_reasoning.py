"""Stage 3: generalize the stance into a principle, then loop back or close."""

import logging
from enum import Enum

from config.config_loader import DialogueConfig
from mentora_ai.builders.case_challenge import build_case_challenge
from mentora_ai.builders.base import format_stage_response
from mentora_ai.builders.closure import build_closure_summary
from mentora_ai.builders.principle_reasoning import (
    DEFAULT_TENSION,
    build_principle_classifier,
    build_principle_reasoning,
    build_principle_scaffold,
)
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.models import DialogueStage, DialogueState, StageResult, SubState
from mentora_ai.state import (
    format_stance_history,
    increment_loop,
    set_summary,
    transition_to,
    update_principle,
)

logger = logging.getLogger(__name__)


class PrincipleRoute(str, Enum):
    CLARIFY = "clarify"
    SCAFFOLD = "scaffold"
    LOOP = "loop"     # back to CASE_CHALLENGE with a new case
    CLOSE = "close"   # on to CLOSURE


def resolve_principle_route(intent: str, loop_count: int, config: DialogueConfig) -> PrincipleRoute:
    """Apply the loop-count policy on top of the classifier's intent.

    max_loops forces closure on TR_NEXT_CASE; min_loops_for_closure forces
    another case on TR_COMPLETE. DialogueConfig guarantees min <= max.
    """
    if intent == "TR_SCAFFOLD":
        return PrincipleRoute.SCAFFOLD
    if intent == "TR_NEXT_CASE":
        if loop_count >= config.max_loops:
            return PrincipleRoute.CLOSE
        return PrincipleRoute.LOOP
    if intent == "TR_COMPLETE":
        if loop_count < config.min_loops_for_closure:
            return PrincipleRoute.LOOP
        return PrincipleRoute.CLOSE
    return PrincipleRoute.CLARIFY


class PrincipleReasoningHandler(StageHandler):
    stage = DialogueStage.PRINCIPLE_REASONING

    async def handle(self, context: StageContext) -> StageResult:
        state = context.state
        stance = state.current_stance
        language = context.config.response_language

        classification = await context.executor.execute(
            build_principle_classifier(
                state.conversation_history,
                current_stance=stance.position,
                user_input=context.student_message,
                loop_count=state.loop_count,
            )
        )
        intent = classification.detected_intent
        route = resolve_principle_route(intent, state.loop_count, context.config)
        logger.debug(
            "PrincipleReasoning intent: %s (%.2f), loop %d -> %s",
            intent,
            classification.confidence_score,
            state.loop_count,
            route.value,
        )

        principle = (classification.extracted_data.reasoning or "").strip()

        if route == PrincipleRoute.LOOP:
            state = self._record_principle(state, principle, intent)
            current = state.current_principle
            message = await self._generate(
                context,
                build_case_challenge(
                    state.conversation_history,
                    current_stance=stance.position,
                    current_reason=stance.reason,
                    principle=current.statement if current else "",
                    loop_count=state.loop_count,
                    language=language,
                ),
            )
            state = increment_loop(state)
            return self._reply(context, transition_to(state, DialogueStage.CASE_CHALLENGE), message)

        if route == PrincipleRoute.CLOSE:
            state = self._record_principle(state, principle, intent)
            current = state.current_principle
            response = await self._respond(
                context,
                build_closure_summary(
                    state.conversation_history,
                    stance_v1=state.stance_history[0].position,
                    stance_final=stance.position,
                    key_reasoning=current.statement if current else stance.reason,
                    language=language,
                ),
            )
            message = format_stage_response(response)
            state = set_summary(state, response.response_message)
            return self._reply(context, transition_to(state, DialogueStage.CLOSURE), message)

        if route == PrincipleRoute.SCAFFOLD:
            message = await self._generate(
                context,
                build_principle_scaffold(
                    state.conversation_history,
                    user_principle=principle or context.student_message,
                    detected_tension=classification.thought_process or DEFAULT_TENSION,
                    language=language,
                ),
            )
            return self._reply(context, transition_to(state, self.stage, SubState.SCAFFOLD), message)

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
        return self._reply(context, transition_to(state, self.stage, SubState.CLARIFY), message)

    @staticmethod
    def _record_principle(state: DialogueState, principle: str, intent: str) -> DialogueState:
        if not principle:
            return state
        return update_principle(state, principle, classification=intent)
