"""Opening turn: ask for the initial stance."""

from mentora_ai.builders.asking_stance import build_opening
from mentora_ai.handlers.base import StageContext, StageHandler
from mentora_ai.models import DialogueStage, StageResult
from mentora_ai.state import transition_to


class AwaitingStartHandler(StageHandler):
    stage = DialogueStage.AWAITING_START

    async def handle(self, context: StageContext) -> StageResult:
        state = context.state
        message = await self._generate(
            context,
            build_opening(
                state.conversation_history,
                topic=state.topic,
                topic_context=context.topic_context,
                language=context.config.response_language,
            ),
        )
        return self._reply(context, transition_to(state, DialogueStage.ASKING_STANCE), message)
