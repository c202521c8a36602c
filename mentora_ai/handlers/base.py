"""Abstract base for stage handlers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from config.config_loader import DialogueConfig
from mentora_ai.builders.base import Prompt, format_stage_response
from mentora_ai.builders.schemas import StageResponse
from mentora_ai.executors.base import PromptExecutor
from mentora_ai.models import DialogueStage, DialogueState, Role, StageResult
from mentora_ai.state import add_to_history, check_invariants


@dataclass
class StageContext:
    """Everything a handler needs for one turn.

    state already has the student's message appended as its last history entry.
    """

    executor: PromptExecutor
    state: DialogueState
    student_message: str
    config: DialogueConfig = field(default_factory=DialogueConfig)
    topic_context: str = ""


class StageHandler(ABC):
    """Processes one student turn for a single dialogue stage."""

    stage: DialogueStage

    @abstractmethod
    async def handle(self, context: StageContext) -> StageResult:
        """Run classifier and generator for this stage.

        Raises:
            ExecutorError: Propagated unchanged from the executor.
        """
        ...

    async def _respond(self, context: StageContext, prompt: Prompt) -> StageResponse:
        return await context.executor.execute(prompt)

    async def _generate(self, context: StageContext, prompt: Prompt) -> str:
        return format_stage_response(await self._respond(context, prompt))

    def _reply(
        self,
        context: StageContext,
        state: DialogueState,
        message: str,
        *,
        ended: bool = False,
    ) -> StageResult:
        new_state = add_to_history(state, Role.MODEL, message)
        check_invariants(new_state)
        return StageResult(
            message=message,
            new_state=new_state,
            ended=ended,
            usage=context.executor.get_token_usage(),
        )
