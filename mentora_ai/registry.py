"""Stage -> handler lookup."""

from mentora_ai.handlers.base import StageHandler
from mentora_ai.models import DialogueStage


class StageHandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[DialogueStage, StageHandler] = {}

    def register(self, handler: StageHandler) -> None:
        """Register a handler for its stage.

        Raises:
            ValueError: If the stage already has a handler.
        """
        if handler.stage in self._handlers:
            raise ValueError(f"Handler already registered for stage: {handler.stage.value}")
        self._handlers[handler.stage] = handler

    def get(self, stage: DialogueStage) -> StageHandler | None:
        return self._handlers.get(stage)

    def has(self, stage: DialogueStage) -> bool:
        return stage in self._handlers

    def registered_stages(self) -> list[DialogueStage]:
        return list(self._handlers)
