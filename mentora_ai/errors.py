"""Error taxonomy for the dialogue core."""


class MentoraError(Exception):
    """Base class for all dialogue errors."""


class ConversationNotFoundError(MentoraError):
    """Raised when no state exists for a conversation ID."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class UnauthorizedError(MentoraError):
    """Raised when the requesting user does not own the conversation."""

    def __init__(self, conversation_id: str, user_id: str) -> None:
        self.conversation_id = conversation_id
        self.user_id = user_id
        super().__init__(f"Unauthorized: user {user_id} does not own conversation {conversation_id}")


class ConversationExistsError(MentoraError):
    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation already exists: {conversation_id}")


class ConversationEndedError(MentoraError):
    """Raised when input arrives for a conversation in a terminal stage."""


class UnknownStageError(MentoraError):
    """No handler is registered for a stage. Programming error, not recoverable."""


class InvalidTransitionError(MentoraError):
    pass


class StateInvariantError(MentoraError):
    pass


class GenerationError(MentoraError):
    """LLM or validation failure during a turn. The turn was not persisted."""

    def __init__(self, message: str = "AI generation failed") -> None:
        super().__init__(message)
