"""Pure dataclasses and enums for the Socratic dialogue pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


class DialogueStage(str, Enum):
    AWAITING_START = "awaiting_start"
    ASKING_STANCE = "asking_stance"          # Stage 1: establish stance V1
    CASE_CHALLENGE = "case_challenge"        # Stage 2: pressure-test with cases
    PRINCIPLE_REASONING = "principle_reasoning"  # Stage 3: generalize to a principle
    CLOSURE = "closure"                      # Stage 4: summarize and confirm
    ENDED = "ended"
    ABORTED = "aborted"


TERMINAL_STAGES = frozenset({DialogueStage.ENDED, DialogueStage.ABORTED})


class SubState(str, Enum):
    MAIN = "main"
    CLARIFY = "clarify"
    SCAFFOLD = "scaffold"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class HistoryEntry:
    role: Role
    text: str


@dataclass(frozen=True)
class StanceVersion:
    version: int           # 1-based, contiguous
    position: str
    reason: str
    established_at: int    # epoch milliseconds


@dataclass(frozen=True)
class PrincipleVersion:
    version: int
    statement: str
    classification: str | None
    established_at: int


@dataclass(frozen=True)
class DialogueState:
    topic: str
    stage: DialogueStage = DialogueStage.AWAITING_START
    sub_state: SubState = SubState.MAIN
    loop_count: int = 0
    stance_history: tuple[StanceVersion, ...] = ()
    principle_history: tuple[PrincipleVersion, ...] = ()
    conversation_history: tuple[HistoryEntry, ...] = ()
    discussion_satisfied: bool = False
    summary: str | None = None

    @property
    def current_stance(self) -> StanceVersion | None:
        return self.stance_history[-1] if self.stance_history else None

    @property
    def current_principle(self) -> PrincipleVersion | None:
        return self.principle_history[-1] if self.principle_history else None


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    cached: int = 0
    thoughts: int = 0
    total: int = 0


@dataclass
class StageResult:
    message: str
    new_state: DialogueState
    ended: bool
    usage: TokenUsage = field(default_factory=TokenUsage)
