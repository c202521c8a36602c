"""Conversation state persistence with per-conversation ownership checks."""

import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from mentora_ai.errors import ConversationExistsError, ConversationNotFoundError, UnauthorizedError
from mentora_ai.models import (
    DialogueStage,
    DialogueState,
    HistoryEntry,
    PrincipleVersion,
    Role,
    StanceVersion,
    SubState,
)

logger = logging.getLogger(__name__)


def state_to_dict(state: DialogueState) -> dict[str, Any]:
    """Serialize to the camelCase wire format."""
    current_stance = state.current_stance
    current_principle = state.current_principle
    return {
        "topic": state.topic,
        "stage": state.stage.value,
        "subState": state.sub_state.value,
        "loopCount": state.loop_count,
        "stanceHistory": [_stance_to_dict(s) for s in state.stance_history],
        "currentStance": _stance_to_dict(current_stance) if current_stance else None,
        "principleHistory": [_principle_to_dict(p) for p in state.principle_history],
        "currentPrinciple": _principle_to_dict(current_principle) if current_principle else None,
        "conversationHistory": [
            {"role": entry.role.value, "parts": [{"text": entry.text}]}
            for entry in state.conversation_history
        ],
        "discussionSatisfied": state.discussion_satisfied,
        "summary": state.summary,
    }


def state_from_dict(data: dict[str, Any]) -> DialogueState:
    """Inverse of state_to_dict. currentStance/currentPrinciple are derived, not read."""
    return DialogueState(
        topic=data["topic"],
        stage=DialogueStage(data["stage"]),
        sub_state=SubState(data.get("subState", SubState.MAIN.value)),
        loop_count=int(data.get("loopCount", 0)),
        stance_history=tuple(
            StanceVersion(
                version=int(s["version"]),
                position=s["position"],
                reason=s.get("reason", ""),
                established_at=int(s["establishedAt"]),
            )
            for s in data.get("stanceHistory", [])
        ),
        principle_history=tuple(
            PrincipleVersion(
                version=int(p["version"]),
                statement=p["statement"],
                classification=p.get("classification"),
                established_at=int(p["establishedAt"]),
            )
            for p in data.get("principleHistory", [])
        ),
        conversation_history=tuple(
            HistoryEntry(
                role=Role(entry["role"]),
                text="".join(part.get("text", "") for part in entry.get("parts", [])),
            )
            for entry in data.get("conversationHistory", [])
        ),
        discussion_satisfied=bool(data.get("discussionSatisfied", False)),
        summary=data.get("summary"),
    )


def _stance_to_dict(stance: StanceVersion) -> dict[str, Any]:
    return {
        "version": stance.version,
        "position": stance.position,
        "reason": stance.reason,
        "establishedAt": stance.established_at,
    }


def _principle_to_dict(principle: PrincipleVersion) -> dict[str, Any]:
    return {
        "version": principle.version,
        "statement": principle.statement,
        "classification": principle.classification,
        "establishedAt": principle.established_at,
    }


class StateStore(ABC):
    """Keyed by conversation ID; every load and save checks ownership first."""

    @abstractmethod
    def _read(self, conversation_id: str) -> dict[str, Any] | None:
        """Return the stored record {"ownerId", "state"} or None."""
        ...

    @abstractmethod
    def _write(self, conversation_id: str, record: dict[str, Any]) -> None:
        ...

    def exists(self, conversation_id: str) -> bool:
        return self._read(conversation_id) is not None

    def create(self, conversation_id: str, owner_id: str, state: DialogueState) -> None:
        """Raises ConversationExistsError if the ID is taken."""
        if self.exists(conversation_id):
            raise ConversationExistsError(conversation_id)
        self._write(conversation_id, {"ownerId": owner_id, "state": state_to_dict(state)})
        logger.info("Created conversation %s for %s", conversation_id, owner_id)

    def load_state(self, conversation_id: str, requesting_user_id: str) -> DialogueState:
        """Raises ConversationNotFoundError or UnauthorizedError."""
        record = self._authorize(conversation_id, requesting_user_id)
        return state_from_dict(record["state"])

    def save_state(self, conversation_id: str, requesting_user_id: str, state: DialogueState) -> None:
        """Raises ConversationNotFoundError or UnauthorizedError."""
        record = self._authorize(conversation_id, requesting_user_id)
        self._write(conversation_id, {"ownerId": record["ownerId"], "state": state_to_dict(state)})
        logger.debug("Saved conversation %s (stage %s)", conversation_id, state.stage.value)

    def _authorize(self, conversation_id: str, requesting_user_id: str) -> dict[str, Any]:
        record = self._read(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        if record["ownerId"] != requesting_user_id:
            raise UnauthorizedError(conversation_id, requesting_user_id)
        return record


class InMemoryStateStore(StateStore):
    """Keeps serialized copies so callers never share objects with the store."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def _read(self, conversation_id: str) -> dict[str, Any] | None:
        record = self._records.get(conversation_id)
        return copy.deepcopy(record) if record is not None else None

    def _write(self, conversation_id: str, record: dict[str, Any]) -> None:
        self._records[conversation_id] = copy.deepcopy(record)


class JsonFileStateStore(StateStore):
    """One JSON document per conversation under a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    def _path(self, conversation_id: str) -> Path:
        if not conversation_id or Path(conversation_id).name != conversation_id:
            raise ValueError(f"Invalid conversation ID: {conversation_id!r}")
        return self._directory / f"{conversation_id}.json"

    def _read(self, conversation_id: str) -> dict[str, Any] | None:
        path = self._path(conversation_id)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, conversation_id: str, record: dict[str, Any]) -> None:
        path = self._path(conversation_id)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{conversation_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
